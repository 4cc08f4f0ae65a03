from __future__ import annotations

from sqlmodel import Session, select

from app.config import ReplenishConfig
from app.models.pool_entry import PoolEntry
from app.services.integrity import verify_pool
from app.services.keygen import generate
from app.services.matcher import MatchMode
from app.services.sealer import SecretSealer
from app.services.search import SearchWorker


def _fill(store, sealer, pattern: str, count: int) -> None:
    worker = SearchWorker(store, sealer, ReplenishConfig(targets=(), progress_interval_seconds=0.0))
    worker.fill_pattern(pattern, True, count)


class TestVerifyPool:
    def test_healthy_pool(self, store, sealer) -> None:
        _fill(store, sealer, "A", 3)
        report = verify_pool(store, sealer)
        assert report["healthy"] is True
        assert report["checked"] == 3
        assert report["ok"] == 3
        assert report["mismatches"] == []

    def test_empty_pool_is_healthy(self, store, sealer) -> None:
        report = verify_pool(store, sealer)
        assert report["healthy"] is True
        assert report["checked"] == 0

    def test_wrong_key_reports_auth_failures(self, store, sealer) -> None:
        _fill(store, sealer, "A", 2)
        report = verify_pool(store, SecretSealer("wrong-passphrase"))
        assert report["healthy"] is False
        assert len(report["auth_failures"]) == 2
        assert report["ok"] == 0

    def test_tampered_and_truncated_entries(self, store, sealer, engine) -> None:
        _fill(store, sealer, "A", 3)
        with Session(engine) as s:
            rows = s.exec(select(PoolEntry).order_by(PoolEntry.public_id)).all()
            tampered = bytearray(rows[0].sealed_secret)
            tampered[-1] ^= 0x01
            rows[0].sealed_secret = bytes(tampered)
            rows[1].sealed_secret = b"\x00" * 10
            s.add(rows[0])
            s.add(rows[1])
            s.commit()
            bad_auth, bad_format = rows[0].id, rows[1].id

        report = verify_pool(store, sealer)

        assert report["auth_failures"] == [bad_auth]
        assert report["format_failures"] == [bad_format]
        assert report["ok"] == 1
        assert report["healthy"] is False

    def test_secret_for_other_public_id_is_mismatch(self, store, sealer) -> None:
        other = generate()
        store.try_insert(
            PoolEntry(public_id="fakeA", sealed_secret=sealer.seal(other.secret_key), pattern="A")
        )
        report = verify_pool(store, sealer)
        assert len(report["mismatches"]) == 1

    def test_entry_not_matching_pattern_is_mismatch(self, store, sealer) -> None:
        candidate = generate()
        pattern = "zz" if not candidate.public_id.endswith("zz") else "yy"
        store.try_insert(
            PoolEntry(
                public_id=candidate.public_id,
                sealed_secret=sealer.seal(candidate.secret_key),
                pattern=pattern,
            )
        )
        assert len(verify_pool(store, sealer)["mismatches"]) == 1

    def test_each_entry_checked_under_its_stored_mode(self, store, sealer) -> None:
        prefix_hit = generate()
        store.try_insert(
            PoolEntry(
                public_id=prefix_hit.public_id,
                sealed_secret=sealer.seal(prefix_hit.secret_key),
                pattern=prefix_hit.public_id[:2],
                match_mode=MatchMode.PREFIX.value,
            )
        )
        _fill(store, sealer, "A", 1)

        report = verify_pool(store, sealer)

        assert report["healthy"] is True
        assert report["ok"] == 2

    def test_prefix_pattern_stored_as_suffix_is_mismatch(self, store, sealer) -> None:
        candidate = generate()
        pattern = candidate.public_id[:3]
        if candidate.public_id.endswith(pattern):
            pattern = candidate.public_id[:4]
        store.try_insert(
            PoolEntry(
                public_id=candidate.public_id,
                sealed_secret=sealer.seal(candidate.secret_key),
                pattern=pattern,
            )
        )
        assert len(verify_pool(store, sealer)["mismatches"]) == 1

    def test_status_filter(self, store, sealer) -> None:
        _fill(store, sealer, "A", 2)
        assert verify_pool(store, sealer, status="used")["checked"] == 0
        assert verify_pool(store, sealer, status="ready")["checked"] == 2
