"""Brute-force vanity search.

Generates candidates until the requested number of matching keypairs has
been sealed and stored. There is no attempt cap: expected work per hit is
``58 ** len(pattern)`` candidates, so long patterns run for a long time by
design. Progress is reported through periodic log lines and the loop is
stopped through a cancellation event.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from app.config import BufferTarget, ReplenishConfig
from app.models.pool_entry import PoolEntry, PoolEntryStatus
from app.services.keygen import KeypairCandidate, generate
from app.services.matcher import MatchMode, PatternMatcher, expected_attempts
from app.services.pool_store import InsertOutcome, PoolStore
from app.services.sealer import SecretSealer

logger = logging.getLogger(__name__)

# How many candidates between clock reads for progress reporting.
_PROGRESS_CHECK_EVERY = 1024


@dataclass(frozen=True, slots=True)
class FillResult:
    pattern: str
    case_sensitive: bool
    requested: int
    found: int
    attempts: int
    duplicates: int
    elapsed_seconds: float
    cancelled: bool = False

    @property
    def rate(self) -> float:
        """Candidates per second."""
        return self.attempts / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0


class SearchWorker:
    """Generate → match → seal → insert, until the target count is reached."""

    __slots__ = ("_store", "_sealer", "_config", "_generate", "_clock")

    def __init__(
        self,
        store: PoolStore,
        sealer: SecretSealer,
        config: ReplenishConfig,
        generator: Callable[[], KeypairCandidate] = generate,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._sealer = sealer
        self._config = config
        self._generate = generator
        self._clock = clock

    def fill_target(
        self,
        target: BufferTarget,
        target_count: int,
        cancel: threading.Event | None = None,
    ) -> FillResult:
        return self.fill_pattern(
            target.pattern,
            target.case_sensitive,
            target_count,
            cancel=cancel,
            mode=target.mode,
        )

    def fill_pattern(
        self,
        pattern: str,
        case_sensitive: bool,
        target_count: int,
        cancel: threading.Event | None = None,
        mode: MatchMode = MatchMode.SUFFIX,
    ) -> FillResult:
        """Store ``target_count`` new ready entries matching ``pattern``.

        Duplicate public ids are skipped without counting. StoreError from
        the pool store propagates and aborts the fill. If ``cancel`` is set
        the fill stops before the next candidate and returns what it has.
        """
        started = self._clock()
        if target_count <= 0:
            return FillResult(pattern, case_sensitive, target_count, 0, 0, 0, 0.0)

        matcher = PatternMatcher(pattern, case_sensitive, mode)
        generate_candidate = self._generate
        progress_interval = self._config.progress_interval_seconds
        verbose = self._config.verbose
        per_hit = expected_attempts(pattern, case_sensitive)

        found = 0
        attempts = 0
        duplicates = 0
        cancelled = False
        next_progress = started + progress_interval

        while found < target_count:
            if cancel is not None and cancel.is_set():
                cancelled = True
                break

            candidate = generate_candidate()
            attempts += 1

            if matcher(candidate.public_id):
                sealed = self._sealer.seal(candidate.secret_key)
                outcome = self._store.try_insert(
                    PoolEntry(
                        public_id=candidate.public_id,
                        sealed_secret=sealed,
                        pattern=pattern,
                        case_sensitive=case_sensitive,
                        match_mode=matcher.mode.value,
                        status=PoolEntryStatus.READY.value,
                    )
                )
                if outcome is InsertOutcome.DUPLICATE_PUBLIC_ID:
                    duplicates += 1
                    continue
                found += 1
                elapsed = self._clock() - started
                logger.info(
                    "Stored pattern=%s found=%d/%d attempts=%d rate=%.1f/s",
                    pattern,
                    found,
                    target_count,
                    attempts,
                    attempts / elapsed if elapsed > 0 else 0.0,
                )
                if verbose:
                    logger.debug("Stored public_id=%s pattern=%s", candidate.public_id, pattern)

            if progress_interval > 0 and attempts % _PROGRESS_CHECK_EVERY == 0:
                now = self._clock()
                if now >= next_progress:
                    elapsed = now - started
                    logger.info(
                        "Searching pattern=%s attempts=%d found=%d/%d elapsed=%.1fs "
                        "rate=%.1f/s expected_per_hit=%.0f",
                        pattern,
                        attempts,
                        found,
                        target_count,
                        elapsed,
                        attempts / elapsed if elapsed > 0 else 0.0,
                        per_hit,
                    )
                    next_progress = now + progress_interval

        result = FillResult(
            pattern=pattern,
            case_sensitive=case_sensitive,
            requested=target_count,
            found=found,
            attempts=attempts,
            duplicates=duplicates,
            elapsed_seconds=self._clock() - started,
            cancelled=cancelled,
        )
        if cancelled:
            logger.info(
                "Search cancelled pattern=%s found=%d/%d attempts=%d",
                pattern,
                found,
                target_count,
                attempts,
            )
        return result
