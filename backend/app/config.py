from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.services.matcher import MatchMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Comma-separated list, e.g. "SNOW,SB"
    vanity_patterns: str = "SNOW,SB"
    vanity_min_buffer: int = 5
    vanity_encryption_key: str = ""  # 32 raw bytes as hex/base64, or any passphrase
    vanity_case_sensitive: bool = True
    vanity_match_mode: MatchMode = MatchMode.SUFFIX
    vanity_parallel: bool = False  # one filler thread per pattern
    vanity_refill_interval_seconds: float = 2.0
    vanity_progress_interval_seconds: float = 10.0  # 0 disables progress lines
    vanity_verbose: bool = False
    vanity_worker_enabled: bool = True  # False serves HTTP only

    db_url: str = "sqlite:///./data/vanity.db"
    port: int = 10000
    log_level: str = "INFO"

    @field_validator("vanity_min_buffer")
    @classmethod
    def _check_min_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError(f"VANITY_MIN_BUFFER must be >= 0, got {value}")
        return value

    @model_validator(mode="after")
    def _check_encryption_key(self) -> Settings:
        self.vanity_encryption_key = self.vanity_encryption_key.strip()
        if not self.vanity_encryption_key:
            raise ValueError(
                "VANITY_ENCRYPTION_KEY is not set. Pool secrets cannot be sealed "
                "without it. Set it to a 32-byte hex/base64 key or a passphrase."
            )
        return self

    def pattern_list(self) -> list[str]:
        """Parse VANITY_PATTERNS: trimmed, empties dropped, first occurrence wins."""
        seen: list[str] = []
        for raw in self.vanity_patterns.split(","):
            pattern = raw.strip()
            if pattern and pattern not in seen:
                seen.append(pattern)
        return seen


@dataclass(frozen=True, slots=True)
class BufferTarget:
    """One configured pattern and the number of ready entries to keep for it."""

    pattern: str
    min_ready: int
    case_sensitive: bool = True
    mode: MatchMode = MatchMode.SUFFIX


@dataclass(frozen=True, slots=True)
class ReplenishConfig:
    """Immutable replenishment settings, built once at startup."""

    targets: tuple[BufferTarget, ...]
    interval_seconds: float = 2.0
    parallel: bool = False
    progress_interval_seconds: float = 10.0
    verbose: bool = False


def build_replenish_config(settings: Settings) -> ReplenishConfig:
    targets = tuple(
        BufferTarget(
            pattern=pattern,
            min_ready=settings.vanity_min_buffer,
            case_sensitive=settings.vanity_case_sensitive,
            mode=settings.vanity_match_mode,
        )
        for pattern in settings.pattern_list()
    )
    return ReplenishConfig(
        targets=targets,
        interval_seconds=settings.vanity_refill_interval_seconds,
        parallel=settings.vanity_parallel,
        progress_interval_seconds=settings.vanity_progress_interval_seconds,
        verbose=settings.vanity_verbose,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
