"""Pattern matching for base-58 public identifiers.

Runs once per generated candidate, so comparisons never build a transformed
copy of the whole identifier.
"""

from __future__ import annotations

from enum import Enum

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_CHARS = frozenset(BASE58_ALPHABET)


class MatchMode(str, Enum):
    SUFFIX = "suffix"
    PREFIX = "prefix"
    CONTAINS = "contains"


class PatternMatcher:
    """A pattern compiled for repeated matching against identifiers."""

    __slots__ = ("pattern", "case_sensitive", "mode", "_needle", "_length")

    def __init__(
        self,
        pattern: str,
        case_sensitive: bool = True,
        mode: MatchMode = MatchMode.SUFFIX,
    ) -> None:
        self.pattern = pattern
        self.case_sensitive = case_sensitive
        self.mode = MatchMode(mode)
        self._needle = pattern if case_sensitive else pattern.lower()
        self._length = len(pattern)

    def __call__(self, public_id: str) -> bool:
        return self.matches(public_id)

    def matches(self, public_id: str) -> bool:
        needle = self._needle
        if self.case_sensitive:
            if self.mode is MatchMode.SUFFIX:
                return public_id.endswith(needle)
            if self.mode is MatchMode.PREFIX:
                return public_id.startswith(needle)
            return needle in public_id

        # Only the compared window is folded.
        if self._length > len(public_id):
            return False
        if self.mode is MatchMode.SUFFIX:
            return public_id[len(public_id) - self._length:].lower() == needle
        if self.mode is MatchMode.PREFIX:
            return public_id[: self._length].lower() == needle
        return needle in public_id.lower()

    def __repr__(self) -> str:
        return (
            f"PatternMatcher(pattern={self.pattern!r}, "
            f"case_sensitive={self.case_sensitive}, mode={self.mode.value!r})"
        )


def matches(
    public_id: str,
    pattern: str,
    case_sensitive: bool = True,
    mode: MatchMode = MatchMode.SUFFIX,
) -> bool:
    """Return True if ``public_id`` satisfies ``pattern`` under ``mode``."""
    if case_sensitive and mode == MatchMode.SUFFIX:
        return public_id.endswith(pattern)
    return PatternMatcher(pattern, case_sensitive, mode).matches(public_id)


def _variants(char: str) -> int:
    """Number of alphabet characters that compare equal to ``char`` ignoring case."""
    return len({c for c in (char.lower(), char.upper()) if c in _BASE58_CHARS})


def validate_pattern(pattern: str, case_sensitive: bool = True) -> str:
    """Reject patterns that no base-58 identifier can ever match.

    Raises:
        ValueError: empty pattern, or a character outside the alphabet
            (``0``, ``O``, ``I``, ``l`` and non-alphanumerics).
    """
    if not pattern:
        raise ValueError("Pattern must not be empty")
    for char in pattern:
        if case_sensitive:
            ok = char in _BASE58_CHARS
        else:
            ok = _variants(char) > 0
        if not ok:
            raise ValueError(
                f"Pattern {pattern!r} contains {char!r}, which never appears in "
                f"base-58 identifiers"
            )
    return pattern


def expected_attempts(pattern: str, case_sensitive: bool = True) -> float:
    """Expected number of candidates per hit for a fixed-position match."""
    base = len(BASE58_ALPHABET)
    if case_sensitive:
        return float(base ** len(pattern))
    total = 1.0
    for char in pattern:
        total *= base / max(_variants(char), 1)
    return total
