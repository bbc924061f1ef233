"""Core enumerations used across the package."""

from __future__ import annotations

from enum import Enum


class Outcome(str, Enum):
    """Outcome of checking one catalog entry.

    Values are strings to ease serialization and report output.
    """

    PASSED = "PASSED"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    SKIPPED = "SKIPPED"

    @property
    def is_failure(self) -> bool:
        """True for outcomes that make the run fail."""
        return self in (Outcome.SYNTAX_ERROR, Outcome.RUNTIME_ERROR)


__all__ = ["Outcome"]
