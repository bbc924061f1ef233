"""Snippet checkers base interface.

This module defines the protocol (interface) that every checker implements.
A checker turns one CatalogEntry into exactly one CheckResult and must not
raise for per-entry problems (bad grammar, failed execution); those become
the result's outcome instead.

Available checkers:
    - SyntaxChecker (checks/syntax.py): offline parse with the PostgreSQL grammar
    - LiveChecker (checks/live.py): syntax check, then rollback-always execution

Example:
    ```python
    from snippet_check.catalog import CatalogEntry
    from snippet_check.core.enums import Outcome
    from snippet_check.validation.models import CheckResult

    class AlwaysPasses:
        def check(self, entry: CatalogEntry) -> CheckResult:
            return CheckResult(entry=entry, outcome=Outcome.PASSED)
    ```
"""

from __future__ import annotations

from typing import Protocol

from snippet_check.catalog.loader import CatalogEntry
from ..models import CheckResult


class SnippetChecker(Protocol):
    """Protocol defining the interface for snippet checkers.

    Checkers are called concurrently from worker threads, so ``check`` must not
    mutate shared state.
    """

    def check(self, entry: CatalogEntry) -> CheckResult:
        """Check one catalog entry.

        Args:
            entry: The entry whose snippet is checked.

        Returns:
            A single CheckResult for the entry.

        Examples:
            >>> result = checker.check(entry)
            >>> result.outcome
            <Outcome.PASSED: 'PASSED'>
        """
        ...


__all__ = ["SnippetChecker"]
