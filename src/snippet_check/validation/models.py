"""Validation data models.

This module defines core data structures for check results:
- SourceLocation: Line/column position inside the catalog document
- CheckResult: Outcome of checking a single catalog entry
- CheckReport: Aggregated results from one run over a catalog
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from snippet_check.catalog.loader import CatalogEntry
from snippet_check.core.enums import Outcome

_ICONS = {
    Outcome.PASSED: "✅",
    Outcome.SYNTAX_ERROR: "❌",
    Outcome.RUNTIME_ERROR: "❌",
    Outcome.SKIPPED: "⏭️",
}


@dataclass(frozen=True)
class SourceLocation:
    """1-based position inside the catalog document."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


@dataclass(frozen=True)
class CheckResult:
    """Result of checking a single catalog entry.

    Attributes:
        entry: The catalog entry that was checked.
        outcome: Passed, syntax error, runtime error or skipped.
        detail: Error message or skip reason (required unless passed).
        location: Document position of the error, when known.
        token: Offending token for syntax errors, when known.

    Examples:
        >>> CheckResult(
        ...     entry=entry,
        ...     outcome=Outcome.SYNTAX_ERROR,
        ...     detail='syntax error at or near "WHERE"',
        ...     location=SourceLocation(line=12, column=15),
        ...     token="WHERE",
        ... )
    """

    entry: CatalogEntry
    outcome: Outcome
    detail: Optional[str] = None
    location: Optional[SourceLocation] = None
    token: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate field constraints."""
        if not isinstance(self.outcome, Outcome):
            raise ValueError(f"Invalid outcome: {self.outcome!r}")
        if self.outcome == Outcome.PASSED:
            if self.location is not None or self.token is not None:
                raise ValueError("PASSED results carry no location or token")
        elif not self.detail:
            raise ValueError(f"{self.outcome.value} results require a detail message")

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASSED

    def describe(self) -> str:
        """One-line description used in console and Markdown output."""
        text = f"§{self.entry.section_number} {self.entry.title}"
        if self.location is not None:
            text += f" ({self.location})"
        if self.detail:
            text += f": {self.detail}"
        return text

    def to_dict(self) -> Dict:
        return {
            "section_number": self.entry.section_number,
            "title": self.entry.title,
            "line": self.entry.line,
            "outcome": self.outcome.value,
            "detail": self.detail,
            "location": (
                {"line": self.location.line, "column": self.location.column}
                if self.location
                else None
            ),
            "token": self.token,
        }


@dataclass
class CheckReport:
    """Aggregated check results for one catalog.

    Attributes:
        results: One CheckResult per catalog entry, in catalog order.
        catalog_path: Path of the checked document (if it came from a file).
        live: True if snippets were also executed against a server.
        generated_at: When the report was created.

    Examples:
        >>> report = CheckReport(results=[r1, r2], catalog_path=Path("cheatsheet.md"))
        >>> report.has_failures()
        True
        >>> report.exit_code()
        1
    """

    results: List[CheckResult]
    catalog_path: Optional[Path] = None
    live: bool = False
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def source_name(self) -> str:
        return self.catalog_path.name if self.catalog_path else "<catalog>"

    def counts(self) -> Dict[Outcome, int]:
        """Count results per outcome (every outcome present, zeros included)."""
        counts = {outcome: 0 for outcome in Outcome}
        for result in self.results:
            counts[result.outcome] += 1
        return counts

    def has_failures(self) -> bool:
        """True if any entry ended in a syntax or runtime error.

        Skipped entries never count as failures.
        """
        return any(r.outcome.is_failure for r in self.results)

    def exit_code(self) -> int:
        """Process exit code for this report: 0 if no failures, else 1."""
        return 1 if self.has_failures() else 0

    def get_failed_checks(self, outcome: Optional[Outcome] = None) -> List[CheckResult]:
        """Get all non-passed results, optionally filtered by outcome.

        Args:
            outcome: Restrict to one outcome. None returns every non-passed result
                (skipped ones included).

        Returns:
            List of CheckResult objects in catalog order.

        Examples:
            >>> syntax = report.get_failed_checks(Outcome.SYNTAX_ERROR)
            >>> not_passed = report.get_failed_checks()
        """
        return [
            r for r in self.results if not r.passed and (outcome is None or r.outcome == outcome)
        ]

    def summary(self) -> str:
        """Generate a concise text summary of the run.

        Examples:
            >>> print(report.summary())
            Check Summary:
              Catalog: cheatsheet.md (offline)
              Entries: 40 checked (37 passed, 2 skipped)
              Failures: 1 syntax errors, 0 runtime errors
        """
        counts = self.counts()
        mode = "live" if self.live else "offline"
        return (
            f"Check Summary:\n"
            f"  Catalog: {self.source_name} ({mode})\n"
            f"  Entries: {len(self.results)} checked ({counts[Outcome.PASSED]} passed, "
            f"{counts[Outcome.SKIPPED]} skipped)\n"
            f"  Failures: {counts[Outcome.SYNTAX_ERROR]} syntax errors, "
            f"{counts[Outcome.RUNTIME_ERROR]} runtime errors"
        )

    def to_console_summary(self) -> str:
        """Summary plus one line per non-passed entry."""
        lines = [self.summary(), ""]

        not_passed = self.get_failed_checks()
        if not not_passed:
            lines.append("✅ All snippets passed!")
            return "\n".join(lines)

        lines.append("Entry Details:")
        for result in not_passed:
            lines.append(f"{_ICONS[result.outcome]} {result.outcome.value} {result.describe()}")
        return "\n".join(lines)

    def to_markdown(self) -> str:
        """Generate a detailed Markdown report.

        Returns:
            Markdown with a header, a per-outcome summary, the failing entries
            (with section, title, location and detail), skipped entries and the
            list of passed sections.
        """
        counts = self.counts()
        failures = [r for r in self.results if r.outcome.is_failure]
        skipped = self.get_failed_checks(Outcome.SKIPPED)
        passed = [r for r in self.results if r.passed]

        lines = [
            f"# Snippet Check Report: {self.source_name}",
            "",
            f"**Catalog:** {self.catalog_path if self.catalog_path else self.source_name}",
            f"**Mode:** {'live' if self.live else 'offline'}",
            f"**Generated:** {self.generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            "## Summary",
            "",
            f"- **Total Entries:** {len(self.results)}",
            f"- **Passed:** {counts[Outcome.PASSED]} ✅",
            f"- **Syntax Errors:** {counts[Outcome.SYNTAX_ERROR]}",
            f"- **Runtime Errors:** {counts[Outcome.RUNTIME_ERROR]}",
            f"- **Skipped:** {counts[Outcome.SKIPPED]}",
            "",
        ]

        if not failures:
            lines.append("## ✅ No Failures")
            lines.append("")
        else:
            lines.append("## ❌ Failures")
            lines.append("")
            for result in failures:
                lines.append(
                    f"### ❌ §{result.entry.section_number} {result.entry.title} "
                    f"({result.outcome.value})"
                )
                lines.append("")
                if result.location is not None:
                    lines.append(f"- Location: {result.location}")
                if result.token:
                    lines.append(f"- Token: `{result.token}`")
                lines.append(f"- {result.detail}")
                lines.append("")

        if skipped:
            lines.append("## ⏭️ Skipped")
            lines.append("")
            for result in skipped:
                lines.append(
                    f"- **§{result.entry.section_number} {result.entry.title}**: {result.detail}"
                )
            lines.append("")

        if passed:
            lines.append("## ✅ Passed")
            lines.append("")
            for result in passed:
                lines.append(f"- §{result.entry.section_number} {result.entry.title}")
            lines.append("")

        return "\n".join(lines)

    def to_json(self) -> str:
        """Generate a machine-readable JSON report (summary plus every result)."""
        import json

        counts = self.counts()
        report_data = {
            "metadata": {
                "catalog_path": str(self.catalog_path) if self.catalog_path else None,
                "mode": "live" if self.live else "offline",
                "generated_at": self.generated_at.isoformat(),
            },
            "summary": {
                "total_entries": len(self.results),
                **{outcome.value.lower(): count for outcome, count in counts.items()},
                "exit_code": self.exit_code(),
            },
            "results": [r.to_dict() for r in self.results],
        }
        return json.dumps(report_data, indent=2, ensure_ascii=False)
