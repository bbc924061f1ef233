"""Check system for Snippet Check.

This module provides the framework for checking catalog snippets:

- **Models**: CheckResult, CheckReport, SourceLocation - result data structures
- **Checks**: SyntaxChecker (offline) and LiveChecker (see validation/checks/)
- **Config**: CheckerConfig, load_config() and SQLSTATE classification (import from .config)
- **Registry**: build_checker(), run_checks(), print_report() - orchestration

Public API:
    CheckResult: Outcome of checking one catalog entry
    CheckReport: Aggregated results with rendering helpers and exit code
    CheckerConfig: Settings for one run
    run_checks: Check every entry concurrently
    print_report: Display results on the console

Usage:
    >>> from pathlib import Path
    >>> from snippet_check.catalog import load_catalog_file
    >>> from snippet_check.validation import SyntaxChecker, run_checks, print_report
    >>> entries = load_catalog_file(Path("cheatsheet.md"))
    >>> report = run_checks(entries, SyntaxChecker())
    >>> print_report(report)
"""

from __future__ import annotations

from snippet_check.core.enums import Outcome

from .checks.syntax import SyntaxChecker
from .config import CheckerConfig, load_config
from .models import CheckReport, CheckResult, SourceLocation
from .registry import build_checker, print_report, run_checks

__all__ = [
    # Data models
    "CheckResult",
    "CheckReport",
    "SourceLocation",
    # Configuration
    "CheckerConfig",
    "load_config",
    # Checkers and runner
    "SyntaxChecker",
    "build_checker",
    "run_checks",
    "print_report",
    # Enums
    "Outcome",
]
