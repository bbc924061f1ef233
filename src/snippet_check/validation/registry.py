"""Checker construction and the concurrent check runner.

This module orchestrates a check run:
- build_checker(): Creates the offline or live checker for a configuration
- run_checks(): Checks every catalog entry on a bounded worker pool
- print_report(): Displays check results on the console
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from snippet_check.catalog.loader import CatalogEntry
from snippet_check.core.enums import Outcome
from .checks import SnippetChecker
from .checks.syntax import SyntaxChecker
from .config import CheckerConfig
from .models import CheckReport, CheckResult

logger = logging.getLogger(__name__)

TIMEOUT_DETAIL = "global timeout reached before the entry was checked"


def build_checker(config: CheckerConfig, pool=None) -> SnippetChecker:
    """Create the checker for a run.

    Args:
        config: Run configuration.
        pool: Open connection pool, required when ``config.live`` is set.

    Raises:
        ValueError: If live mode is requested without a pool.
    """
    syntax = SyntaxChecker(sql_languages=config.sql_languages)
    if not config.live:
        return syntax
    if pool is None:
        raise ValueError("live mode requires an open connection pool")

    statement_timeout_ms = config.statement_timeout_ms
    if statement_timeout_ms is None and config.timeout is not None:
        # Bound server-side work so no statement outlives the global timeout
        statement_timeout_ms = max(1, int(config.timeout * 1000))

    from .checks.live import LiveChecker

    return LiveChecker(
        pool,
        syntax_checker=syntax,
        statement_timeout_ms=statement_timeout_ms,
        connect_retries=config.connect_retries,
    )


def _skipped(entry: CatalogEntry) -> CheckResult:
    return CheckResult(entry=entry, outcome=Outcome.SKIPPED, detail=TIMEOUT_DETAIL)


def run_checks(
    entries: Sequence[CatalogEntry],
    checker: SnippetChecker,
    *,
    concurrency: int = 4,
    timeout: Optional[float] = None,
    progress: bool = False,
    catalog_path: Optional[Path] = None,
    live: bool = False,
) -> CheckReport:
    """Check every entry and aggregate the results.

    Entries are independent, so they are checked on a thread pool bounded by
    ``concurrency``. Results come back through futures; no counters are shared
    between workers.

    Args:
        entries: Catalog entries in document order.
        checker: Checker applied to each entry.
        concurrency: Maximum number of entries in flight (values < 1 mean 1).
        timeout: Global timeout in seconds, measured from the start of the run.
            Entries not finished in time are reported as SKIPPED; finished
            results are kept. None disables the timeout.
        progress: Show a tqdm progress bar on stderr.
        catalog_path: Source document, recorded in the report.
        live: Recorded in the report.

    Returns:
        CheckReport with exactly one result per entry, in catalog order.

    Examples:
        >>> entries = load_catalog_file(Path("cheatsheet.md"))
        >>> report = run_checks(entries, SyntaxChecker(), concurrency=8)
        >>> report.exit_code()
        0
    """
    workers = max(1, int(concurrency))
    deadline = None if timeout is None else time.monotonic() + timeout
    logger.info(
        "Checking %d entries (%s, concurrency %d, timeout %s)",
        len(entries),
        "live" if live else "offline",
        workers,
        "none" if timeout is None else f"{timeout}s",
    )

    def work(entry: CatalogEntry) -> CheckResult:
        if deadline is not None and time.monotonic() >= deadline:
            return _skipped(entry)
        return checker.check(entry)

    results: Dict[int, CheckResult] = {}
    pbar = tqdm(
        total=len(entries),
        desc="Checking snippets",
        unit="snippets",
        disable=not progress,
    )
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="snippet-check")
    try:
        futures: Dict[Future, int] = {
            executor.submit(work, entry): i for i, entry in enumerate(entries)
        }
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        try:
            for future in as_completed(futures, timeout=remaining):
                results[futures[future]] = future.result()
                pbar.update(1)
        except FuturesTimeoutError:
            for future, i in futures.items():
                if i in results:
                    continue
                if future.done() and not future.cancelled():
                    results[i] = future.result()
                else:
                    future.cancel()
                    results[i] = _skipped(entries[i])
                pbar.update(1)
    finally:
        # In-flight checks past the deadline are abandoned, not awaited
        executor.shutdown(wait=deadline is None, cancel_futures=True)
        pbar.close()

    ordered: List[CheckResult] = [results[i] for i in range(len(entries))]
    skipped_by_timeout = sum(1 for r in ordered if r.detail == TIMEOUT_DETAIL)
    if skipped_by_timeout:
        logger.warning("Global timeout: %d entries skipped", skipped_by_timeout)

    return CheckReport(results=ordered, catalog_path=catalog_path, live=live)


def print_report(report: CheckReport) -> None:
    """Print a check report to the console.

    Displays a summary followed by section number, title and detail of every
    entry that did not pass.

    Examples:
        >>> print_report(report)
        Check Summary:
          Catalog: cheatsheet.md (offline)
          Entries: 3 checked (2 passed, 0 skipped)
          Failures: 1 syntax errors, 0 runtime errors

        Entry Details:
        ❌ SYNTAX_ERROR §2 Broken (line 7, column 15): syntax error at or near "WHERE"
    """
    print(report.to_console_summary())
