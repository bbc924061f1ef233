import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog

from snippet_check.catalog.loader import MalformedCatalog, load_catalog_file
from snippet_check.validation.config import CheckerConfig, load_config

try:
    # Prefer package-defined version
    from snippet_check import __version__ as _PACKAGE_VERSION
except ImportError:  # pragma: no cover
    _PACKAGE_VERSION = "unknown"  # type: ignore[assignment]

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_BAD_INPUT = 2
EXIT_DATABASE = 3


def setup_logging(
    verbose: bool = False, warnings_only: bool = False, errors_only: bool = False
) -> None:
    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    log_format = (
        "%(asctime)s:%(levelname)s:%(name)s in %(filename)s:%(funcName)s:%(lineno)d: %(message)s"
    )
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    stream_handler = colorlog.StreamHandler()
    formatter = colorlog.ColoredFormatter(f"%(log_color)s{log_format}", log_colors=log_colors)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    if errors_only:
        logger.setLevel(logging.ERROR)
    elif warnings_only:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _resolve_config(args: argparse.Namespace) -> CheckerConfig:
    """Merge the config file (if any) with command-line overrides."""
    config_path = getattr(args, "config", None)
    config = load_config(Path(config_path) if config_path else None)
    return config.with_overrides(
        live=True if getattr(args, "live", False) else None,
        dsn=getattr(args, "dsn", None),
        timeout=getattr(args, "timeout", None),
        concurrency=getattr(args, "concurrency", None),
        section_level=getattr(args, "section_level", None),
        statement_timeout_ms=getattr(args, "statement_timeout", None),
    )


def _report_path(option, catalog_path: Path, suffix: str) -> Path:
    if option is True:
        report_dir = catalog_path.parent
    else:
        report_dir = Path(option)
        report_dir.mkdir(parents=True, exist_ok=True)
    return report_dir / f"{catalog_path.stem}_check.{suffix}"


def cmd_check(args: argparse.Namespace) -> int:
    """Check every snippet of a catalog document.

    Returns:
        0 if every entry passed or was skipped
        1 if any entry has a syntax or runtime error
        2 if the catalog could not be loaded or the arguments are invalid
        3 if the live database could not be reached
    """
    from snippet_check.validation.registry import build_checker, print_report, run_checks

    catalog_path = Path(args.path).resolve()

    try:
        config = _resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        logging.error("Invalid configuration: %s", e)
        return EXIT_BAD_INPUT

    if config.live and not config.dsn:
        logging.error("--live requires --dsn (or a dsn in the config file / $SNIPPET_CHECK_DSN)")
        return EXIT_BAD_INPUT

    try:
        entries = load_catalog_file(catalog_path, section_level=config.section_level)
    except FileNotFoundError as e:
        logging.error("%s", e)
        return EXIT_BAD_INPUT
    except MalformedCatalog as e:
        logging.error("Malformed catalog %s: %s", catalog_path, e)
        return EXIT_BAD_INPUT
    logging.info("Loaded %d entries from %s", len(entries), catalog_path)

    pool = None
    if config.live:
        import psycopg

        from snippet_check.validation.checks.live import open_pool

        try:
            pool = open_pool(config.dsn, config.concurrency, config.connect_timeout)
        except psycopg.Error as e:
            logging.error("Could not open database connection pool: %s", e)
            return EXIT_DATABASE

    try:
        checker = build_checker(config, pool=pool)
        report = run_checks(
            entries,
            checker,
            concurrency=config.concurrency,
            timeout=config.timeout,
            progress=not args.no_progress and sys.stderr.isatty(),
            catalog_path=catalog_path,
            live=config.live,
        )
    finally:
        if pool is not None:
            pool.close()

    if args.format == "json":
        print(report.to_json())
    else:
        print_report(report)

    # Generate markdown report if requested
    if args.report:
        report_path = _report_path(args.report, catalog_path, "md")
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(report.to_markdown())
        logging.info("Markdown report saved: %s", report_path)

    # Generate JSON report if requested
    if args.report_json:
        report_path = _report_path(args.report_json, catalog_path, "json")
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(report.to_json())
        logging.info("JSON report saved: %s", report_path)

    if report.has_failures():
        logging.error(
            "%d of %d entries failed",
            len([r for r in report.results if r.outcome.is_failure]),
            len(report.results),
        )
    return report.exit_code()


def cmd_list(args: argparse.Namespace) -> int:
    """Print the entries the loader finds in a catalog document."""
    try:
        config = _resolve_config(args)
        entries = load_catalog_file(Path(args.path), section_level=config.section_level)
    except FileNotFoundError as e:
        logging.error("%s", e)
        return EXIT_BAD_INPUT
    except MalformedCatalog as e:
        logging.error("Malformed catalog %s: %s", args.path, e)
        return EXIT_BAD_INPUT
    except ValueError as e:
        logging.error("Invalid configuration: %s", e)
        return EXIT_BAD_INPUT

    for entry in entries:
        languages = ",".join(sorted({b.language or "-" for b in entry.blocks}))
        print(
            f"{entry.section_number}. {entry.title} "
            f"({len(entry.blocks)} blocks [{languages}], line {entry.line})"
        )
    return EXIT_OK


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="snippet-check",
        description=f"PostgreSQL snippet catalog checker (v{_PACKAGE_VERSION})",
    )
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    p.add_argument(
        "--warnings-only",
        action="store_true",
        help="Show only warnings and errors (overrides --verbose)",
    )
    p.add_argument(
        "--errors-only",
        action="store_true",
        help="Show only errors (overrides --warnings-only and --verbose)",
    )

    sub = p.add_subparsers(dest="command", required=True)

    p_check = sub.add_parser("check", help="Check every snippet of a catalog document")
    p_check.add_argument("path", help="Markdown catalog (section headers + fenced SQL blocks)")
    p_check.add_argument(
        "--live",
        action="store_true",
        help="Also execute snippets against a server (always rolled back)",
    )
    p_check.add_argument(
        "--dsn",
        default=None,
        help="libpq connection string for --live (defaults to $SNIPPET_CHECK_DSN)",
    )
    p_check.add_argument(
        "--timeout",
        type=_non_negative_float,
        default=None,
        help="Global timeout in seconds; unchecked entries are reported as skipped",
    )
    p_check.add_argument(
        "--concurrency",
        type=_positive_int,
        default=None,
        help="Maximum number of entries checked at once (default 4)",
    )
    p_check.add_argument(
        "--statement-timeout",
        type=_positive_int,
        default=None,
        help="Per-statement server timeout in milliseconds (live mode)",
    )
    p_check.add_argument(
        "--section-level",
        type=int,
        choices=range(1, 7),
        default=None,
        help="Markdown header level that starts a section (default 2)",
    )
    p_check.add_argument("--config", default=None, help="YAML config file")
    p_check.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Console output format (default text)",
    )
    p_check.add_argument(
        "--report",
        nargs="?",
        const=True,
        default=False,
        help="Write a Markdown report next to the catalog. Optionally specify a directory.",
    )
    p_check.add_argument(
        "--report-json",
        nargs="?",
        const=True,
        default=False,
        help="Write a JSON report next to the catalog. Optionally specify a directory.",
    )
    p_check.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    p_check.set_defaults(func=cmd_check)

    p_list = sub.add_parser("list", help="List the entries found in a catalog document")
    p_list.add_argument("path", help="Markdown catalog")
    p_list.add_argument(
        "--section-level",
        type=int,
        choices=range(1, 7),
        default=None,
        help="Markdown header level that starts a section (default 2)",
    )
    p_list.add_argument("--config", default=None, help="YAML config file")
    p_list.set_defaults(func=cmd_list)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        verbose=bool(args.verbose),
        warnings_only=bool(getattr(args, "warnings_only", False)),
        errors_only=bool(getattr(args, "errors_only", False)),
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
