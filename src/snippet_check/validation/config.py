"""Checker configuration constants and loading.

This module centralizes the knobs of a check run and the rules used to
classify server errors in live mode.

Classification (live mode, by SQLSTATE):
    - Grammar errors reported by the server -> SYNTAX_ERROR
    - Objects the snippet assumes exist (its fictional schema) -> SKIPPED
    - Statements that cannot run inside the always-rolled-back transaction -> SKIPPED
    - Anything else -> RUNTIME_ERROR
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional

import yaml

# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_CONCURRENCY = 4
DEFAULT_CONNECT_TIMEOUT = 10.0  # seconds to wait for a pooled connection
DEFAULT_CONNECT_RETRIES = 1
DEFAULT_SECTION_LEVEL = 2

DSN_ENV_VAR = "SNIPPET_CHECK_DSN"

# Fence info strings treated as SQL ("" = untagged fence)
DEFAULT_SQL_LANGUAGES: FrozenSet[str] = frozenset(
    {"", "sql", "postgres", "postgresql", "pgsql", "plpgsql", "psql"}
)


# ============================================================================
# SQLSTATE CLASSIFICATION
# ============================================================================

SYNTAX_SQLSTATES: FrozenSet[str] = frozenset(
    {
        "42601",  # syntax_error
        "42000",  # syntax_error_or_access_rule_violation
    }
)

# Undefined objects: the snippet relies on schema context that is not present
SCHEMA_CONTEXT_SQLSTATES: FrozenSet[str] = frozenset(
    {
        "42P01",  # undefined_table
        "42703",  # undefined_column
        "42883",  # undefined_function
        "42704",  # undefined_object
        "42P02",  # undefined_parameter
        "3F000",  # invalid_schema_name
        "3D000",  # invalid_catalog_name
    }
)

# Statements that refuse to run inside a transaction block
TRANSACTION_SQLSTATES: FrozenSet[str] = frozenset(
    {
        "25001",  # active_sql_transaction
        "2BP01",  # dependent_objects_still_exist
    }
)

# Class 08: connection exception
CONNECTION_SQLSTATE_CLASS = "08"


# ============================================================================
# RUN CONFIGURATION
# ============================================================================


@dataclass
class CheckerConfig:
    """Settings for one check run.

    Attributes:
        concurrency: Maximum number of entries checked at once (>= 1).
        timeout: Global timeout in seconds; None disables it.
        live: Execute snippets against a server in addition to parsing them.
        dsn: libpq connection string used in live mode.
        statement_timeout_ms: Per-statement server timeout in live mode.
        connect_timeout: Seconds to wait for a pooled connection.
        connect_retries: Retries after a transient connection failure.
        section_level: Markdown header level that starts a catalog section.
        sql_languages: Fence info strings treated as SQL.
    """

    concurrency: int = DEFAULT_CONCURRENCY
    timeout: Optional[float] = None
    live: bool = False
    dsn: Optional[str] = None
    statement_timeout_ms: Optional[int] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    connect_retries: int = DEFAULT_CONNECT_RETRIES
    section_level: int = DEFAULT_SECTION_LEVEL
    sql_languages: FrozenSet[str] = field(default_factory=lambda: DEFAULT_SQL_LANGUAGES)

    def __post_init__(self) -> None:
        self.sql_languages = frozenset(str(lang).lower() for lang in self.sql_languages)
        self.validate()

    def validate(self) -> None:
        """Raise ValueError if any field is out of range."""
        if int(self.concurrency) < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")
        if self.statement_timeout_ms is not None and self.statement_timeout_ms < 0:
            raise ValueError(
                f"statement_timeout_ms must be >= 0, got {self.statement_timeout_ms}"
            )
        if self.connect_retries < 0:
            raise ValueError(f"connect_retries must be >= 0, got {self.connect_retries}")
        if not 1 <= self.section_level <= 6:
            raise ValueError(f"section_level must be between 1 and 6, got {self.section_level}")

    def with_overrides(self, **overrides: Any) -> "CheckerConfig":
        """Return a copy with every non-None override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return CheckerConfig(**values)


def _config_keys() -> FrozenSet[str]:
    return frozenset(f.name for f in fields(CheckerConfig))


def load_config(path: Optional[Path] = None) -> CheckerConfig:
    """Load a CheckerConfig from a YAML file.

    The file holds a mapping of CheckerConfig fields, optionally nested under a
    top-level ``checker:`` key. Missing fields keep their defaults. When no DSN
    is configured, the ``SNIPPET_CHECK_DSN`` environment variable is used.

    Args:
        path: YAML file to read. None returns the defaults.

    Returns:
        The resulting configuration.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If the YAML is invalid, has unknown keys, or values are out of range.

    Examples:
        >>> load_config(Path("config/checker.yaml")).concurrency
        8
    """
    data: Dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        data = loaded.get("checker", loaded) or {}
        if not isinstance(data, dict):
            raise ValueError(f"'checker' section in {path} must be a mapping")

    unknown = set(data) - _config_keys()
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    if data.get("sql_languages") is not None:
        data["sql_languages"] = frozenset(data["sql_languages"])
    if not data.get("dsn"):
        data["dsn"] = os.environ.get(DSN_ENV_VAR) or None

    return CheckerConfig(**data)


def classify_sqlstate(sqlstate: Optional[str]) -> str:
    """Map a server SQLSTATE to a result category.

    Returns:
        One of "syntax", "schema_context", "transaction", "runtime".

    Examples:
        >>> classify_sqlstate("42P01")
        'schema_context'
        >>> classify_sqlstate("22012")
        'runtime'
    """
    if sqlstate in SYNTAX_SQLSTATES:
        return "syntax"
    if sqlstate in SCHEMA_CONTEXT_SQLSTATES:
        return "schema_context"
    if sqlstate in TRANSACTION_SQLSTATES:
        return "transaction"
    return "runtime"
