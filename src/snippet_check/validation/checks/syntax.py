"""Offline syntax check.

Parses every SQL block of an entry with the real PostgreSQL grammar (via
pglast/libpg_query). Nothing is executed, so snippets that reference tables
from their own fictional schema still pass as long as they are well formed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple

from pglast import parse_sql
from pglast.parser import ParseError

from snippet_check.catalog.loader import CatalogEntry, SnippetBlock
from snippet_check.core.enums import Outcome
from snippet_check.core.utils import blank_meta_commands, char_offset, line_and_column, token_at
from ..config import DEFAULT_SQL_LANGUAGES
from ..models import CheckResult, SourceLocation

logger = logging.getLogger(__name__)

# Ends the last statement of a block that has no trailing semicolon
BLOCK_SEPARATOR = "\n;\n"


@dataclass(frozen=True)
class PreparedSql:
    """SQL text assembled from an entry's SQL blocks.

    Attributes:
        text: SQL blocks joined by BLOCK_SEPARATOR, psql meta-commands blanked out.
        segments: (offset into ``text``, source block) for each SQL block.
        meta_commands: Number of psql meta-command lines that were blanked.
        ignored_blocks: Number of non-SQL blocks left out.
    """

    text: str
    segments: Tuple[Tuple[int, SnippetBlock], ...]
    meta_commands: int = 0
    ignored_blocks: int = 0

    def location(self, offset: int) -> SourceLocation:
        """Map a 0-based offset into ``text`` back to a document position."""
        start, block = self.segments[0]
        for seg_start, seg_block in self.segments:
            if seg_start > offset:
                break
            start, block = seg_start, seg_block
        line, column = line_and_column(block.text, offset - start)
        return SourceLocation(line=block.line + line - 1, column=column)


def prepare_sql(
    entry: CatalogEntry, sql_languages: FrozenSet[str] = DEFAULT_SQL_LANGUAGES
) -> PreparedSql:
    """Assemble the parseable SQL of an entry.

    Entries built without block information are treated as a single untagged
    block starting right below the section header.
    """
    blocks = entry.blocks or (
        SnippetBlock(line=entry.line + 1 if entry.line else 1, language="", text=entry.body),
    )
    parts = []
    segments = []
    offset = 0
    meta = 0
    ignored = 0
    for block in blocks:
        if block.language not in sql_languages:
            ignored += 1
            continue
        text, removed = blank_meta_commands(block.text)
        meta += removed
        segments.append((offset, block))
        parts.append(text)
        offset += len(text) + len(BLOCK_SEPARATOR)
    return PreparedSql(
        text=BLOCK_SEPARATOR.join(parts),
        segments=tuple(segments),
        meta_commands=meta,
        ignored_blocks=ignored,
    )


class SyntaxChecker:
    """Check entries against the PostgreSQL grammar without a database."""

    def __init__(self, sql_languages: FrozenSet[str] = DEFAULT_SQL_LANGUAGES) -> None:
        self.sql_languages = frozenset(sql_languages)

    def prepare(self, entry: CatalogEntry) -> PreparedSql:
        return prepare_sql(entry, self.sql_languages)

    def check(self, entry: CatalogEntry) -> CheckResult:
        """Parse the entry's SQL and return PASSED, SYNTAX_ERROR or SKIPPED."""
        prepared = self.prepare(entry)

        if not prepared.segments:
            return CheckResult(
                entry=entry,
                outcome=Outcome.SKIPPED,
                detail=f"no SQL code blocks ({prepared.ignored_blocks} non-SQL blocks ignored)",
            )
        if not prepared.text.strip():
            return CheckResult(
                entry=entry,
                outcome=Outcome.SKIPPED,
                detail="contains only psql meta-commands",
            )

        try:
            statements = parse_sql(prepared.text)
        except ParseError as e:
            return self._syntax_error(entry, prepared, e)

        if not statements:
            return CheckResult(
                entry=entry,
                outcome=Outcome.SKIPPED,
                detail="contains no SQL statements",
            )

        logger.debug(
            "Section %d parsed: %d statements", entry.section_number, len(statements)
        )
        return CheckResult(entry=entry, outcome=Outcome.PASSED)

    @staticmethod
    def _syntax_error(entry: CatalogEntry, prepared: PreparedSql, error: ParseError) -> CheckResult:
        message = str(error.args[0]) if error.args else str(error)
        # libpg_query reports a 1-based UTF-8 byte position, 0 when unknown
        cursor: Optional[int] = error.args[1] if len(error.args) > 1 else None
        location = None
        token = None
        if cursor:
            offset = min(char_offset(prepared.text, cursor - 1), len(prepared.text))
            location = prepared.location(offset)
            token = token_at(prepared.text, offset)
        return CheckResult(
            entry=entry,
            outcome=Outcome.SYNTAX_ERROR,
            detail=message,
            location=location,
            token=token,
        )
