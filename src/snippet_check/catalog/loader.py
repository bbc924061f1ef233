"""Catalog loader: Markdown cheat sheet -> ordered CatalogEntry records.

A catalog is a Markdown document where every section header (by default a
level-2 ATX header, ``## 3. Create a table``) is followed by one or more
fenced code blocks holding the example SQL. The loader is a pure
transformation; it never touches a database.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^(#{1,6})[ \t]+(.*?)[ \t]*#*[ \t]*$")
_FENCE_OPEN_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})[ \t]*([^`]*?)[ \t]*$")
_NUMBERED_TITLE_RE = re.compile(r"^(\d+)(?:[.)]|[ \t])[ \t]*(.*)$")


class MalformedCatalog(ValueError):
    """Raised when the input document cannot be turned into a catalog."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class SnippetBlock:
    """One fenced code block.

    Attributes:
        line: Document line (1-based) of the block's first content line.
        language: Lower-cased first word of the fence info string ("" if none).
        text: Block content without the fences.
    """

    line: int
    language: str
    text: str


@dataclass(frozen=True)
class CatalogEntry:
    """One titled section of the catalog.

    Attributes:
        section_number: Unique, strictly increasing in document order.
        title: Section title with any numeric prefix removed.
        body: All fenced blocks of the section joined by newlines (non-empty).
        line: Document line (1-based) of the section header.
        blocks: The individual fenced blocks the body was built from.
    """

    section_number: int
    title: str
    body: str
    line: int = 0
    blocks: Tuple[SnippetBlock, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.body.strip():
            raise ValueError(f"Section {self.section_number} has an empty body")


@dataclass
class _Section:
    number: int
    title: str
    line: int
    blocks: List[SnippetBlock] = field(default_factory=list)


def _split_title(raw_title: str) -> Tuple[Optional[int], str]:
    match = _NUMBERED_TITLE_RE.match(raw_title)
    if not match:
        return None, raw_title
    return int(match.group(1)), match.group(2).strip() or raw_title


def _finish(section: _Section) -> CatalogEntry:
    if not section.blocks:
        raise MalformedCatalog(
            f"section {section.number} '{section.title}' has no fenced code block",
            section.line,
        )
    if not any(block.text.strip() for block in section.blocks):
        raise MalformedCatalog(
            f"section {section.number} '{section.title}' has only empty code blocks",
            section.line,
        )
    return CatalogEntry(
        section_number=section.number,
        title=section.title,
        body="\n".join(block.text for block in section.blocks),
        line=section.line,
        blocks=tuple(section.blocks),
    )


def load_catalog(text: str, section_level: int = 2) -> List[CatalogEntry]:
    """Parse a Markdown document into an ordered list of catalog entries.

    Args:
        text: Raw document text.
        section_level: Number of ``#`` characters marking a section header.
            Headers of any other level are treated as prose.

    Returns:
        Entries in document order.

    Raises:
        MalformedCatalog: If a section has no code block, a code block sits
            outside any section, a fence is unterminated, section numbers do
            not increase, or the document has no sections.

    Examples:
        >>> entries = load_catalog("## 1. Select\\n```sql\\nSELECT 1;\\n```\\n")
        >>> entries[0].section_number, entries[0].title, entries[0].body
        (1, 'Select', 'SELECT 1;')
    """
    if not 1 <= section_level <= 6:
        raise ValueError(f"section_level must be between 1 and 6, got {section_level}")

    entries: List[CatalogEntry] = []
    current: Optional[_Section] = None
    last_number = 0

    # Open fence state: (fence char, fence length, language, start line, content lines)
    fence: Optional[Tuple[str, int, str, int, List[str]]] = None

    for lineno, line in enumerate(text.splitlines(), start=1):
        if fence is not None:
            char, length, language, start, content = fence
            stripped = line.strip()
            if (
                len(line) - len(line.lstrip(" ")) <= 3
                and stripped
                and set(stripped) == {char}
                and len(stripped) >= length
            ):
                if current is None:
                    raise MalformedCatalog("code block appears before the first section", start)
                current.blocks.append(
                    SnippetBlock(line=start + 1, language=language, text="\n".join(content))
                )
                fence = None
            else:
                content.append(line)
            continue

        opening = _FENCE_OPEN_RE.match(line)
        if opening:
            marker, info = opening.group(2), opening.group(3)
            # Backtick fences may not carry backticks in their info string
            language = info.split()[0].lower() if info.split() else ""
            fence = (marker[0], len(marker), language, lineno, [])
            continue

        header = _HEADER_RE.match(line)
        if header and len(header.group(1)) == section_level:
            if current is not None:
                entries.append(_finish(current))
            explicit, title = _split_title(header.group(2))
            if explicit is None:
                number = last_number + 1
            elif explicit <= last_number:
                raise MalformedCatalog(
                    f"section number {explicit} does not follow {last_number}", lineno
                )
            else:
                number = explicit
            last_number = number
            current = _Section(number=number, title=title, line=lineno)

    if fence is not None:
        raise MalformedCatalog("unterminated code block", fence[3])
    if current is not None:
        entries.append(_finish(current))
    if not entries:
        raise MalformedCatalog(f"no level-{section_level} section headers found")

    logger.debug("Loaded %d catalog entries", len(entries))
    return entries


def load_catalog_file(path: Path, section_level: int = 2) -> List[CatalogEntry]:
    """Read a catalog document from disk and parse it.

    Raises:
        FileNotFoundError: If the path does not exist.
        MalformedCatalog: If the file cannot be read, is not valid UTF-8 or is not
            a valid catalog.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedCatalog(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise MalformedCatalog(f"cannot read {path}: {e}") from e
    return load_catalog(text, section_level=section_level)
