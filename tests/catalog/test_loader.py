"""Tests for the Markdown catalog loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from snippet_check.catalog import CatalogEntry, MalformedCatalog, load_catalog, load_catalog_file


def test_sections_in_document_order(sample_entries):
    assert [e.section_number for e in sample_entries] == [1, 2, 3, 4, 5, 6]
    assert [e.title for e in sample_entries] == [
        "Connect to a database",
        "Create a table",
        "Select all rows",
        "Window functions",
        "Dump a database",
        "JSON operators",
    ]


def test_body_and_block_metadata(sample_entries):
    select = sample_entries[2]
    assert select.body == "SELECT * FROM users;"
    assert len(select.blocks) == 1
    assert select.blocks[0].language == "sql"
    # "## 3. Select all rows" header, blank line, fence, then content
    assert select.blocks[0].line == select.line + 3


def test_multiple_blocks_are_concatenated(sample_entries):
    window = sample_entries[3]
    assert len(window.blocks) == 2
    assert window.body == "\n".join(b.text for b in window.blocks)
    assert "row_number()" in window.body
    assert "rank()" in window.body


def test_loading_is_idempotent(sample_text):
    assert load_catalog(sample_text) == load_catalog(sample_text)


def test_section_without_code_block_is_malformed():
    text = "## 1. First\n\n```sql\nSELECT 1;\n```\n\n## 2. Prose only\n\nNo code here.\n"
    with pytest.raises(MalformedCatalog, match="no fenced code block") as excinfo:
        load_catalog(text)
    assert excinfo.value.line == 7


def test_empty_code_block_is_malformed():
    text = "## 1. Empty\n\n```sql\n\n```\n"
    with pytest.raises(MalformedCatalog, match="only empty code blocks"):
        load_catalog(text)


def test_unterminated_fence_is_malformed():
    text = "## 1. Open\n\n```sql\nSELECT 1;\n"
    with pytest.raises(MalformedCatalog, match="unterminated") as excinfo:
        load_catalog(text)
    assert excinfo.value.line == 3


def test_code_before_first_section_is_malformed():
    text = "```sql\nSELECT 1;\n```\n\n## 1. First\n\n```sql\nSELECT 2;\n```\n"
    with pytest.raises(MalformedCatalog, match="before the first section"):
        load_catalog(text)


def test_no_sections_is_malformed():
    with pytest.raises(MalformedCatalog, match="no level-2 section headers"):
        load_catalog("# Title\n\nJust prose.\n")


def test_section_numbers_must_increase():
    text = "## 2. B\n```sql\nSELECT 2;\n```\n## 1. A\n```sql\nSELECT 1;\n```\n"
    with pytest.raises(MalformedCatalog, match="does not follow 2"):
        load_catalog(text)


def test_unnumbered_titles_are_numbered_sequentially():
    text = (
        "## Alpha\n```sql\nSELECT 1;\n```\n"
        "## 10) Beta\n```sql\nSELECT 2;\n```\n"
        "## Gamma\n```sql\nSELECT 3;\n```\n"
    )
    entries = load_catalog(text)
    assert [(e.section_number, e.title) for e in entries] == [
        (1, "Alpha"),
        (10, "Beta"),
        (11, "Gamma"),
    ]


def test_headers_inside_fences_are_content():
    text = "## 1. Comment\n\n~~~sql\n## not a header\nSELECT 1;\n~~~\n"
    entries = load_catalog(text)
    assert len(entries) == 1
    assert entries[0].body == "## not a header\nSELECT 1;"


def test_longer_closing_fence_and_other_header_levels():
    text = (
        "# Title\n"
        "## 1. First\n"
        "### Detail\n"
        "````\nSELECT 1;\n`````\n"
    )
    entries = load_catalog(text)
    assert len(entries) == 1
    assert entries[0].blocks[0].language == ""
    assert entries[0].body == "SELECT 1;"


def test_custom_section_level():
    text = "# 1. Top\n\n```sql\nSELECT 1;\n```\n\n# 2. Next\n\n```sql\nSELECT 2;\n```\n"
    entries = load_catalog(text, section_level=1)
    assert [e.title for e in entries] == ["Top", "Next"]


def test_catalog_entry_rejects_empty_body():
    with pytest.raises(ValueError, match="empty body"):
        CatalogEntry(section_number=1, title="Empty", body="   ")


def test_load_catalog_file(catalog_file: Path, sample_entries):
    assert load_catalog_file(catalog_file) == sample_entries


def test_load_catalog_file_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_catalog_file(tmp_path / "missing.md")


def test_load_catalog_file_not_utf8(tmp_path: Path):
    path = tmp_path / "latin1.md"
    path.write_bytes("## 1. Café\n```sql\nSELECT 'é';\n```\n".encode("latin-1"))
    with pytest.raises(MalformedCatalog, match="not valid UTF-8"):
        load_catalog_file(path)


def test_load_catalog_file_unreadable(tmp_path: Path):
    with pytest.raises(MalformedCatalog, match="cannot read"):
        load_catalog_file(tmp_path)
