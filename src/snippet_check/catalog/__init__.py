"""Catalog loading for Snippet Check."""

from __future__ import annotations

from .loader import (
    CatalogEntry,
    MalformedCatalog,
    SnippetBlock,
    load_catalog,
    load_catalog_file,
)

__all__ = [
    "CatalogEntry",
    "MalformedCatalog",
    "SnippetBlock",
    "load_catalog",
    "load_catalog_file",
]
