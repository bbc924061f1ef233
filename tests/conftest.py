"""Shared pytest configuration and fixtures for catalog testing."""

from pathlib import Path
from typing import List

import pytest

from snippet_check.catalog import CatalogEntry, load_catalog

SAMPLE_CATALOG = """\
# PostgreSQL Cheat Sheet

A few commonly used commands.

## 1. Connect to a database

```psql
\\c mydb
```

## 2. Create a table

```sql
CREATE TABLE users (
    id serial PRIMARY KEY,
    name text NOT NULL
);
```

## 3. Select all rows

```sql
SELECT * FROM users;
```

## 4. Window functions

```sql
SELECT name, row_number() OVER (ORDER BY id) FROM users;
```

```sql
SELECT name, rank() OVER (PARTITION BY name ORDER BY id) FROM users;
```

## 5. Dump a database

```bash
pg_dump mydb > mydb.sql
```

## 6. JSON operators

```sql
SELECT data->>'name' FROM events WHERE data @> '{"kind": "click"}';
```
"""

BROKEN_CATALOG = """\
## 1. Select all rows

```sql
SELECT * FROM users;
```

## 2. Broken select

```sql
SELECT * FROM WHERE;
```
"""


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_CATALOG


@pytest.fixture
def sample_entries() -> List[CatalogEntry]:
    return load_catalog(SAMPLE_CATALOG)


@pytest.fixture
def broken_entries() -> List[CatalogEntry]:
    return load_catalog(BROKEN_CATALOG)


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """Sample catalog written to disk."""
    path = tmp_path / "cheatsheet.md"
    path.write_text(SAMPLE_CATALOG, encoding="utf-8")
    return path


@pytest.fixture
def broken_catalog_file(tmp_path: Path) -> Path:
    path = tmp_path / "broken.md"
    path.write_text(BROKEN_CATALOG, encoding="utf-8")
    return path
