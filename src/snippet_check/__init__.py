"""Snippet Check — verify the SQL examples of a PostgreSQL cheat sheet.

The package loads a Markdown catalog of titled SQL snippets, checks each
snippet against the PostgreSQL grammar (and optionally a live server), and
reports which sections pass.
"""

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
