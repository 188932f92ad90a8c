"""Fully qualify INFORMATION_SCHEMA.TABLES references with the serving project."""

from __future__ import annotations

import re

from bqmcp.serving.services.errors import UnqualifiedCatalogReferenceError

INFORMATION_SCHEMA_MARKER = "INFORMATION_SCHEMA"

_TABLES_REFERENCE = re.compile(
    r"FROM\s+(?:(\w+)\.)?INFORMATION_SCHEMA\.TABLES",
    re.IGNORECASE,
)


def mentions_information_schema(sql: str) -> bool:
    """Return True when the SQL text references the system catalog at all."""
    return INFORMATION_SCHEMA_MARKER in sql.upper()


def qualify_information_schema(sql: str, project_id: str) -> str:
    """
    Rewrite ``FROM dataset.INFORMATION_SCHEMA.TABLES`` to a project-qualified path.

    Parameters
    ----------
    sql:
        SQL text that already passed the read-only gate.
    project_id:
        Project used as the leading path component.

    Returns
    -------
    str
        SQL with every match replaced by
        ``FROM `<project>.<dataset>.INFORMATION_SCHEMA.TABLES```; all other text
        is left as is. SQL without the marker is returned unchanged.

    Raises
    ------
    UnqualifiedCatalogReferenceError
        When a match has no dataset prefix.
    """
    if not mentions_information_schema(sql):
        return sql

    def _qualify(match: re.Match[str]) -> str:
        dataset = match.group(1)
        if not dataset:
            raise UnqualifiedCatalogReferenceError(match.group(0))
        return f"FROM `{project_id}.{dataset}.INFORMATION_SCHEMA.TABLES`"

    return _TABLES_REFERENCE.sub(_qualify, sql)


__all__ = [
    "INFORMATION_SCHEMA_MARKER",
    "mentions_information_schema",
    "qualify_information_schema",
]
