"""Read-only gate applied to every SQL string before it reaches the warehouse."""

from __future__ import annotations

import re

from bqmcp.serving.services.errors import ForbiddenOperationError

FORBIDDEN_KEYWORDS: tuple[str, ...] = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "CREATE",
    "DROP",
    "ALTER",
    "MERGE",
    "TRUNCATE",
    "GRANT",
    "REVOKE",
    "EXECUTE",
    "BEGIN",
    "COMMIT",
    "ROLLBACK",
)

# Word boundaries keep identifiers such as created_by or deleted_at legal.
# String literals and comments are not stripped, so a keyword there still rejects.
_FORBIDDEN_PATTERN = re.compile(
    r"\b(" + "|".join(FORBIDDEN_KEYWORDS) + r")\b",
    re.IGNORECASE,
)


def find_forbidden_keyword(sql: str) -> str | None:
    """
    Return the first forbidden keyword in ``sql``, upper-cased, or None.

    Parameters
    ----------
    sql:
        Raw SQL text.

    Returns
    -------
    str | None
        Matched keyword or None when the text is read-only.
    """
    match = _FORBIDDEN_PATTERN.search(sql)
    if match is None:
        return None
    return match.group(1).upper()


def check_read_only(sql: str) -> None:
    """
    Reject SQL that contains any statement keyword with side effects.

    Raises
    ------
    ForbiddenOperationError
        Naming the first forbidden keyword found.
    """
    keyword = find_forbidden_keyword(sql)
    if keyword is not None:
        raise ForbiddenOperationError(keyword)


__all__ = ["FORBIDDEN_KEYWORDS", "check_read_only", "find_forbidden_keyword"]
