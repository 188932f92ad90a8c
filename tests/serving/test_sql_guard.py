"""Read-only gate tests."""

from __future__ import annotations

import pytest

from bqmcp.serving.mcp.sql_guard import FORBIDDEN_KEYWORDS, check_read_only, find_forbidden_keyword
from bqmcp.serving.services.errors import ForbiddenOperationError


@pytest.mark.parametrize("keyword", FORBIDDEN_KEYWORDS)
@pytest.mark.parametrize("transform", [str.upper, str.lower, str.capitalize])
def test_forbidden_keyword_any_casing(keyword: str, transform: object) -> None:
    """Every forbidden keyword rejects regardless of casing."""
    word = transform(keyword)  # type: ignore[operator]
    sql = f"SELECT 1; {word} something"
    with pytest.raises(ForbiddenOperationError) as excinfo:
        check_read_only(sql)
    if excinfo.value.keyword != keyword:
        pytest.fail(f"Expected {keyword}, got {excinfo.value.keyword}")


def test_drop_table_names_drop() -> None:
    """DROP statements name the offending keyword."""
    with pytest.raises(ForbiddenOperationError) as excinfo:
        check_read_only("DROP TABLE sales.orders")
    if excinfo.value.keyword != "DROP":
        pytest.fail(f"Unexpected keyword: {excinfo.value.keyword}")
    if "DROP" not in str(excinfo.value):
        pytest.fail("Error message should name DROP")


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT created_by, deleted_at FROM `acme-data.sales.orders`",
        "SELECT updated_ts, inserted_rows FROM t",
        "SELECT * FROM merge_requests JOIN dropbox_files USING (id)",
        "SELECT began_at, committer, rollback_count, executed FROM audit",
        "WITH grants_view AS (SELECT 1 AS x) SELECT x FROM grants_view",
    ],
)
def test_embedded_substrings_pass(sql: str) -> None:
    """Identifiers that merely contain a keyword are allowed."""
    check_read_only(sql)
    if find_forbidden_keyword(sql) is not None:
        pytest.fail(f"Unexpected forbidden keyword in {sql!r}")


def test_keyword_inside_string_literal_rejects() -> None:
    """String literals are not exempt from the scan."""
    with pytest.raises(ForbiddenOperationError):
        check_read_only("SELECT * FROM logs WHERE message = 'please delete me'")


def test_keyword_inside_comment_rejects() -> None:
    """Comments are not exempt from the scan."""
    with pytest.raises(ForbiddenOperationError):
        check_read_only("SELECT 1 -- TODO: truncate later")


def test_first_keyword_is_reported() -> None:
    """The earliest match in the text is the one reported."""
    if find_forbidden_keyword("select 1; insert into t values (1); drop table t") != "INSERT":
        pytest.fail("Expected INSERT to be reported first")


def test_plain_select_passes() -> None:
    """Ordinary SELECT text passes."""
    check_read_only("SELECT COUNT(*) AS n FROM `acme-data.sales.orders` WHERE amount > 10")
