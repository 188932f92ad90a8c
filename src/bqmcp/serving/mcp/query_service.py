"""
Read-only query execution for the ``query`` MCP tool.

Every SQL string passes the read-only gate, is qualified when it mentions
INFORMATION_SCHEMA, and only then reaches the warehouse. Warehouse errors
are logged and re-raised untouched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from bqmcp.config.serving_models import ServerConfig
from bqmcp.serving.backend.warehouse import WarehouseClient
from bqmcp.serving.mcp.models import QueryRequest, QueryResult
from bqmcp.serving.mcp.qualifier import mentions_information_schema, qualify_information_schema
from bqmcp.serving.mcp.sql_guard import check_read_only

LOG = logging.getLogger("bqmcp.serving.mcp.query_service")


def serialize_rows(rows: list[dict[str, object]]) -> str:
    """
    Render result rows as indented JSON.

    Values JSON cannot represent natively (dates, decimals, bytes) use ``str``.

    Returns
    -------
    str
        JSON array text.
    """
    return json.dumps(rows, indent=2, default=str)


@dataclass(frozen=True)
class QueryExecutor:
    """Gate, qualify, and run SQL against the configured warehouse."""

    warehouse: WarehouseClient
    config: ServerConfig

    def prepare(self, sql: str) -> str:
        """
        Apply the read-only gate and INFORMATION_SCHEMA qualification.

        Parameters
        ----------
        sql:
            SQL text supplied by the caller.

        Returns
        -------
        str
            SQL ready for submission.
        """
        check_read_only(sql)
        if mentions_information_schema(sql):
            return qualify_information_schema(sql, self.config.project_id)
        return sql

    async def execute(self, request: QueryRequest) -> QueryResult:
        """
        Run one read-only query.

        Parameters
        ----------
        request:
            SQL plus the bytes-billed ceiling forwarded verbatim.

        Returns
        -------
        QueryResult
            Rows with ``is_error`` set to False.
        """
        sql = self.prepare(request.sql)
        try:
            rows = await self.warehouse.run_query(
                sql,
                location=self.config.location,
                maximum_bytes_billed=str(request.maximum_bytes_billed),
            )
        except Exception:
            LOG.exception("Query failed: %s", sql)
            raise
        LOG.debug("Query returned %d rows", len(rows))
        return QueryResult(rows=rows, is_error=False)


__all__ = ["QueryExecutor", "serialize_rows"]
