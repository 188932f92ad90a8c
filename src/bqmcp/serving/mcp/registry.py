"""MCP request handlers for schema resources and the ``query`` tool."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from bqmcp.config.serving_models import DEFAULT_MAXIMUM_BYTES_BILLED
from bqmcp.serving.mcp.models import QueryRequest
from bqmcp.serving.mcp.query_service import QueryExecutor, serialize_rows
from bqmcp.serving.mcp.resources import CatalogResourceMapper
from bqmcp.serving.services.errors import ProblemError, UnknownToolError, log_problem

LOG = logging.getLogger("bqmcp.serving.mcp.registry")

QUERY_TOOL_NAME = "query"

QUERY_SQL_DESCRIPTION = """Execute a SQL query on the database.

IMPORTANT SQL FORMATTING RULES:
- ALL table names and column names MUST be wrapped in backticks (`table_name`, `column_name`)
- ALL aliases MUST use only alphanumeric characters and underscores (a-z, A-Z, 0-9, _)
- Non-ASCII characters are NOT allowed in aliases

Example:
SELECT `order_month` AS accounting_month, COUNT(*) AS data_count
FROM `sales.orders`
GROUP BY `order_month`"""

QUERY_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "sql": {
            "type": "string",
            "description": QUERY_SQL_DESCRIPTION,
        },
        "maximumBytesBilled": {
            "type": ["string", "number"],
            "description": "Maximum bytes billed (default: 1GB)",
            "default": DEFAULT_MAXIMUM_BYTES_BILLED,
        },
    },
    "required": ["sql"],
}

P = ParamSpec("P")
R = TypeVar("R")


def _logged(handler: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """
    Log ProblemError payloads before letting them reach the MCP server.

    Returns
    -------
    Callable[P, Awaitable[R]]
        Handler with identical behaviour plus structured error logging.
    """

    @wraps(handler)
    async def _inner(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await handler(*args, **kwargs)
        except ProblemError as exc:
            log_problem(LOG, exc.problem_detail)
            raise

    return _inner


@dataclass(frozen=True)
class McpHandlers:
    """Protocol-facing operations bound to one mapper and one executor."""

    resources: CatalogResourceMapper
    executor: QueryExecutor

    @_logged
    async def list_resources(self) -> list[types.Resource]:
        """
        List every table and view as a schema resource.

        Returns
        -------
        list[types.Resource]
            MCP resource descriptors.
        """
        descriptors = await self.resources.list_resources()
        return [
            types.Resource(
                uri=descriptor.uri,
                name=descriptor.name,
                mimeType=descriptor.mime_type,
            )
            for descriptor in descriptors
        ]

    @_logged
    async def read_resource(self, uri: str) -> list[ReadResourceContents]:
        """
        Read a schema resource.

        Returns
        -------
        list[ReadResourceContents]
            Single JSON content item with the table's fields.
        """
        contents = await self.resources.read_resource(uri)
        return [ReadResourceContents(content=contents.text, mime_type=contents.mime_type)]

    async def list_tools(self) -> list[types.Tool]:
        """
        Advertise the read-only query tool.

        Returns
        -------
        list[types.Tool]
            The ``query`` tool definition.
        """
        return [
            types.Tool(
                name=QUERY_TOOL_NAME,
                description="Run a read-only BigQuery SQL query",
                inputSchema=QUERY_INPUT_SCHEMA,
            )
        ]

    @_logged
    async def call_tool(
        self, name: str, arguments: dict[str, Any] | None
    ) -> list[types.TextContent]:
        """
        Execute a tool call.

        Returns
        -------
        list[types.TextContent]
            Query rows rendered as indented JSON.

        Raises
        ------
        UnknownToolError
            When ``name`` is not ``query``.
        """
        if name != QUERY_TOOL_NAME:
            raise UnknownToolError(name)
        request = QueryRequest.model_validate(arguments or {})
        result = await self.executor.execute(request)
        return [types.TextContent(type="text", text=serialize_rows(result.rows))]


def register_handlers(server: Server, handlers: McpHandlers) -> None:
    """Register resource and tool handlers on a low-level MCP server."""

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return await handlers.list_resources()

    @server.read_resource()
    async def read_resource(uri: Any) -> list[ReadResourceContents]:
        return await handlers.read_resource(str(uri))

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return await handlers.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        return await handlers.call_tool(name, arguments)


__all__ = [
    "QUERY_INPUT_SCHEMA",
    "QUERY_TOOL_NAME",
    "McpHandlers",
    "register_handlers",
]
