"""MCP server exposing BigQuery schemas and a read-only query tool."""

from __future__ import annotations

import logging
from collections.abc import Callable

from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from bqmcp.config.serving_models import ServerConfig, validate_config
from bqmcp.serving.backend.warehouse import WarehouseResource, build_warehouse_resource
from bqmcp.serving.mcp.query_service import QueryExecutor
from bqmcp.serving.mcp.registry import McpHandlers, register_handlers
from bqmcp.serving.mcp.resources import CatalogResourceMapper

SERVER_NAME = "mcp-server/bigquery"
SERVER_VERSION = "0.1.0"

LOG = logging.getLogger("bqmcp.serving.mcp.server")

WarehouseFactory = Callable[[ServerConfig], WarehouseResource]
RegisterFn = Callable[[Server, McpHandlers], None]


def create_mcp_server(
    cfg: ServerConfig | None = None,
    *,
    warehouse_factory: WarehouseFactory = build_warehouse_resource,
    register_fn: RegisterFn = register_handlers,
) -> tuple[Server, Callable[[], None]]:
    """
    Create the MCP server instance plus shutdown hook.

    Parameters
    ----------
    cfg:
        Optional pre-validated ServerConfig. When omitted, environment variables
        are read and validated here.
    warehouse_factory:
        Builds the warehouse client and its close hook.
    register_fn:
        Installs request handlers on the server.

    Returns
    -------
    tuple[Server, Callable[[], None]]
        Configured MCP server and shutdown callback.
    """
    if cfg is None:
        cfg = ServerConfig.from_env()
        validate_config(cfg)

    LOG.info(
        "Initializing BigQuery with project ID: %s and location: %s",
        cfg.project_id,
        cfg.location,
    )
    resource = warehouse_factory(cfg)
    handlers = McpHandlers(
        resources=CatalogResourceMapper(warehouse=resource.warehouse, project_id=cfg.project_id),
        executor=QueryExecutor(warehouse=resource.warehouse, config=cfg),
    )
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)
    register_fn(server, handlers)
    return server, resource.close


async def serve_stdio(server: Server) -> None:
    """Serve MCP requests over stdin/stdout until the client disconnects."""
    async with stdio_server() as (read_stream, write_stream):
        LOG.info("BigQuery MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


__all__ = ["SERVER_NAME", "SERVER_VERSION", "create_mcp_server", "serve_stdio"]
