"""Warehouse adapters used by the MCP surface."""

from bqmcp.serving.backend.warehouse import (
    BigQueryWarehouse,
    DuckDBWarehouse,
    WarehouseClient,
    WarehouseResource,
    build_warehouse_resource,
)

__all__ = [
    "BigQueryWarehouse",
    "DuckDBWarehouse",
    "WarehouseClient",
    "WarehouseResource",
    "build_warehouse_resource",
]
