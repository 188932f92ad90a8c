"""Warehouse client adapters consumed by the catalog mapper and query executor."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import duckdb
from anyio import to_thread
from google.cloud import bigquery

from bqmcp.config.serving_models import ServerConfig
from bqmcp.serving.mcp.models import TableMetadata
from bqmcp.serving.services.errors import DatabasePathMissingError

LOG = logging.getLogger("bqmcp.serving.backend.warehouse")

RowDict = dict[str, Any]


class WarehouseClient(Protocol):
    """Catalog and query operations the MCP surface needs from a warehouse."""

    async def list_datasets(self) -> list[str]:
        """Return dataset identifiers in warehouse order."""
        ...

    async def list_tables(self, dataset_id: str) -> list[str]:
        """Return table and view identifiers of one dataset in warehouse order."""
        ...

    async def get_table_metadata(self, dataset_id: str, table_id: str) -> TableMetadata:
        """Return the entity type and schema fields of one table or view."""
        ...

    async def run_query(
        self,
        sql: str,
        *,
        location: str,
        maximum_bytes_billed: str,
    ) -> list[RowDict]:
        """Execute SQL and return result rows as dictionaries."""
        ...

    def close(self) -> None:
        """Release client resources."""
        ...


class BigQueryWarehouse:
    """Adapter around ``google.cloud.bigquery.Client``."""

    def __init__(self, client: bigquery.Client) -> None:
        self.client = client

    @classmethod
    def from_config(cls, cfg: ServerConfig) -> BigQueryWarehouse:
        """
        Build a client for the configured project, using the key file when given.

        Returns
        -------
        BigQueryWarehouse
            Adapter wrapping a new BigQuery client.
        """
        if cfg.key_file is not None:
            LOG.info("Using service account key file: %s", cfg.key_file)
            client = bigquery.Client.from_service_account_json(
                str(cfg.key_file),
                project=cfg.project_id,
            )
        else:
            client = bigquery.Client(project=cfg.project_id)
        return cls(client)

    def _table_path(self, dataset_id: str, table_id: str) -> str:
        return f"{self.client.project}.{dataset_id}.{table_id}"

    def _list_datasets(self) -> list[str]:
        return [item.dataset_id for item in self.client.list_datasets()]

    def _list_tables(self, dataset_id: str) -> list[str]:
        return [item.table_id for item in self.client.list_tables(dataset_id)]

    def _get_table_metadata(self, dataset_id: str, table_id: str) -> TableMetadata:
        table = self.client.get_table(self._table_path(dataset_id, table_id))
        return TableMetadata(
            type=table.table_type,
            fields=[field.to_api_repr() for field in table.schema],
        )

    def _run_query(self, sql: str, location: str, maximum_bytes_billed: str) -> list[RowDict]:
        job_config = bigquery.QueryJobConfig(maximum_bytes_billed=maximum_bytes_billed)
        job = self.client.query(sql, job_config=job_config, location=location)
        return [dict(row.items()) for row in job.result()]

    async def list_datasets(self) -> list[str]:
        """
        List datasets of the client project.

        Returns
        -------
        list[str]
            Dataset identifiers.
        """
        return await to_thread.run_sync(self._list_datasets)

    async def list_tables(self, dataset_id: str) -> list[str]:
        """
        List tables and views in a dataset.

        Returns
        -------
        list[str]
            Table identifiers.
        """
        return await to_thread.run_sync(self._list_tables, dataset_id)

    async def get_table_metadata(self, dataset_id: str, table_id: str) -> TableMetadata:
        """
        Fetch table metadata; BigQuery's NotFound propagates unchanged.

        Returns
        -------
        TableMetadata
            Table type and API-shaped schema fields.
        """
        return await to_thread.run_sync(self._get_table_metadata, dataset_id, table_id)

    async def run_query(
        self,
        sql: str,
        *,
        location: str,
        maximum_bytes_billed: str,
    ) -> list[RowDict]:
        """
        Run a query job and wait for its rows.

        Returns
        -------
        list[RowDict]
            Result rows keyed by column name.
        """
        return await to_thread.run_sync(self._run_query, sql, location, maximum_bytes_billed)

    def close(self) -> None:
        """Close the underlying HTTP transport."""
        self.client.close()


class DuckDBWarehouse:
    """
    Local stand-in for BigQuery backed by a DuckDB database.

    DuckDB schemas play the role of datasets. Fields are reported in the
    BigQuery schema shape (``name``/``type``/``mode``) so resource payloads
    look the same in both modes. Location and billing limits do not apply
    and are ignored.
    """

    def __init__(self, con: duckdb.DuckDBPyConnection) -> None:
        self.con = con

    @classmethod
    def open(cls, db_path: Path) -> DuckDBWarehouse:
        """
        Open a read-only DuckDB connection.

        Returns
        -------
        DuckDBWarehouse
            Adapter bound to the database file.
        """
        return cls(duckdb.connect(str(db_path), read_only=True))

    def _fetch(self, sql: str, params: list[object] | None = None) -> list[tuple[Any, ...]]:
        cursor = self.con.cursor()
        try:
            return cursor.execute(sql, params or []).fetchall()
        finally:
            cursor.close()

    def _list_datasets(self) -> list[str]:
        rows = self._fetch(
            """
            SELECT schema_name
            FROM information_schema.schemata
            WHERE catalog_name = current_database()
              AND schema_name NOT IN ('information_schema', 'pg_catalog')
            ORDER BY schema_name
            """
        )
        return [str(name) for (name,) in rows]

    def _list_tables(self, dataset_id: str) -> list[str]:
        rows = self._fetch(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_catalog = current_database() AND table_schema = ?
            ORDER BY table_name
            """,
            [dataset_id],
        )
        return [str(name) for (name,) in rows]

    def _get_table_metadata(self, dataset_id: str, table_id: str) -> TableMetadata:
        found = self._fetch(
            """
            SELECT table_type
            FROM information_schema.tables
            WHERE table_catalog = current_database()
              AND table_schema = ? AND table_name = ?
            """,
            [dataset_id, table_id],
        )
        if not found:
            message = f"Table with name {dataset_id}.{table_id} does not exist"
            raise duckdb.CatalogException(message)
        columns = self._fetch(
            """
            SELECT column_name, data_type, is_nullable
            FROM information_schema.columns
            WHERE table_catalog = current_database()
              AND table_schema = ? AND table_name = ?
            ORDER BY ordinal_position
            """,
            [dataset_id, table_id],
        )
        return TableMetadata(
            type=str(found[0][0]),
            fields=[
                {
                    "name": str(col_name),
                    "type": str(col_type),
                    "mode": "NULLABLE" if str(nullable).upper() == "YES" else "REQUIRED",
                }
                for col_name, col_type, nullable in columns
            ],
        )

    def _run_query(self, sql: str) -> list[RowDict]:
        cursor = self.con.cursor()
        try:
            result = cursor.execute(sql)
            columns = [desc[0] for desc in result.description or []]
            return [dict(zip(columns, row, strict=True)) for row in result.fetchall()]
        finally:
            cursor.close()

    async def list_datasets(self) -> list[str]:
        """
        List non-system schemas.

        Returns
        -------
        list[str]
            Schema names, sorted.
        """
        return await to_thread.run_sync(self._list_datasets)

    async def list_tables(self, dataset_id: str) -> list[str]:
        """
        List tables and views of a schema.

        Returns
        -------
        list[str]
            Table names, sorted.
        """
        return await to_thread.run_sync(self._list_tables, dataset_id)

    async def get_table_metadata(self, dataset_id: str, table_id: str) -> TableMetadata:
        """
        Describe a table or view.

        Returns
        -------
        TableMetadata
            ``BASE TABLE``/``VIEW`` type plus column descriptors.

        Raises
        ------
        duckdb.CatalogException
            When the table does not exist.
        """
        return await to_thread.run_sync(self._get_table_metadata, dataset_id, table_id)

    async def run_query(
        self,
        sql: str,
        *,
        location: str,
        maximum_bytes_billed: str,
    ) -> list[RowDict]:
        """
        Execute SQL on the local database.

        Returns
        -------
        list[RowDict]
            Result rows keyed by column name.
        """
        LOG.debug(
            "local_db ignores location=%s maximum_bytes_billed=%s",
            location,
            maximum_bytes_billed,
        )
        return await to_thread.run_sync(self._run_query, sql)

    def close(self) -> None:
        """Close the DuckDB connection."""
        self.con.close()


@dataclass
class WarehouseResource:
    """Warehouse client plus its cleanup hook."""

    warehouse: WarehouseClient
    close: Callable[[], None]


def build_warehouse_resource(cfg: ServerConfig) -> WarehouseResource:
    """
    Construct the warehouse client selected by ``cfg.mode``.

    Parameters
    ----------
    cfg:
        Validated server configuration.

    Returns
    -------
    WarehouseResource
        Client and close hook suitable for server startup.

    Raises
    ------
    DatabasePathMissingError
        When local_db mode is requested without a database path.
    """
    if cfg.mode == "local_db":
        if cfg.db_path is None:
            raise DatabasePathMissingError()
        local = DuckDBWarehouse.open(cfg.db_path)
        return WarehouseResource(warehouse=local, close=local.close)
    remote = BigQueryWarehouse.from_config(cfg)
    return WarehouseResource(warehouse=remote, close=remote.close)


__all__ = [
    "BigQueryWarehouse",
    "DuckDBWarehouse",
    "RowDict",
    "WarehouseClient",
    "WarehouseResource",
    "build_warehouse_resource",
]
