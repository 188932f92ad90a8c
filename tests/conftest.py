"""Pytest configuration for the bqmcp test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from bqmcp.config.serving_models import ServerConfig
from tests._helpers.db import DEFAULT_PROJECT, seed_sales_database
from tests._helpers.fakes import FakeWarehouse, sales_warehouse


@pytest.fixture
def warehouse() -> FakeWarehouse:
    """Provide the standard fake catalog with sales and crm datasets.

    Returns
    -------
    FakeWarehouse
        Fresh fake per test.
    """
    return sales_warehouse()


@pytest.fixture
def server_config() -> ServerConfig:
    """Provide a validated-shape config for project ``acme-data``.

    Returns
    -------
    ServerConfig
        Config using the default location.
    """
    return ServerConfig(project_id=DEFAULT_PROJECT)


@pytest.fixture
def sales_db(tmp_path: Path) -> Path:
    """Create a DuckDB file seeded with the sales schema.

    Returns
    -------
    Path
        Path to the database file.
    """
    return seed_sales_database(tmp_path / "warehouse.duckdb")
