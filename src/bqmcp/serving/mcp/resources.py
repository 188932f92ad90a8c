"""Map datasets, tables and views onto ``bigquery://`` schema resources."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

from bqmcp.serving.backend.warehouse import WarehouseClient
from bqmcp.serving.mcp.models import CatalogEntity, ResourceContents, ResourceDescriptor
from bqmcp.serving.services.errors import InvalidResourceURIError

LOG = logging.getLogger("bqmcp.serving.mcp.resources")

RESOURCE_SCHEME = "bigquery"
SCHEMA_PATH = "schema"


def build_resource_uri(project_id: str, dataset_id: str, table_id: str) -> str:
    """Return ``bigquery://<project>/<dataset>/<table>/schema``."""
    return f"{RESOURCE_SCHEME}://{project_id}/{dataset_id}/{table_id}/{SCHEMA_PATH}"


def parse_resource_uri(uri: str) -> tuple[str, str]:
    """
    Extract ``(dataset_id, table_id)`` from a schema resource URI.

    Path segments are read from the end: schema marker, table, dataset.
    Table and dataset segments are percent-decoded.

    Parameters
    ----------
    uri:
        Resource URI as sent by the client.

    Returns
    -------
    tuple[str, str]
        Dataset and table identifiers.

    Raises
    ------
    InvalidResourceURIError
        When the trailing segment is not ``schema`` or a component is missing.
    """
    segments = urlsplit(uri).path.split("/")
    marker = segments.pop() if segments else None
    if marker != SCHEMA_PATH:
        raise InvalidResourceURIError(uri, marker)
    table_id = unquote(segments.pop()) if segments else ""
    dataset_id = unquote(segments.pop()) if segments else ""
    if not table_id:
        raise InvalidResourceURIError(uri, table_id)
    if not dataset_id:
        raise InvalidResourceURIError(uri, dataset_id)
    return dataset_id, table_id


@dataclass(frozen=True)
class CatalogResourceMapper:
    """Enumerate catalog entities as resources and resolve them back to schemas."""

    warehouse: WarehouseClient
    project_id: str

    async def list_entities(self) -> list[CatalogEntity]:
        """
        Fetch every table and view of the project, in warehouse order.

        Any warehouse failure aborts the whole listing.

        Returns
        -------
        list[CatalogEntity]
            One entity per table or view.
        """
        LOG.info("Fetching datasets for project %s", self.project_id)
        dataset_ids = await self.warehouse.list_datasets()
        LOG.info("Found %d datasets", len(dataset_ids))

        entities: list[CatalogEntity] = []
        for dataset_id in dataset_ids:
            table_ids = await self.warehouse.list_tables(dataset_id)
            LOG.debug("Found %d tables and views in dataset %s", len(table_ids), dataset_id)
            for table_id in table_ids:
                metadata = await self.warehouse.get_table_metadata(dataset_id, table_id)
                entities.append(
                    CatalogEntity(
                        dataset_id=dataset_id,
                        table_id=table_id,
                        kind=metadata.kind,
                        fields=metadata.fields,
                    )
                )
        LOG.info("Total resources found: %d", len(entities))
        return entities

    async def list_resources(self) -> list[ResourceDescriptor]:
        """
        List one schema resource per table or view.

        Returns
        -------
        list[ResourceDescriptor]
            Resource descriptors named ``"<dataset>.<table>" <kind> schema``.
        """
        return [
            ResourceDescriptor(
                uri=build_resource_uri(self.project_id, entity.dataset_id, entity.table_id),
                name=entity.display_name,
            )
            for entity in await self.list_entities()
        ]

    async def read_resource(self, uri: str) -> ResourceContents:
        """
        Return the field list of the addressed table as indented JSON.

        Returns
        -------
        ResourceContents
            Contents echoing the requested URI.
        """
        dataset_id, table_id = parse_resource_uri(uri)
        metadata = await self.warehouse.get_table_metadata(dataset_id, table_id)
        return ResourceContents(uri=uri, text=json.dumps(metadata.fields, indent=2))


__all__ = [
    "RESOURCE_SCHEME",
    "SCHEMA_PATH",
    "CatalogResourceMapper",
    "build_resource_uri",
    "parse_resource_uri",
]
