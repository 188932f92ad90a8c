"""Typed request/response models for the MCP surface."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bqmcp.config.serving_models import DEFAULT_MAXIMUM_BYTES_BILLED

SCHEMA_MIME_TYPE = "application/json"


class EntityKind(str, Enum):
    """Catalog entity classification shown in resource names."""

    TABLE = "table"
    VIEW = "view"


class TableMetadata(BaseModel):
    """Subset of warehouse table metadata consumed by the resource mapper."""

    type: str | None = None
    fields: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def kind(self) -> EntityKind:
        """Classify as VIEW when the warehouse says so, TABLE otherwise."""
        return EntityKind.VIEW if self.type == "VIEW" else EntityKind.TABLE


class CatalogEntity(BaseModel):
    """A table or view within a dataset."""

    model_config = ConfigDict(frozen=True)

    dataset_id: str
    table_id: str
    kind: EntityKind
    fields: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        """Return the resource name, e.g. ``"sales.orders" table schema``."""
        return f'"{self.dataset_id}.{self.table_id}" {self.kind.value} schema'


class ResourceDescriptor(BaseModel):
    """One entry of a resource listing."""

    uri: str
    name: str
    mime_type: str = Field(default=SCHEMA_MIME_TYPE, serialization_alias="mimeType")


class ResourceContents(BaseModel):
    """Schema payload returned when a resource is read."""

    uri: str
    text: str
    mime_type: str = Field(default=SCHEMA_MIME_TYPE, serialization_alias="mimeType")


class QueryRequest(BaseModel):
    """Arguments accepted by the ``query`` tool."""

    model_config = ConfigDict(populate_by_name=True)

    sql: str
    maximum_bytes_billed: str = Field(
        default=DEFAULT_MAXIMUM_BYTES_BILLED,
        alias="maximumBytesBilled",
    )

    @field_validator("maximum_bytes_billed", mode="before")
    @classmethod
    def _coerce_bytes_billed(cls, value: object) -> object:
        """
        Forward numeric ceilings as their string form; blank means default.

        Returns
        -------
        object
            String ceiling, or the raw value for pydantic to reject.
        """
        if value is None or value == "":
            return DEFAULT_MAXIMUM_BYTES_BILLED
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class QueryResult(BaseModel):
    """Rows produced by a successful query."""

    rows: list[dict[str, Any]] = Field(default_factory=list)
    is_error: bool = False


__all__ = [
    "SCHEMA_MIME_TYPE",
    "CatalogEntity",
    "EntityKind",
    "QueryRequest",
    "QueryResult",
    "ResourceContents",
    "ResourceDescriptor",
    "TableMetadata",
]
