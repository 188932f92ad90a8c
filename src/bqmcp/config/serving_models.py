"""Server configuration shared by the CLI and MCP surfaces."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from bqmcp.serving.services.errors import (
    CredentialAccessError,
    CredentialFormatError,
    CredentialSyntaxError,
    DatabasePathMissingError,
    ProjectIdFormatError,
)

ServingMode = Literal["bigquery", "local_db"]

DEFAULT_LOCATION = "US"
DEFAULT_MAXIMUM_BYTES_BILLED = "1000000000"
PROJECT_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")


class ServerConfig(BaseModel):
    """
    Runtime settings for the BigQuery MCP server.

    Built once at startup, validated once with :func:`validate_config`, and then
    treated as read-only by every request handler.
    """

    project_id: str = Field(
        description="Google Cloud project that owns the datasets being served.",
    )
    location: str = Field(
        default=DEFAULT_LOCATION,
        description="Region used for query jobs, e.g. 'US' or 'EU'.",
    )
    key_file: Path | None = Field(
        default=None,
        description="Service account key file; resolved to an absolute path on validation.",
    )
    mode: ServingMode = Field(
        default="bigquery",
        description="Warehouse backend: 'bigquery' or 'local_db' (DuckDB file).",
    )
    db_path: Path | None = Field(
        default=None,
        description="DuckDB database path (required when mode='local_db').",
    )

    @classmethod
    def from_env(cls) -> ServerConfig:
        """
        Construct a ServerConfig from environment variables.

        Returns
        -------
        ServerConfig
            Configuration populated from ``BQMCP_*`` environment values.
        """
        mode_env = os.environ.get("BQMCP_MODE", "bigquery").lower()
        mode: ServingMode = "local_db" if mode_env == "local_db" else "bigquery"
        key_file_env = os.environ.get("BQMCP_KEY_FILE")
        db_path_env = os.environ.get("BQMCP_DB_PATH")
        return cls(
            project_id=os.environ.get("BQMCP_PROJECT_ID", ""),
            location=os.environ.get("BQMCP_LOCATION", DEFAULT_LOCATION),
            key_file=Path(key_file_env) if key_file_env else None,
            mode=mode,
            db_path=Path(db_path_env) if db_path_env else None,
        )

    @model_validator(mode="after")
    def _normalize_paths(self) -> ServerConfig:
        """
        Expand user-relative DuckDB paths.

        Returns
        -------
        ServerConfig
            Configuration with ``db_path`` expanded.
        """
        if self.db_path is not None:
            self.db_path = self.db_path.expanduser()
        return self


def _read_key_file(path: Path) -> str:
    """
    Read the key file, mapping OS failures onto CredentialAccessError.

    Returns
    -------
    str
        Raw key file content.

    Raises
    ------
    CredentialAccessError
        When the file is missing, unreadable, or cannot be opened.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        message = f"Key file not found: {path}. Please verify the file path."
        raise CredentialAccessError(str(path), message) from exc
    except PermissionError as exc:
        message = f"Permission denied accessing key file: {path}. Please check file permissions."
        raise CredentialAccessError(str(path), message) from exc
    except OSError as exc:
        message = f"Unable to access key file: {path}. Error: {exc.strerror or exc}"
        raise CredentialAccessError(str(path), message) from exc


def validate_key_file(path: Path) -> Path:
    """
    Check that a service account key file is readable and well formed.

    Parameters
    ----------
    path:
        Key file location, relative or absolute.

    Returns
    -------
    Path
        The resolved absolute path.

    Raises
    ------
    CredentialSyntaxError
        When the content is not JSON.
    CredentialFormatError
        When the JSON is not a service account key.
    """
    resolved = path.expanduser().resolve()
    content = _read_key_file(resolved)
    try:
        key_data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise CredentialSyntaxError(str(resolved), exc.msg) from exc

    if (
        not isinstance(key_data, dict)
        or key_data.get("type") != "service_account"
        or not key_data.get("project_id")
    ):
        raise CredentialFormatError(str(resolved))
    return resolved


def validate_config(config: ServerConfig) -> None:
    """
    Validate startup configuration before any catalog or query work happens.

    On success ``config.key_file`` is replaced by its resolved absolute path;
    running the validation again yields the same path.

    Raises
    ------
    ProjectIdFormatError
        When the project identifier is empty or malformed.
    DatabasePathMissingError
        When local_db mode is selected without a database path.
    """
    if config.key_file is not None:
        config.key_file = validate_key_file(config.key_file)

    if not PROJECT_ID_PATTERN.fullmatch(config.project_id):
        raise ProjectIdFormatError(config.project_id)

    if config.mode == "local_db" and config.db_path is None:
        raise DatabasePathMissingError()


__all__ = [
    "DEFAULT_LOCATION",
    "DEFAULT_MAXIMUM_BYTES_BILLED",
    "PROJECT_ID_PATTERN",
    "ServerConfig",
    "ServingMode",
    "validate_config",
    "validate_key_file",
]
