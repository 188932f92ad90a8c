"""Configuration models and startup validation for the bqmcp server."""

from bqmcp.config.serving_models import (
    DEFAULT_LOCATION,
    DEFAULT_MAXIMUM_BYTES_BILLED,
    ServerConfig,
    ServingMode,
    validate_config,
)

__all__ = [
    "DEFAULT_LOCATION",
    "DEFAULT_MAXIMUM_BYTES_BILLED",
    "ServerConfig",
    "ServingMode",
    "validate_config",
]
