"""Startup configuration validation tests."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from bqmcp.config.serving_models import (
    DEFAULT_LOCATION,
    ServerConfig,
    validate_config,
)
from bqmcp.serving.services.errors import (
    ConfigError,
    CredentialAccessError,
    CredentialFormatError,
    CredentialSyntaxError,
    ProjectIdFormatError,
)


def _write_key(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_default_location_constant() -> None:
    """Omitting the location uses the explicit DEFAULT_LOCATION constant."""
    cfg = ServerConfig(project_id="acme-data")
    if DEFAULT_LOCATION != "US":
        pytest.fail(f"Unexpected default location constant: {DEFAULT_LOCATION}")
    if cfg.location != DEFAULT_LOCATION:
        pytest.fail(f"Config did not apply default location: {cfg.location}")


@pytest.mark.parametrize("project_id", ["acme-data", "p123", "a-b-c-1"])
def test_valid_project_ids(project_id: str) -> None:
    """Lowercase alphanumerics and hyphens are accepted."""
    validate_config(ServerConfig(project_id=project_id))


@pytest.mark.parametrize("project_id", ["", "Acme", "acme_data", "acme.data", "acme data"])
def test_invalid_project_ids(project_id: str) -> None:
    """Anything outside [a-z0-9-] fails with ProjectIdFormatError."""
    with pytest.raises(ProjectIdFormatError):
        validate_config(ServerConfig(project_id=project_id))


def test_project_id_error_is_config_error() -> None:
    """Project ID failures belong to the fatal ConfigError family."""
    with pytest.raises(ConfigError) as excinfo:
        validate_config(ServerConfig(project_id="Bad_ID"))
    if excinfo.value.problem_detail.code != "config.project_id_format":
        pytest.fail(f"Unexpected problem code: {excinfo.value.problem_detail.code}")


def test_key_file_resolved_to_absolute_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A relative key path is replaced by its absolute form."""
    _write_key(tmp_path / "key.json", {"type": "service_account", "project_id": "acme-data"})
    monkeypatch.chdir(tmp_path)
    cfg = ServerConfig(project_id="acme-data", key_file=Path("key.json"))
    validate_config(cfg)
    if cfg.key_file is None or not cfg.key_file.is_absolute():
        pytest.fail(f"Key file was not resolved: {cfg.key_file}")
    if cfg.key_file != (tmp_path / "key.json").resolve():
        pytest.fail(f"Unexpected resolved key path: {cfg.key_file}")


def test_revalidation_is_idempotent(tmp_path: Path) -> None:
    """Validating an already-validated config keeps the same path."""
    key = _write_key(tmp_path / "key.json", {"type": "service_account", "project_id": "x"})
    cfg = ServerConfig(project_id="acme-data", key_file=key)
    validate_config(cfg)
    first = cfg.key_file
    validate_config(cfg)
    if cfg.key_file != first:
        pytest.fail(f"Path changed on revalidation: {first} -> {cfg.key_file}")


def test_missing_key_file(tmp_path: Path) -> None:
    """Missing key files report a not-found cause."""
    cfg = ServerConfig(project_id="acme-data", key_file=tmp_path / "absent.json")
    with pytest.raises(CredentialAccessError) as excinfo:
        validate_config(cfg)
    if "not found" not in str(excinfo.value):
        pytest.fail(f"Expected not-found cause, got: {excinfo.value}")


def test_key_file_directory_is_other_io_error(tmp_path: Path) -> None:
    """Non-file paths surface as a generic access error."""
    cfg = ServerConfig(project_id="acme-data", key_file=tmp_path)
    with pytest.raises(CredentialAccessError) as excinfo:
        validate_config(cfg)
    message = str(excinfo.value)
    if "Unable to access key file" not in message and "Permission denied" not in message:
        pytest.fail(f"Unexpected access error message: {message}")


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="file permissions are not enforced for root",
)
def test_unreadable_key_file(tmp_path: Path) -> None:
    """Unreadable key files report a permission cause."""
    key = _write_key(tmp_path / "key.json", {"type": "service_account", "project_id": "x"})
    key.chmod(0)
    try:
        with pytest.raises(CredentialAccessError) as excinfo:
            validate_config(ServerConfig(project_id="acme-data", key_file=key))
    finally:
        key.chmod(0o600)
    if "Permission denied" not in str(excinfo.value):
        pytest.fail(f"Expected permission cause, got: {excinfo.value}")


def test_key_file_not_json(tmp_path: Path) -> None:
    """Non-JSON content fails with CredentialSyntaxError."""
    key = tmp_path / "key.json"
    key.write_text("not json {", encoding="utf-8")
    with pytest.raises(CredentialSyntaxError):
        validate_config(ServerConfig(project_id="acme-data", key_file=key))


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "authorized_user", "project_id": "acme-data"},
        {"type": "service_account"},
        {"type": "service_account", "project_id": ""},
        ["service_account"],
    ],
)
def test_key_file_wrong_structure(tmp_path: Path, payload: object) -> None:
    """JSON that is not a service account key fails with CredentialFormatError."""
    key = _write_key(tmp_path / "key.json", payload)
    with pytest.raises(CredentialFormatError):
        validate_config(ServerConfig(project_id="acme-data", key_file=key))


def test_key_file_checked_before_project_id(tmp_path: Path) -> None:
    """Credential problems are reported ahead of project ID problems."""
    cfg = ServerConfig(project_id="BAD", key_file=tmp_path / "absent.json")
    with pytest.raises(CredentialAccessError):
        validate_config(cfg)


def test_local_db_requires_db_path() -> None:
    """local_db mode without a database path is a configuration error."""
    with pytest.raises(ConfigError):
        validate_config(ServerConfig(project_id="acme-data", mode="local_db"))


def test_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Environment variables populate every config field."""
    monkeypatch.setenv("BQMCP_PROJECT_ID", "acme-data")
    monkeypatch.setenv("BQMCP_LOCATION", "EU")
    monkeypatch.setenv("BQMCP_MODE", "local_db")
    monkeypatch.setenv("BQMCP_DB_PATH", str(tmp_path / "w.duckdb"))
    monkeypatch.delenv("BQMCP_KEY_FILE", raising=False)
    cfg = ServerConfig.from_env()
    if (cfg.project_id, cfg.location, cfg.mode) != ("acme-data", "EU", "local_db"):
        pytest.fail(f"Unexpected config from env: {cfg}")
    if cfg.db_path != tmp_path / "w.duckdb" or cfg.key_file is not None:
        pytest.fail(f"Unexpected paths from env: {cfg}")
