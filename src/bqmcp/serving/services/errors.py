"""Shared error taxonomy and Problem Details helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4


def generate_correlation_id() -> str:
    """
    Return a new correlation identifier for tracing errors.

    Returns
    -------
    str
        UUID4 correlation identifier.
    """
    return str(uuid4())


@dataclass(frozen=True)
class ProblemDetail:
    """
    RFC 9457 Problem Details payload.

    Fields mirror the standard shape with optional extras for diagnostics.
    """

    type: str
    title: str
    detail: str
    status: int | None = None
    instance: str = field(default_factory=generate_correlation_id)
    code: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Problem detail payload as a plain dictionary.
        """
        payload: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
            "instance": self.instance,
        }
        if self.status is not None:
            payload["status"] = self.status
        if self.code is not None:
            payload["code"] = self.code
        if self.extras:
            payload["extras"] = self.extras
        return payload


def problem(  # noqa: PLR0913
    code: str,
    title: str,
    detail: str,
    *,
    status: int | None = None,
    instance: str | None = None,
    type_uri: str | None = None,
    extras: dict[str, Any] | None = None,
) -> ProblemDetail:
    """
    Create a ProblemDetail with defaults for type/instance.

    Parameters
    ----------
    code
        Stable problem code (e.g., 'query.forbidden_operation').
    title
        Human-readable error summary.
    detail
        Detailed description of the error.
    status
        Optional HTTP-style status code.
    instance
        Correlation/trace identifier; defaults to a UUID4.
    type_uri
        URI identifying the problem type; defaults to a bqmcp namespace.
    extras
        Optional structured context for diagnostics.

    Returns
    -------
    ProblemDetail
        Structured problem payload.
    """
    resolved_instance = instance or generate_correlation_id()
    resolved_type = type_uri or f"https://problems.bqmcp.dev/{code}"
    return ProblemDetail(
        type=resolved_type,
        title=title,
        detail=detail,
        status=status,
        instance=resolved_instance,
        code=code,
        extras=extras or {},
    )


def log_problem(logger: logging.Logger | logging.LoggerAdapter, detail: ProblemDetail) -> None:
    """Emit a Problem Detail as a structured error log."""
    logger.error(json.dumps(detail.to_dict()))


class ProblemError(Exception):
    """Base exception carrying a ProblemDetail payload."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail.detail)
        self.problem_detail = detail


# ---------------------------------------------------------------------------
# Startup configuration
# ---------------------------------------------------------------------------


class ConfigError(ProblemError):
    """Startup configuration failure; the server must not start serving."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail)


class ProjectIdFormatError(ConfigError):
    """Project identifier contains characters outside ``[a-z0-9-]``."""

    def __init__(self, project_id: str) -> None:
        super().__init__(
            problem(
                code="config.project_id_format",
                title="Invalid project ID format",
                detail=(
                    f"Invalid project ID format: {project_id!r}. "
                    "Use lowercase letters, digits and hyphens only."
                ),
                extras={"project_id": project_id},
            )
        )
        self.project_id = project_id


class CredentialAccessError(ConfigError):
    """Key file is missing, unreadable, or otherwise inaccessible."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(
            problem(
                code="config.credential_access",
                title="Key file is not accessible",
                detail=message,
                extras={"path": path},
            )
        )
        self.path = path


class CredentialFormatError(ConfigError):
    """Key file parses but is not a service account key."""

    def __init__(self, path: str) -> None:
        super().__init__(
            problem(
                code="config.credential_format",
                title="Invalid service account key file format",
                detail=(
                    f"Invalid service account key file format: {path}. "
                    "Expected type 'service_account' and a non-empty project_id."
                ),
                extras={"path": path},
            )
        )
        self.path = path


class CredentialSyntaxError(ConfigError):
    """Key file content is not valid JSON."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(
            problem(
                code="config.credential_syntax",
                title="Service account key file is not valid JSON",
                detail=f"Service account key file is not valid JSON: {path} ({message})",
                extras={"path": path},
            )
        )
        self.path = path


class DatabasePathMissingError(ConfigError):
    """local_db mode selected without a DuckDB database path."""

    def __init__(self) -> None:
        super().__init__(
            problem(
                code="config.db_path_missing",
                title="Missing DuckDB path",
                detail="db_path is required when mode='local_db'",
            )
        )


# ---------------------------------------------------------------------------
# Per-request failures
# ---------------------------------------------------------------------------


class ForbiddenOperationError(ProblemError):
    """SQL text contains a keyword with side effects."""

    def __init__(self, keyword: str) -> None:
        super().__init__(
            problem(
                code="query.forbidden_operation",
                title="Only READ operations are allowed",
                detail=f"Only READ operations are allowed; found forbidden keyword {keyword}.",
                status=400,
                extras={"keyword": keyword},
            )
        )
        self.keyword = keyword


class UnqualifiedCatalogReferenceError(ProblemError):
    """INFORMATION_SCHEMA.TABLES referenced without a dataset prefix."""

    def __init__(self, fragment: str) -> None:
        super().__init__(
            problem(
                code="query.unqualified_information_schema",
                title="Dataset required for INFORMATION_SCHEMA",
                detail=(
                    "Dataset must be specified when querying INFORMATION_SCHEMA "
                    f"(e.g. dataset.INFORMATION_SCHEMA.TABLES); got {fragment!r}."
                ),
                status=400,
                extras={"fragment": fragment},
            )
        )
        self.fragment = fragment


class InvalidResourceURIError(ProblemError):
    """Resource URI does not address a table schema."""

    def __init__(self, uri: str, segment: str | None) -> None:
        super().__init__(
            problem(
                code="resource.invalid_uri",
                title="Invalid resource URI",
                detail=f"Invalid resource URI {uri!r}: expected trailing 'schema', got {segment!r}.",
                status=400,
                extras={"uri": uri, "segment": segment},
            )
        )
        self.uri = uri
        self.segment = segment


class UnknownToolError(ProblemError):
    """Tool name is not advertised by this server."""

    def __init__(self, tool: str) -> None:
        super().__init__(
            problem(
                code="tool.unknown",
                title="Unknown tool",
                detail=f"Unknown tool: {tool}",
                status=404,
                extras={"tool": tool},
            )
        )
        self.tool = tool


__all__ = [
    "ConfigError",
    "CredentialAccessError",
    "CredentialFormatError",
    "CredentialSyntaxError",
    "DatabasePathMissingError",
    "ForbiddenOperationError",
    "InvalidResourceURIError",
    "ProblemDetail",
    "ProblemError",
    "ProjectIdFormatError",
    "UnknownToolError",
    "UnqualifiedCatalogReferenceError",
    "generate_correlation_id",
    "log_problem",
    "problem",
]
