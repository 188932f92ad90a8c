"""CLI entrypoint for the BigQuery MCP server."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Iterable
from pathlib import Path

import anyio

from bqmcp.config.serving_models import DEFAULT_LOCATION, ServerConfig, validate_config
from bqmcp.serving.mcp.server import create_mcp_server, serve_stdio
from bqmcp.serving.services.errors import ConfigError, log_problem, problem

LOG = logging.getLogger("bqmcp.cli")

USAGE = (
    "bqmcp --project-id <project-id> [--location <location>] "
    "[--key-file <path-to-key-file>]"
)


# ---------------------------------------------------------------------------
# Argument parsing / logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure logging based on -v/--verbose count.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG. Output goes to stderr because
    stdout carries the MCP stream.
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bqmcp",
        usage=USAGE,
        description="Read-only MCP server for BigQuery schemas and queries.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--project-id",
        required=True,
        help="Google Cloud project ID (lowercase letters, digits and hyphens)",
    )
    parser.add_argument(
        "--location",
        default=DEFAULT_LOCATION,
        help=f"Region for query jobs (default: {DEFAULT_LOCATION})",
    )
    parser.add_argument(
        "--key-file",
        type=Path,
        default=None,
        help="Path to a service account key file (default: application default credentials)",
    )
    parser.add_argument(
        "--mode",
        choices=["bigquery", "local_db"],
        default="bigquery",
        help="Warehouse backend (default: bigquery)",
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="DuckDB database served when --mode local_db",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    return parser


def build_config(argv: Iterable[str] | None = None) -> tuple[ServerConfig, int]:
    """
    Parse startup arguments into an unvalidated ServerConfig.

    Parameters
    ----------
    argv:
        Optional argument list (defaults to sys.argv).

    Returns
    -------
    tuple[ServerConfig, int]
        Configuration and requested verbosity.
    """
    args = _make_parser().parse_args(list(argv) if argv is not None else None)
    cfg = ServerConfig(
        project_id=args.project_id,
        location=args.location,
        key_file=args.key_file,
        mode=args.mode,
        db_path=args.db_path,
    )
    return cfg, args.verbose


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(
    argv: Iterable[str] | None = None,
    *,
    serve: Callable[..., object] = anyio.run,
) -> int:
    """
    Validate configuration and serve MCP over stdio.

    Parameters
    ----------
    argv:
        Optional argument list (defaults to sys.argv).
    serve:
        Runner invoked as ``serve(serve_stdio, server)``.

    Returns
    -------
    int
        Exit code (0 on clean shutdown, 1 on startup failure).
    """
    cfg, verbosity = build_config(argv)
    _setup_logging(verbosity)

    try:
        validate_config(cfg)
    except ConfigError as exc:
        log_problem(LOG, exc.problem_detail)
        return 1

    try:
        server, close = create_mcp_server(cfg)
    except Exception as exc:  # noqa: BLE001 - any client construction failure is fatal
        pd = problem(
            code="startup.failure",
            title="Initialization error",
            detail=str(exc),
            extras={"project_id": cfg.project_id},
        )
        log_problem(LOG, pd)
        return 1

    try:
        serve(serve_stdio, server)
    finally:
        close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
