"""Read-only MCP server exposing BigQuery schemas and validated queries."""
