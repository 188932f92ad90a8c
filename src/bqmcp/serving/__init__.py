"""Serving surfaces exposing the warehouse catalog over the MCP protocol."""
