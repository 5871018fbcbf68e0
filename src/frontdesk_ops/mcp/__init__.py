"""MCP server exposing the front desk core over stdio."""
