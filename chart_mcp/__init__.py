"""MCP server exposing chart commands to AI agents."""
