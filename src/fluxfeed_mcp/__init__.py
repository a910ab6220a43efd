"""Fluxfeed signal aggregation MCP server."""

import os


def get_server_version() -> str:
    """Get version with fallback for dev mode."""
    if version := os.environ.get("SERVER_VERSION"):
        return version
    try:
        from importlib.metadata import version as pkg_version

        return pkg_version("fluxfeed-mcp")
    except Exception:
        return "dev"


SERVER_VERSION = get_server_version()
# Bump when output schema changes materially (new fields, renamed fields, structure changes)
# v1: Initial signal/plan/news schema
# v2: Fallback drivers ranked by decayed contribution, balanced feed extras (imageUrl, text)
SCHEMA_VERSION = "2"
