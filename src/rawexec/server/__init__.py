"""MCP server surface."""

from rawexec.server.main import mcp, register_tools, run_server

__all__ = ["mcp", "register_tools", "run_server"]
