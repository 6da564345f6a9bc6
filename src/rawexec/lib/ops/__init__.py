"""Operations exposed on the CLI and MCP surfaces."""

from rawexec.lib.ops.registry import (
    OperationSpec,
    get_all_operations,
    get_mcp_operations,
    get_operation,
    operation,
)

__all__ = [
    "OperationSpec",
    "get_all_operations",
    "get_mcp_operations",
    "get_operation",
    "operation",
]
