"""FastMCP stdio server exposing rawexec operations as tools."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, cast

import structlog
from mcp.server.fastmcp import FastMCP

from rawexec.lib.logging import configure_logging
from rawexec.lib.ops import OperationSpec, get_mcp_operations
from rawexec.lib.ops.codec import coerce_input_payload, signature_from_dataclass
from rawexec.lib.serialization import to_jsonable

logger = structlog.get_logger(__name__)

_TOOLS: dict[str, str] = {}


@asynccontextmanager
async def lifespan(_: FastMCP[Any]):
    # stdout carries the MCP protocol; logs stay JSON on stderr.
    configure_logging(json_mode=True)
    logger.info("rawexec MCP server ready.", tools=sorted(_TOOLS.values()))
    yield {}


mcp = FastMCP("rawexec", lifespan=lifespan)


def _tool_for(op: OperationSpec[Any, Any]) -> Any:
    async def _tool(**kwargs: object) -> object:
        payload = coerce_input_payload(op.input_type, kwargs)
        return to_jsonable(await op.handler(payload))

    _tool.__name__ = op.mcp_name
    _tool.__doc__ = op.description
    # FastMCP derives the tool's input schema from this signature.
    cast("Any", _tool).__signature__ = signature_from_dataclass(op.input_type)
    return _tool


def register_tools(server: FastMCP[Any]) -> None:
    for op in get_mcp_operations():
        if op.name in _TOOLS:
            continue
        server.tool(name=op.mcp_name, description=op.description)(_tool_for(op))
        _TOOLS[op.name] = op.mcp_name


def get_registered_mcp_tools() -> set[str]:
    return set(_TOOLS.values())


def get_registered_mcp_descriptions() -> dict[str, str]:
    """Map operation name to tool description, for parity checks."""

    return {op.name: op.description for op in get_mcp_operations() if op.name in _TOOLS}


def run_server() -> None:
    mcp.run(transport="stdio")


register_tools(mcp)
