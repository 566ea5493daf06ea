"""
Tool Dispatch Layer

This module defines the central dispatch mechanism for the named ragchat
operations. It enforces:

- Explicit tool allow-listing
- Required-argument validation
- Dependency injection for testability (the RagChatTools instance)

No operation is callable unless it is explicitly registered here.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from .definitions import (
    TOOL_DELETE,
    TOOL_SERVE,
    TOOL_SETUP,
    TOOL_STATUS,
    TOOL_STOP,
    TOOL_TEST,
    TOOL_WIDGET,
)
from .ragchat_tools import RagChatTools


# ---------------------------------------------------------------------
# Tool Type Definitions
# ---------------------------------------------------------------------

ToolHandler = Callable[[Dict[str, Any], RagChatTools], Awaitable[str]]


def _require(tool_name: str, args: Dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if value is None or value == "":
        raise ValueError(f"{tool_name} requires '{key}' argument.")
    return value


# ---------------------------------------------------------------------
# Tool Registry (AUTHORITATIVE)
# ---------------------------------------------------------------------

async def _handle_setup(args: Dict[str, Any], tools: RagChatTools) -> str:
    return await tools.setup(
        namespace=_require(TOOL_SETUP, args, "namespace"),
        content=_require(TOOL_SETUP, args, "content"),
        system_prompt=_require(TOOL_SETUP, args, "system_prompt"),
    )


async def _handle_test(args: Dict[str, Any], tools: RagChatTools) -> str:
    message = args.get("message")
    if not isinstance(message, str):
        raise ValueError(f"{TOOL_TEST} requires 'message' argument.")

    return await tools.test(
        namespace=_require(TOOL_TEST, args, "namespace"),
        message=message,
    )


async def _handle_serve(args: Dict[str, Any], tools: RagChatTools) -> str:
    port = args.get("port")
    if port is not None and not isinstance(port, int):
        raise ValueError(f"{TOOL_SERVE} 'port' must be an integer.")

    return await tools.serve(
        namespace=_require(TOOL_SERVE, args, "namespace"),
        port=port,
    )


async def _handle_stop(args: Dict[str, Any], tools: RagChatTools) -> str:
    return await tools.stop()


async def _handle_widget(args: Dict[str, Any], tools: RagChatTools) -> str:
    return await tools.widget(
        namespace=_require(TOOL_WIDGET, args, "namespace"),
        chat_url=args.get("chat_url"),
        title=args.get("title"),
        color=args.get("color"),
    )


async def _handle_status(args: Dict[str, Any], tools: RagChatTools) -> str:
    return await tools.status()


async def _handle_delete(args: Dict[str, Any], tools: RagChatTools) -> str:
    return await tools.delete(namespace=_require(TOOL_DELETE, args, "namespace"))


TOOL_REGISTRY: Dict[str, ToolHandler] = {
    TOOL_SETUP: _handle_setup,
    TOOL_TEST: _handle_test,
    TOOL_SERVE: _handle_serve,
    TOOL_STOP: _handle_stop,
    TOOL_WIDGET: _handle_widget,
    TOOL_STATUS: _handle_status,
    TOOL_DELETE: _handle_delete,
}


# ---------------------------------------------------------------------
# Public Dispatch API
# ---------------------------------------------------------------------

async def dispatch_tool_call(
    tool_name: str,
    args: Dict[str, Any],
    tools: RagChatTools,
) -> str:
    """
    Dispatch a named ragchat operation.

    Parameters
    ----------
    tool_name : str
        The symbolic tool name (e.g. 'ragchat_setup').

    args : Dict[str, Any]
        Parsed JSON arguments for the tool.

    tools : RagChatTools
        Operations instance (injected).

    Returns
    -------
    str
        Human-readable tool result.

    Raises
    ------
    ValueError
        If the tool name is unknown or required arguments are missing.
    """

    handler = TOOL_REGISTRY.get(tool_name)
    if not handler:
        raise ValueError(f"Unknown tool requested: {tool_name}")

    return await handler(args, tools)
