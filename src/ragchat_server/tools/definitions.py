"""
Tool Definitions

This module defines the authoritative schemas of the named operations exposed
by ragchat (to an agent host or to the command-line script). These
definitions must remain synchronized with:

- tools/base.py (TOOL_REGISTRY)
- tools/ragchat_tools.py (the operations themselves)
"""

from __future__ import annotations

from typing import Dict, List, Any, Final


# ---------------------------------------------------------------------
# Tool Name Constants (Single Source of Truth)
# ---------------------------------------------------------------------

TOOL_SETUP: Final[str] = "ragchat_setup"
TOOL_TEST: Final[str] = "ragchat_test"
TOOL_SERVE: Final[str] = "ragchat_serve"
TOOL_STOP: Final[str] = "ragchat_stop"
TOOL_WIDGET: Final[str] = "ragchat_widget"
TOOL_STATUS: Final[str] = "ragchat_status"
TOOL_DELETE: Final[str] = "ragchat_delete"


_NAMESPACE_PROPERTY: Dict[str, Any] = {
    "type": "string",
    "description": "Namespace name (e.g. 'mysite.com' or 'acme').",
    "minLength": 1,
}


def _tool(name: str, description: str, properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
                "additionalProperties": False,
            },
        },
    }


# ---------------------------------------------------------------------
# Tool Definitions
# ---------------------------------------------------------------------

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    _tool(
        TOOL_SETUP,
        (
            "Initialize a namespace with a knowledge base from markdown content. "
            "Each ## section becomes a searchable document with a vector embedding. "
            "Run this before testing or serving."
        ),
        {
            "namespace": _NAMESPACE_PROPERTY,
            "content": {
                "type": "string",
                "description": (
                    "Markdown content with ## headers. Each section becomes a searchable "
                    "document. Minimum 50 chars per section."
                ),
            },
            "system_prompt": {
                "type": "string",
                "description": (
                    "System prompt for the chat assistant (e.g. 'You are the Acme support "
                    "agent. Answer questions about Acme products.')"
                ),
            },
        },
        ["namespace", "content", "system_prompt"],
    ),
    _tool(
        TOOL_TEST,
        (
            "Send a test message to a namespace's chat. Uses retrieval + LLM exactly "
            "like the served endpoint."
        ),
        {
            "namespace": _NAMESPACE_PROPERTY,
            "message": {
                "type": "string",
                "description": "Test message (e.g. 'What is your product?').",
            },
        },
        ["namespace", "message"],
    ),
    _tool(
        TOOL_SERVE,
        (
            "Start a local HTTP chat server for a namespace (GET /, POST /chat). "
            "Any previously started server is stopped first."
        ),
        {
            "namespace": _NAMESPACE_PROPERTY,
            "port": {
                "type": "integer",
                "description": "Port to listen on (default: 3456). Busy ports are skipped.",
                "minimum": 0,
                "maximum": 65535,
            },
        },
        ["namespace"],
    ),
    _tool(
        TOOL_STOP,
        "Stop the running chat server, if any.",
        {},
        [],
    ),
    _tool(
        TOOL_WIDGET,
        (
            "Generate an embeddable chat widget: a <script> tag that adds a floating "
            "chat bubble to any page and talks to the chat server."
        ),
        {
            "namespace": _NAMESPACE_PROPERTY,
            "chat_url": {
                "type": "string",
                "description": "Chat server URL (default: http://localhost:3456).",
            },
            "title": {
                "type": "string",
                "description": "Widget header title (default: 'Chat with us').",
            },
            "color": {
                "type": "string",
                "description": "Accent colour hex (default: '#22c55e').",
            },
        },
        ["namespace"],
    ),
    _tool(
        TOOL_STATUS,
        "List all configured namespaces with document counts and config status.",
        {},
        [],
    ),
    _tool(
        TOOL_DELETE,
        "Delete a namespace's documents and config.",
        {"namespace": _NAMESPACE_PROPERTY},
        ["namespace"],
    ),
]
