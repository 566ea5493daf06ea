"""
Command-line access to the ragchat operations.

Examples
--------
    python scripts/ragchat_cli.py setup acme --content docs/acme.md \
        --system-prompt "You are the Acme support agent."
    python scripts/ragchat_cli.py test acme "What does Acme sell?"
    python scripts/ragchat_cli.py serve acme --port 3456
    python scripts/ragchat_cli.py widget acme --title "Ask Acme"
    python scripts/ragchat_cli.py status
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from ragchat_server.core.errors import RagChatError
from ragchat_server.tools.base import dispatch_tool_call
from ragchat_server.tools.ragchat_tools import RagChatTools


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ragchat", description="RAG-powered chat for any website.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    setup = sub.add_parser("setup", help="Seed a namespace from a markdown file.")
    setup.add_argument("namespace")
    setup.add_argument("--content", required=True, type=Path, help="Markdown file with ## sections.")
    setup.add_argument("--system-prompt", required=True)

    test = sub.add_parser("test", help="Send a test message.")
    test.add_argument("namespace")
    test.add_argument("message")

    serve = sub.add_parser("serve", help="Serve a namespace until interrupted.")
    serve.add_argument("namespace")
    serve.add_argument("--port", type=int, default=None)

    widget = sub.add_parser("widget", help="Print the embeddable widget.")
    widget.add_argument("namespace")
    widget.add_argument("--chat-url", default=None)
    widget.add_argument("--title", default=None)
    widget.add_argument("--color", default=None)

    sub.add_parser("status", help="List configured namespaces.")

    delete = sub.add_parser("delete", help="Delete a namespace.")
    delete.add_argument("namespace")

    return parser


def to_tool_call(args: argparse.Namespace):
    if args.command == "setup":
        return "ragchat_setup", {
            "namespace": args.namespace,
            "content": args.content.read_text(encoding="utf-8"),
            "system_prompt": args.system_prompt,
        }
    if args.command == "test":
        return "ragchat_test", {"namespace": args.namespace, "message": args.message}
    if args.command == "serve":
        return "ragchat_serve", {"namespace": args.namespace, "port": args.port}
    if args.command == "widget":
        return "ragchat_widget", {
            "namespace": args.namespace,
            "chat_url": args.chat_url,
            "title": args.title,
            "color": args.color,
        }
    if args.command == "delete":
        return "ragchat_delete", {"namespace": args.namespace}
    return "ragchat_status", {}


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    tool_name, tool_args = to_tool_call(args)

    try:
        tools = RagChatTools.from_settings()
        print(await dispatch_tool_call(tool_name, tool_args, tools))
    except (RagChatError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command == "serve" and tools.active_server is not None:
        try:
            while tools.active_server.is_running:
                await asyncio.sleep(1)
        except (KeyboardInterrupt, asyncio.CancelledError):
            pass
        finally:
            print(await tools.stop())

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
