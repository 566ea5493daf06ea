"""
Ragchat Operations

The named operations behind the tool registry: seed a namespace, test it,
serve it, generate a widget for it, report status, delete it. Each operation
returns human-readable text. Expected outcomes (unknown namespace, unusable
input) are reported in that text; unexpected failures raise.

``RagChatTools`` owns the single running chat server handle: serving a
namespace stops the previous server first.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool

from ..chat.handler import ChatHandler
from ..config import Settings, settings as default_settings
from ..core.errors import NamespaceNotConfiguredError, NoViableInputError
from ..embeddings.embedder import Embedder
from ..llm.client import LLMClient
from ..main import build_chat_handler
from ..providers import build_embedder, build_llm_client
from ..rag.ingestion import IngestionPipeline
from ..server.listener import ChatServerHandle, start_chat_server
from ..store import NamespaceStore
from ..store.paths import sanitize_namespace
from .widget import DEFAULT_ACCENT_COLOR, DEFAULT_TITLE, generate_widget

logger = logging.getLogger("ragchat.tools")


PROMPT_PREVIEW_CHARS = 60

NEXT_STEPS = (
    "Next steps:\n"
    "1. ragchat_test — send a test message\n"
    "2. ragchat_serve — start the chat server\n"
    "3. ragchat_widget — get the embed code"
)

ServerFactory = Callable[..., ChatServerHandle]


class RagChatTools:
    def __init__(
        self,
        store: NamespaceStore,
        embedder: Embedder,
        llm: LLMClient,
        config: Optional[Settings] = None,
        server_factory: ServerFactory = start_chat_server,
    ) -> None:
        self.store = store
        self.pipeline = IngestionPipeline(store, embedder)
        self.chat_handler: ChatHandler = build_chat_handler(store, embedder, llm)

        self._config = config or default_settings
        self._server_factory = server_factory
        self._active_server: Optional[ChatServerHandle] = None

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "RagChatTools":
        config = config or default_settings
        return cls(
            store=NamespaceStore(config.data_root_path),
            embedder=build_embedder(config),
            llm=build_llm_client(config),
            config=config,
        )

    @property
    def active_server(self) -> Optional[ChatServerHandle]:
        return self._active_server

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def setup(self, namespace: str, content: str, system_prompt: str) -> str:
        try:
            summary = await self.pipeline.ingest(namespace, content, system_prompt)
        except NoViableInputError as exc:
            logger.info("Setup rejected for %s: %s", namespace, exc)
            return str(exc)

        return f"{summary.describe()}\n\n{NEXT_STEPS}"

    async def test(self, namespace: str, message: str) -> str:
        try:
            result = await self.chat_handler.handle(namespace, message)
        except NamespaceNotConfiguredError as exc:
            return str(exc)

        sources = ", ".join(f"{h.document_id} ({h.score:.2f})" for h in result.hits) or "none"

        return (
            f"**Test: {namespace}**\n\n"
            f'Query: "{message}"\n\n'
            f"**Reply:**\n{result.reply}\n\n"
            f"**RAG Sources:** {sources}\n"
            f"**Latency:** {result.latency_ms}ms"
        )

    async def serve(self, namespace: str, port: Optional[int] = None) -> str:
        if await run_in_threadpool(self.store.load_config, namespace) is None:
            return str(NamespaceNotConfiguredError(namespace))

        await self.stop()

        handle = await run_in_threadpool(
            self._server_factory,
            namespace,
            self.chat_handler,
            self.store,
            port=self._config.chat_port if port is None else port,
            host=self._config.chat_host,
            max_attempts=self._config.max_port_attempts,
        )
        self._active_server = handle
        logger.info("Serving %s at %s", namespace, handle.url)

        return (
            f'Chat server running for "{namespace}" at {handle.url}\n\n'
            "Endpoints:\n"
            "- GET  /      — health check\n"
            "- POST /chat  — send messages\n\n"
            "Use ragchat_widget to get the embed code."
        )

    async def stop(self) -> str:
        handle, self._active_server = self._active_server, None
        if handle is None:
            return "No chat server running."

        await run_in_threadpool(handle.stop)
        return f'Stopped chat server for "{handle.namespace}" at {handle.url}.'

    async def widget(
        self,
        namespace: str,
        chat_url: Optional[str] = None,
        title: Optional[str] = None,
        color: Optional[str] = None,
    ) -> str:
        chat_url = chat_url or f"http://localhost:{self._config.chat_port}"
        snippet = generate_widget(
            chat_url,
            title=title or DEFAULT_TITLE,
            accent_color=color or DEFAULT_ACCENT_COLOR,
        )

        return (
            f"**Chat Widget for {namespace}**\n\n"
            "Paste this into any HTML page:\n\n"
            f"```html\n{snippet}\n```\n\n"
            "Make sure the chat server is running (ragchat_serve) before testing.\n"
            "For production, change the chat URL to your deployed server address."
        )

    async def status(self) -> str:
        summaries = await run_in_threadpool(self.store.list)
        if not summaries:
            return "No namespaces configured yet. Use ragchat_setup to create one."

        blocks = []
        for summary in summaries:
            config = await run_in_threadpool(self.store.load_config, summary.namespace)
            prompt = config.system_prompt if config else ""
            created = summary.created_at.isoformat() if summary.created_at else "unknown"
            blocks.append(
                f"- **{summary.namespace}**\n"
                f"  Documents: {summary.document_count}\n"
                f"  Created: {created}\n"
                f"  Prompt: {prompt[:PROMPT_PREVIEW_CHARS]}..."
            )

        text = f"Configured namespaces ({len(summaries)}):\n\n" + "\n\n".join(blocks)

        if self._active_server is not None and self._active_server.is_running:
            text += (
                f'\n\nServing "{self._active_server.namespace}" at {self._active_server.url}'
            )

        return text

    async def delete(self, namespace: str) -> str:
        active = self._active_server
        if active is not None and sanitize_namespace(active.namespace) == sanitize_namespace(namespace):
            await self.stop()

        removed = await run_in_threadpool(self.store.delete, namespace)
        if not removed:
            return f'Namespace "{namespace}" does not exist; nothing to delete.'

        logger.info("Deleted namespace %s", namespace)
        return f'Deleted namespace "{namespace}".'
