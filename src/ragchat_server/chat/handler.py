"""
Chat Request Handler

Validates, sanitizes, orchestrates and answers a single chat exchange. The
HTTP route and the ``ragchat_test`` tool both go through ``ChatHandler``.

Request lifecycle
-----------------
Received -> Validated -> Retrieved (optional) -> Completed -> Responded

- An unconfigured namespace fails before any embedding or completion work.
- Retrieval failures degrade to the plain system prompt.
- Completion failures propagate to the caller.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from fastapi.concurrency import run_in_threadpool

from ..core.errors import NamespaceNotConfiguredError
from ..llm.client import LLMClient
from ..rag.retrieval import RetrievalHit, RetrievalOrchestrator
from ..rag.sanitize import sanitize, sanitize_history
from ..store import NamespaceStore

logger = logging.getLogger("ragchat.chat")


@dataclass
class ChatReply:
    reply: str
    latency_ms: int
    hits: List[RetrievalHit] = field(default_factory=list)

    @property
    def sources(self) -> List[str]:
        return [hit.document_id for hit in self.hits]


class ChatHandler:
    def __init__(
        self,
        store: NamespaceStore,
        retriever: RetrievalOrchestrator,
        llm: LLMClient,
    ) -> None:
        self._store = store
        self._retriever = retriever
        self._llm = llm

    async def handle(
        self,
        namespace: str,
        message: str,
        history: Optional[Any] = None,
    ) -> ChatReply:
        """
        Answer ``message`` using the namespace's knowledge base.

        Parameters
        ----------
        namespace : str
            Namespace whose config and documents are used.

        message : str
            Raw user message. Empty strings are allowed through.

        history : Optional[Any]
            Raw conversation history; malformed turns are dropped.

        Raises
        ------
        NamespaceNotConfiguredError
            If the namespace has no config.

        CompletionError
            If the completion provider fails.
        """
        config = await run_in_threadpool(self._store.load_config, namespace)
        if config is None:
            raise NamespaceNotConfiguredError(namespace)

        started = time.monotonic()

        clean_message = sanitize(message)
        safe_history = sanitize_history(history)

        augmented = await self._retriever.retrieve(
            namespace,
            config.system_prompt,
            clean_message,
        )

        reply = await self._llm.complete(
            augmented.system_prompt,
            safe_history,
            clean_message,
        )

        latency_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            "Answered chat for namespace %s in %dms (sources=%s)",
            namespace,
            latency_ms,
            augmented.source_ids,
        )

        return ChatReply(reply=reply, latency_ms=latency_ms, hits=augmented.hits)
