"""
Retrieval Orchestrator

Turns a query into an augmented system prompt. Any failure while embedding
the query or searching the store degrades to the plain system prompt; it is
logged and never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from fastapi.concurrency import run_in_threadpool

from ..embeddings.embedder import Embedder
from ..store import NamespaceStore, SearchResult
from ..store.vector_store import DEFAULT_MIN_SCORE, DEFAULT_SEARCH_LIMIT

logger = logging.getLogger("ragchat.retrieval")


CONTEXT_SEPARATOR = "\n---\n"

CONTEXT_TEMPLATE = (
    "{system_prompt}\n\n"
    "RELEVANT CONTEXT FROM KNOWLEDGE BASE:\n"
    "{context}\n\n"
    "Use this context to answer accurately. "
    "If the context doesn't cover the question, say so."
)


@dataclass(frozen=True)
class RetrievalHit:
    document_id: str
    score: float


@dataclass
class AugmentedPrompt:
    system_prompt: str
    hits: List[RetrievalHit] = field(default_factory=list)

    @property
    def source_ids(self) -> List[str]:
        return [hit.document_id for hit in self.hits]


def build_augmented_prompt(system_prompt: str, results: List[SearchResult]) -> str:
    if not results:
        return system_prompt

    context = CONTEXT_SEPARATOR.join(r.content for r in results)
    return CONTEXT_TEMPLATE.format(system_prompt=system_prompt, context=context)


class RetrievalOrchestrator:
    def __init__(
        self,
        store: NamespaceStore,
        embedder: Embedder,
        k: int = DEFAULT_SEARCH_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._k = k
        self._min_score = min_score

    async def retrieve(
        self,
        namespace: str,
        system_prompt: str,
        query: str,
    ) -> AugmentedPrompt:
        try:
            query_vector = await self._embedder.embed_one(query)
            results = await run_in_threadpool(
                self._store.search,
                namespace,
                query_vector,
                self._k,
                self._min_score,
            )
        except Exception as exc:
            logger.warning(
                "Retrieval degraded for namespace %s (%s): %s",
                namespace,
                type(exc).__name__,
                exc,
            )
            return AugmentedPrompt(system_prompt=system_prompt)

        hits = [RetrievalHit(document_id=r.id, score=r.score) for r in results]
        logger.debug(
            "Retrieved %d documents for namespace %s: %s",
            len(hits),
            namespace,
            ", ".join(f"{h.document_id}={h.score:.3f}" for h in hits),
        )

        return AugmentedPrompt(
            system_prompt=build_augmented_prompt(system_prompt, results),
            hits=hits,
        )
