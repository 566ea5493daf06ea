"""
Ingestion Pipeline

Turns raw markdown into a seeded namespace:

1. Split on second-level headers into titled sections.
2. Drop sections whose content is shorter than MIN_SECTION_LENGTH.
3. Write the namespace config (before any embedding work).
4. Embed and upsert each section independently, collecting failures.

Ingestion only fails as a whole when no section survives the length filter.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List

from fastapi.concurrency import run_in_threadpool

from ..core.errors import NoViableInputError
from ..embeddings.embedder import Embedder
from ..store import Document, NamespaceConfig, NamespaceStore

logger = logging.getLogger("ragchat.ingestion")


MIN_SECTION_LENGTH = 50

SECTION_HEADER = re.compile(r"^## ", flags=re.MULTILINE)


@dataclass(frozen=True)
class Section:
    title: str
    text: str


@dataclass(frozen=True)
class IngestionFailure:
    title: str
    error: str


@dataclass
class IngestionSummary:
    """Outcome of one ingestion call."""
    namespace: str
    seeded: int = 0
    attempted: int = 0
    failures: List[IngestionFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def describe(self) -> str:
        text = (
            f'Namespace "{self.namespace}" configured with '
            f"{self.seeded}/{self.attempted} documents."
        )
        if self.failures:
            errors = "\n".join(f'"{f.title}": {f.error}' for f in self.failures)
            text += f"\n\nErrors:\n{errors}"
        return text


def split_markdown(content: str) -> List[Section]:
    """
    Split markdown on '## ' headers into ordered sections.

    The first line of each section is its title, the trimmed remainder its
    text. Text before the first header becomes a section of its own.
    """
    sections: List[Section] = []

    for chunk in SECTION_HEADER.split(content):
        if not chunk.strip():
            continue
        first_line, _, rest = chunk.partition("\n")
        sections.append(Section(title=first_line.strip(), text=rest.strip()))

    return sections


def viable_sections(content: str, min_length: int = MIN_SECTION_LENGTH) -> List[Section]:
    return [s for s in split_markdown(content) if len(s.text) >= min_length]


class IngestionPipeline:
    """
    Seeds a namespace from markdown using an injected embedder.
    """

    def __init__(
        self,
        store: NamespaceStore,
        embedder: Embedder,
        min_section_length: int = MIN_SECTION_LENGTH,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._min_section_length = min_section_length

    async def ingest(
        self,
        namespace: str,
        content: str,
        system_prompt: str,
    ) -> IngestionSummary:
        """
        Seed ``namespace`` from ``content``.

        Raises
        ------
        NoViableInputError
            If no section has at least ``min_section_length`` characters.
        """
        sections = viable_sections(content, self._min_section_length)
        if not sections:
            raise NoViableInputError(
                f"No sections found with enough content (min {self._min_section_length} chars). "
                "Use ## headers to split your content."
            )

        await run_in_threadpool(
            self._store.save_config,
            NamespaceConfig(namespace=namespace, system_prompt=system_prompt),
        )

        summary = IngestionSummary(namespace=namespace, attempted=len(sections))

        for position, section in enumerate(sections, start=1):
            try:
                embedding = await self._embedder.embed_one(section.text)
                doc = Document(
                    id=f"{namespace}-{position}",
                    title=section.title,
                    content=section.text,
                    embedding=embedding,
                )
                await run_in_threadpool(self._store.upsert, namespace, doc)
            except Exception as exc:
                logger.warning(
                    "Failed to ingest section %r of namespace %s: %s",
                    section.title,
                    namespace,
                    exc,
                )
                summary.failures.append(IngestionFailure(title=section.title, error=str(exc)))
                continue

            summary.seeded += 1

        logger.info(
            "Ingested namespace %s: %d/%d documents",
            namespace,
            summary.seeded,
            summary.attempted,
        )
        return summary
