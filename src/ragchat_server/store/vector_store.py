"""
Namespace Vector Store

This module implements the file-backed store for namespace documents and
configuration, and the linear-scan cosine similarity search over them.

Key Properties
--------------
- Two whole-document JSON files per namespace (config + vectors)
- Whole-file rewrite persistence via write-to-temp and atomic rename
- Upsert by document id, preserving collection order
- Per-namespace locking of read-modify-write within this process
- Similarity never raises on malformed vectors (scores as zero)
"""

from __future__ import annotations

import json
import logging
import math
import os
import shutil
import tempfile
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from pydantic import ValidationError

from .models import Document, NamespaceConfig, NamespaceSummary, SearchResult
from .paths import (
    ensure_namespace_directory,
    get_config_path,
    get_namespace_path,
    get_vectors_path,
)
from ..config import settings
from ..core.errors import StorePersistenceError

logger = logging.getLogger("ragchat.store")


DEFAULT_SEARCH_LIMIT = 3
DEFAULT_MIN_SCORE = 0.3


# ---------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between two vectors.

    Returns 0.0 for mismatched or empty dimensions, zero-norm vectors and
    vectors that are not numeric.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    try:
        va = np.asarray(a, dtype=np.float64)
        vb = np.asarray(b, dtype=np.float64)
    except (TypeError, ValueError):
        return 0.0

    if va.ndim != 1 or vb.ndim != 1:
        return 0.0

    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0 or not math.isfinite(denominator):
        return 0.0

    score = float(np.dot(va, vb) / denominator)
    if not math.isfinite(score):
        return 0.0

    return max(-1.0, min(1.0, score))


# ---------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------

class NamespaceStore:
    """
    Durable, namespace-scoped persistence and similarity search.

    The store is the only component that touches disk. It is thread-safe
    for concurrent upserts to the same namespace within one process; it
    does not coordinate with other processes sharing the same data root.
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        """
        Parameters
        ----------
        root : Optional[Path]
            Directory holding one sub-directory per namespace.
            Defaults to settings.data_root_path.
        """
        self._root = Path(root) if root is not None else Path(settings.data_root_path)

        self._locks: Dict[str, RLock] = {}
        self._locks_guard = Lock()

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _lock_for(self, namespace: str) -> RLock:
        key = get_namespace_path(self._root, namespace).name
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = RLock()
            return lock

    @staticmethod
    def _read_json(path: Path) -> Any:
        try:
            with path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise StorePersistenceError(
                f"Failed to read {path.name}: {type(exc).__name__}"
            ) from exc

    @staticmethod
    def _write_json(path: Path, payload: Any) -> None:
        """
        Write pretty-printed JSON to a sibling temp file, then rename it
        over the target so readers never see a partial file.
        """
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise StorePersistenceError(
                f"Failed to write {path.name}: {type(exc).__name__}"
            ) from exc

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def load(self, namespace: str) -> List[Document]:
        """
        Load every document of a namespace, in stored order.

        Returns an empty list if the namespace has no vectors file.
        """
        path = get_vectors_path(self._root, namespace)
        if not path.exists():
            return []

        raw = self._read_json(path)
        if not isinstance(raw, list):
            raise StorePersistenceError(f"{path.name} must hold a JSON array")

        try:
            return [Document.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise StorePersistenceError(
                f"Malformed document in {path.name}: {exc.error_count()} errors"
            ) from exc

    def save(self, namespace: str, documents: Sequence[Document]) -> None:
        """
        Overwrite the whole document collection of a namespace.
        """
        ensure_namespace_directory(self._root, namespace)
        payload = [
            doc.model_dump(mode="json", by_alias=True)
            for doc in documents
        ]
        self._write_json(get_vectors_path(self._root, namespace), payload)

    def upsert(self, namespace: str, document: Document) -> None:
        """
        Replace the document with the same id in place, or append it.
        """
        with self._lock_for(namespace):
            docs = self.load(namespace)

            if docs and len(docs[0].embedding) != len(document.embedding):
                logger.warning(
                    "Embedding dimension mismatch in namespace %s: document %s has %d, "
                    "namespace uses %d; it will never match a query",
                    namespace,
                    document.id,
                    len(document.embedding),
                    len(docs[0].embedding),
                )

            for idx, existing in enumerate(docs):
                if existing.id == document.id:
                    docs[idx] = document
                    break
            else:
                docs.append(document)

            self.save(namespace, docs)

    def count(self, namespace: str) -> int:
        return len(self.load(namespace))

    def search(
        self,
        namespace: str,
        query_vector: Sequence[float],
        k: int = DEFAULT_SEARCH_LIMIT,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> List[SearchResult]:
        """
        Rank the namespace's documents against a query vector.

        Linear scan over every stored document. Results scoring below
        ``min_score`` are dropped; the rest are sorted by descending score
        (ties keep insertion order) and truncated to ``k``.
        """
        if k <= 0:
            return []

        docs = self.load(namespace)
        if not docs:
            return []

        scored = [
            SearchResult(
                id=doc.id,
                title=doc.title,
                content=doc.content,
                score=cosine_similarity(query_vector, doc.embedding),
            )
            for doc in docs
        ]

        matches = [r for r in scored if r.score >= min_score]
        matches.sort(key=lambda r: r.score, reverse=True)

        return matches[:k]

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def save_config(self, config: NamespaceConfig) -> None:
        ensure_namespace_directory(self._root, config.namespace)
        self._write_json(
            get_config_path(self._root, config.namespace),
            config.model_dump(mode="json", by_alias=True),
        )

    def load_config(self, namespace: str) -> Optional[NamespaceConfig]:
        """
        Read the namespace config, or None when the namespace has none.
        """
        path = get_config_path(self._root, namespace)
        if not path.exists():
            return None

        raw = self._read_json(path)
        try:
            return NamespaceConfig.model_validate(raw)
        except ValidationError as exc:
            raise StorePersistenceError(
                f"Malformed config for namespace {namespace}: {exc.error_count()} errors"
            ) from exc

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def list(self) -> List[NamespaceSummary]:
        """
        Summarize every namespace directory under the data root.

        A directory without config reports its directory name and no
        creation time.
        """
        if not self._root.is_dir():
            return []

        summaries: List[NamespaceSummary] = []

        for entry in sorted(self._root.iterdir()):
            if not entry.is_dir():
                continue

            config = self.load_config(entry.name)
            summaries.append(
                NamespaceSummary(
                    namespace=config.namespace if config else entry.name,
                    document_count=self.count(entry.name),
                    created_at=config.created_at if config else None,
                )
            )

        return summaries

    def delete(self, namespace: str) -> bool:
        """
        Remove all persisted state of a namespace.

        Returns False if there was nothing to delete.
        """
        with self._lock_for(namespace):
            path = get_namespace_path(self._root, namespace)
            if not path.exists():
                return False

            try:
                shutil.rmtree(path)
            except OSError as exc:
                raise StorePersistenceError(
                    f"Failed to delete namespace {namespace}: {type(exc).__name__}"
                ) from exc

            logger.info("Deleted namespace %s", namespace)
            return True
