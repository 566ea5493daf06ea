"""
Store Package

File-backed namespace persistence and cosine similarity search.
"""

from .models import Document, NamespaceConfig, NamespaceSummary, SearchResult
from .vector_store import NamespaceStore, cosine_similarity

__all__ = [
    "Document",
    "NamespaceConfig",
    "NamespaceSummary",
    "SearchResult",
    "NamespaceStore",
    "cosine_similarity",
]
