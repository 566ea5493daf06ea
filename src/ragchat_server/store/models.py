"""
Store Data Models

This module defines the canonical schemas persisted by the namespace store
and the derived records it returns.

Each Document corresponds to ONE embedding vector and ONE titled passage.
Field aliases match the on-disk camelCase layout; Python code uses the
snake_case names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """
    A single stored passage with its embedding.
    """

    id: str = Field(..., min_length=1)

    title: str = Field(
        default="",
        description="Section header the passage came from.",
    )

    content: str = Field(
        ...,
        description="Raw text content for this embedded passage.",
    )

    embedding: List[float] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
    )


class NamespaceConfig(BaseModel):
    """
    Per-namespace configuration. Always written as a whole.

    Unknown keys found on disk are ignored and never written back.
    """

    namespace: str = Field(..., min_length=1)
    system_prompt: str = Field(..., alias="systemPrompt")
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class SearchResult(BaseModel):
    """
    Individual similarity match. Derived, never persisted.
    """

    id: str
    title: str
    content: str
    score: float = Field(..., ge=-1.0, le=1.0)

    model_config = ConfigDict(extra="forbid")


class NamespaceSummary(BaseModel):
    """
    One row of the namespace listing.
    """

    namespace: str
    document_count: int = Field(..., ge=0, alias="documentCount")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)
