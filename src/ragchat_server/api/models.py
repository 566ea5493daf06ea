"""
API Models for the Chat Server

This module defines the Pydantic models used for request/response validation
on the chat endpoint, and the conversational turn shared with the completion
clients.

Design Goals
------------
- Strong typing on the wire contract
- Safe defaults (no shared mutable state)
- camelCase on the wire, snake_case in Python
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, StrictStr


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatTurn(BaseModel):
    """
    Single turn of caller-supplied conversation history.
    """
    role: Literal["user", "assistant"]
    text: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class ChatRequest(BaseModel):
    """
    Chat request payload.

    ``history`` is accepted in any shape; malformed turns are dropped by the
    chat handler rather than rejected here.
    """
    message: StrictStr
    history: Optional[Any] = None

    model_config = ConfigDict(extra="ignore")


class ChatResponse(BaseModel):
    """
    Chat response payload.
    """
    reply: str
    sources: List[str] = Field(default_factory=list)
    latency_ms: int = Field(..., ge=0, alias="latencyMs")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------
# Health Models
# ---------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    namespace: str
