"""
Chat Routes: RAG-Backed Conversational Endpoint

This module implements the endpoint the embeddable widget talks to.

Major Responsibilities
----------------------
1. Accept a ChatRequest containing the user message and optional history.
2. Delegate sanitization, retrieval and completion to the ChatHandler.
3. Return a ChatResponse with the reply, cited document ids and latency.

Error Mapping
-------------
- Malformed body               -> 400 (core.errors.validation_exception_handler)
- Completion provider failure  -> 500 (core.errors.completion_error_handler)
- Namespace deleted mid-serve  -> 404 (core.errors.namespace_not_configured_handler)
"""

from fastapi import APIRouter, Depends, status
from typing import Annotated

from .models import ChatRequest, ChatResponse
from .dependencies import get_chat_handler, get_namespace
from ..chat.handler import ChatHandler

router = APIRouter(tags=["chat"])


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Chat with the namespace's knowledge base",
    status_code=status.HTTP_200_OK,
)
async def chat(
    req: ChatRequest,
    namespace: Annotated[str, Depends(get_namespace)],
    handler: Annotated[ChatHandler, Depends(get_chat_handler)],
) -> ChatResponse:
    """
    Answer one chat message.

    Parameters
    ----------
    req : ChatRequest
        Contains:
        - message: User message (required string, may be empty)
        - history: Optional prior turns [{role, text}]

    Returns
    -------
    ChatResponse
        Reply text, ids of the documents used as context, and latency.
    """
    result = await handler.handle(namespace, req.message, req.history)

    return ChatResponse(
        reply=result.reply,
        sources=result.sources,
        latency_ms=result.latency_ms,
    )
