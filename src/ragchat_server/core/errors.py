"""
Error Taxonomy and Global Error Handling

This module defines the exception hierarchy shared by the store, the
ingestion pipeline, the chat handler and the listener, plus the
application-wide exception handlers registered on the FastAPI app.

Design Goals
------------
- One distinct exception per failure class callers must tell apart
- Never leak internal exception details for unexpected failures
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("ragchat.errors")


CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


# ---------------------------------------------------------------------
# Exception Hierarchy
# ---------------------------------------------------------------------

class RagChatError(RuntimeError):
    """Base error for all ragchat failures."""


class NamespaceNotConfiguredError(RagChatError):
    """Raised when an operation addresses a namespace with no config."""

    def __init__(self, namespace: str) -> None:
        super().__init__(f'Namespace "{namespace}" not found. Run ragchat_setup first.')
        self.namespace = namespace


class NoViableInputError(RagChatError):
    """Raised when ingestion input yields zero sections above the minimum length."""


class StorePersistenceError(RagChatError):
    """Raised when persisted namespace state cannot be read or written."""


class EmbeddingError(RagChatError):
    """Raised when embedding generation fails."""


class CompletionError(RagChatError):
    """Raised when the completion provider fails or times out."""


class ProviderNotConfiguredError(RagChatError):
    """Raised when no provider can be resolved from configuration."""


class ListenerBindError(RagChatError):
    """Raised when the chat listener cannot bind any candidate port."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Map request body validation failures to a 400.

    The only required field of any request body is ``message``; every
    validation failure is reported with the same payload.
    """
    logger.info(
        "Rejected malformed request body: %s %s (%d errors)",
        request.method,
        request.url.path,
        len(exc.errors()),
    )
    return JSONResponse(status_code=400, content={"error": "message required"})


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> PlainTextResponse | JSONResponse:
    """
    Unknown paths and unsupported methods are both reported as 404.
    """
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not Found", status_code=404)

    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


async def namespace_not_configured_handler(
    request: Request,
    exc: NamespaceNotConfiguredError,
) -> JSONResponse:
    logger.warning("Chat request for unconfigured namespace %s", exc.namespace)
    return JSONResponse(status_code=404, content={"error": str(exc)})


async def completion_error_handler(
    request: Request,
    exc: CompletionError,
) -> JSONResponse:
    """
    Completion failures are fatal to the request and surface as a 500.
    """
    logger.error(
        "Completion failed during request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    This handler runs outside the application's middleware stack, so it
    attaches the CORS headers itself.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {"error": "internal_server_error"}

    return JSONResponse(
        status_code=500,
        content=payload,
        headers=CORS_HEADERS,
    )
