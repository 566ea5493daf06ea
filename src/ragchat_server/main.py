"""
Chat Server Application

This module defines the FastAPI application factory for a namespace's chat
endpoint, registers routers and exception handlers, and attaches the CORS
headers every response carries.

Design Goals
------------
- One application instance per served namespace
- Collaborators injected through app.state (test-friendly)
- Centralized router registration
- Global exception safety net
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import chat_routes, health_routes
from .chat.handler import ChatHandler
from .config import Settings, settings as default_settings
from .core.errors import (
    CORS_HEADERS,
    CompletionError,
    NamespaceNotConfiguredError,
    completion_error_handler,
    http_exception_handler,
    namespace_not_configured_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .embeddings.embedder import Embedder
from .llm.client import LLMClient
from .providers import build_embedder, build_llm_client
from .rag.retrieval import RetrievalOrchestrator
from .store import NamespaceStore


logger = logging.getLogger("ragchat.app")


# ---------------------------------------------------------------------
# Collaborator Wiring
# ---------------------------------------------------------------------

def build_chat_handler(
    store: NamespaceStore,
    embedder: Embedder,
    llm: LLMClient,
) -> ChatHandler:
    return ChatHandler(
        store=store,
        retriever=RetrievalOrchestrator(store=store, embedder=embedder),
        llm=llm,
    )


def build_default_chat_handler(config: Optional[Settings] = None) -> ChatHandler:
    """
    Resolve providers from configuration and wire a ChatHandler.
    """
    config = config or default_settings
    return build_chat_handler(
        store=NamespaceStore(config.data_root_path),
        embedder=build_embedder(config),
        llm=build_llm_client(config),
    )


# ---------------------------------------------------------------------
# Application Factory
# ---------------------------------------------------------------------

def create_app(namespace: str, chat_handler: ChatHandler) -> FastAPI:
    """
    Create and configure the chat application for one namespace.

    Parameters
    ----------
    namespace : str
        The namespace answered by this application.

    chat_handler : ChatHandler
        Fully wired handler (store, retrieval, completion).

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="ragchat-server",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.namespace = namespace
    app.state.chat_handler = chat_handler

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(NamespaceNotConfiguredError, namespace_not_configured_handler)
    app.add_exception_handler(CompletionError, completion_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # CORS
    # --------------------------------------------------------------

    @app.middleware("http")
    async def _cors(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        # Preflight for any path
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(chat_routes.router)

    logger.info("Chat application created for namespace %s", namespace)

    return app
