"""
Provider Resolution

Resolves configuration into the embedding and completion capability objects
used by the rest of the application. Resolution happens once, when the
capability is built; callers hold on to the returned client.

Selection
---------
An explicit ``embedding_provider`` / ``llm_provider`` setting always wins.
Otherwise the first provider whose credentials are present is used:

- completion: Anthropic > OpenAI > Gemini
- embedding:  OpenAI > Gemini > Bedrock

Missing completion credentials are fatal. Missing embedding credentials are
not: the embedder then fails on every call, which retrieval tolerates.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Type

from .config import Settings, secret_value, settings as default_settings
from .core.errors import ProviderNotConfiguredError
from .embeddings.embedder import (
    BedrockEmbedder,
    Embedder,
    GeminiEmbedder,
    OpenAIEmbedder,
    UnavailableEmbedder,
)
from .llm.client import AnthropicClient, GeminiClient, LLMClient, OpenAIClient

logger = logging.getLogger("ragchat.providers")


EMBEDDER_REGISTRY: Dict[str, Callable[[Settings], Embedder]] = {
    "openai": lambda c: OpenAIEmbedder(
        api_key=secret_value(c.openai_api_key),
        model=c.embedding_model,
        timeout=c.request_timeout,
    ),
    "gemini": lambda c: GeminiEmbedder(
        api_key=secret_value(c.gemini_api_key),
        model=c.embedding_model,
        timeout=c.request_timeout,
    ),
    "bedrock": lambda c: BedrockEmbedder(
        region=c.aws_region,
        model=c.embedding_model,
    ),
}

_LLM_CLASSES: Dict[str, Type[LLMClient]] = {
    "anthropic": AnthropicClient,
    "openai": OpenAIClient,
    "gemini": GeminiClient,
}

_LLM_KEYS: Dict[str, Callable[[Settings], Optional[str]]] = {
    "anthropic": lambda c: secret_value(c.anthropic_api_key),
    "openai": lambda c: secret_value(c.openai_api_key),
    "gemini": lambda c: secret_value(c.gemini_api_key),
}


def resolve_embedding_provider(config: Optional[Settings] = None) -> str:
    config = config or default_settings

    if config.embedding_provider:
        return config.embedding_provider
    if config.openai_api_key:
        return "openai"
    if config.gemini_api_key:
        return "gemini"
    if config.aws_region or config.aws_access_key_id:
        return "bedrock"

    raise ProviderNotConfiguredError(
        "No embedding provider configured. Set OPENAI_API_KEY, GEMINI_API_KEY, or AWS credentials."
    )


def resolve_llm_provider(config: Optional[Settings] = None) -> str:
    config = config or default_settings

    if config.llm_provider:
        return config.llm_provider
    if config.anthropic_api_key:
        return "anthropic"
    if config.openai_api_key:
        return "openai"
    if config.gemini_api_key:
        return "gemini"

    raise ProviderNotConfiguredError(
        "No LLM provider configured. Set ANTHROPIC_API_KEY, OPENAI_API_KEY, or GEMINI_API_KEY."
    )


def build_embedder(config: Optional[Settings] = None) -> Embedder:
    """
    Build the embedding client for ``config``.

    Without embedding credentials an ``UnavailableEmbedder`` is returned, so
    chat still works (retrieval degrades to no context) and ingestion reports
    per-section failures.
    """
    config = config or default_settings
    try:
        name = resolve_embedding_provider(config)
    except ProviderNotConfiguredError as exc:
        logger.warning("%s Retrieval will run without context.", exc)
        return UnavailableEmbedder(str(exc))

    embedder = EMBEDDER_REGISTRY[name](config)
    logger.info("Using %s embeddings (model=%s)", name, embedder.model)
    return embedder


def build_llm_client(config: Optional[Settings] = None) -> LLMClient:
    config = config or default_settings
    name = resolve_llm_provider(config)
    client = _LLM_CLASSES[name](
        api_key=_LLM_KEYS[name](config),
        model=config.llm_model,
        timeout=config.request_timeout,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
    logger.info("Using %s completions (model=%s)", name, client.model)
    return client
