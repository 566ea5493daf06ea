"""
Embedding Clients

This module implements the embedding collaborators consumed by ingestion and
retrieval. Every client exposes the same narrow interface:

- ``embed(texts)`` for a batch of inputs
- ``embed_one(text)`` for a single input

Supported providers
-------------------
- OpenAI embeddings API (batched)
- Gemini ``embedContent`` API
- AWS Bedrock Titan embeddings (boto3 imported on first use)

Transport failures and malformed responses are isolated behind
``EmbeddingError``. Clients are stateless and safe to reuse across requests.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, List, Optional, Sequence

import httpx

from ..config import secret_value, settings
from ..core.errors import EmbeddingError

logger = logging.getLogger("ragchat.embedder")


MAX_INPUT_CHARS = 8000


def _validate_vector(emb: Any, index: int) -> List[float]:
    if not isinstance(emb, list) or not all(
        isinstance(x, (float, int)) for x in emb
    ):
        raise EmbeddingError(
            f"Invalid embedding vector at index {index}: must be float list."
        )
    return [float(x) for x in emb]


class Embedder:
    """
    Base embedding client.

    Subclasses implement ``embed``; ``embed_one`` is derived from it.
    """

    provider: str = "base"

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        raise NotImplementedError

    async def embed_one(self, text: str) -> List[float]:
        vectors = await self.embed([text])
        if not vectors:
            raise EmbeddingError("Embedding provider returned no vectors.")
        return vectors[0]


class OpenAIEmbedder(Embedder):
    """
    Asynchronous embedding generator backed by the OpenAI embeddings API
    (or any compatible provider).
    """

    provider = "openai"
    default_model = "text-embedding-3-small"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1/embeddings",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        api_key : Optional[str]
            Optional override for the API key. Defaults to settings.openai_api_key.

        model : Optional[str]
            Optional override for the embedding model. Defaults to
            settings.embedding_model, then text-embedding-3-small.

        base_url : str
            URL of the embeddings API endpoint.

        timeout : Optional[float]
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport, used by tests.
        """
        self.api_key = api_key or secret_value(settings.openai_api_key)
        self.model = model or settings.embedding_model or self.default_model
        self.base_url = base_url
        self.timeout = timeout or settings.request_timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(
        self,
        texts: Sequence[str],
        batch_size: int = 20,
    ) -> List[List[float]]:
        """
        Generate embeddings for a sequence of input texts.

        Raises
        ------
        EmbeddingError
            If any batch fails or the response is malformed.
        """
        if not texts:
            return []

        all_embeddings: List[List[float]] = []
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for start in range(0, len(texts), batch_size):
                batch = [t[:MAX_INPUT_CHARS] for t in texts[start : start + batch_size]]
                payload = {
                    "model": self.model,
                    "input": batch,
                }

                try:
                    response = await client.post(
                        self.base_url,
                        json=payload,
                        headers=headers,
                    )
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.error(
                        "OpenAI embedding request failed (%s): batch size=%d, error=%s",
                        type(exc).__name__,
                        len(batch),
                        str(exc),
                    )
                    raise EmbeddingError(
                        f"OpenAI embeddings failed: {type(exc).__name__}"
                    ) from exc

                try:
                    data = response.json()
                except ValueError as exc:
                    raise EmbeddingError("OpenAI returned invalid JSON.") from exc

                embeddings = self._extract_embeddings(data)
                if len(embeddings) != len(batch):
                    raise EmbeddingError(
                        f"Expected {len(batch)} embeddings, got {len(embeddings)}."
                    )
                all_embeddings.extend(embeddings)

        return all_embeddings

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_embeddings(data: dict) -> List[List[float]]:
        """
        Parse and validate embedding output format.

        OpenAI returns:
            { "data": [ {"embedding": [...]}, ... ] }
        """
        if not isinstance(data, dict) or "data" not in data:
            raise EmbeddingError("Embedding response missing 'data' field.")

        records = data["data"]
        if not isinstance(records, list):
            raise EmbeddingError("'data' field must be a list.")

        embeddings: List[List[float]] = []

        for index, record in enumerate(records):
            if not isinstance(record, dict) or "embedding" not in record:
                raise EmbeddingError(
                    f"Malformed embedding record at index {index}: {record!r}"
                )

            embeddings.append(_validate_vector(record["embedding"], index))

        return embeddings


class GeminiEmbedder(Embedder):
    """
    Embedding generator backed by the Gemini ``embedContent`` endpoint.

    The endpoint embeds one input per request, so batches are sent
    sequentially over a single connection.
    """

    provider = "gemini"
    default_model = "text-embedding-004"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key or secret_value(settings.gemini_api_key)
        self.model = model or settings.embedding_model or self.default_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.request_timeout
        self._transport = transport

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        url = f"{self.base_url}/{self.model}:embedContent"
        embeddings: List[List[float]] = []

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for index, text in enumerate(texts):
                payload = {"content": {"parts": [{"text": text[:MAX_INPUT_CHARS]}]}}

                try:
                    response = await client.post(
                        url,
                        json=payload,
                        params={"key": self.api_key},
                    )
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.error(
                        "Gemini embedding request failed (%s): %s",
                        type(exc).__name__,
                        str(exc),
                    )
                    raise EmbeddingError(
                        f"Gemini embeddings failed: {type(exc).__name__}"
                    ) from exc

                try:
                    values = response.json()["embedding"]["values"]
                except (ValueError, KeyError, TypeError) as exc:
                    raise EmbeddingError(
                        "Gemini response missing 'embedding.values'."
                    ) from exc

                embeddings.append(_validate_vector(values, index))

        return embeddings


class BedrockEmbedder(Embedder):
    """
    Embedding generator backed by AWS Bedrock Titan text embeddings.

    boto3 is only imported when this provider is actually used. Its client
    is synchronous, so each call runs in a worker thread.
    """

    provider = "bedrock"
    default_model = "amazon.titan-embed-text-v2:0"

    def __init__(
        self,
        region: Optional[str] = None,
        model: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.region = region or settings.aws_region or "us-east-1"
        self.model = model or settings.embedding_model or self.default_model
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            import boto3

            self._client = boto3.client("bedrock-runtime", region_name=self.region)
        return self._client

    def _invoke(self, text: str) -> List[float]:
        response = self._get_client().invoke_model(
            modelId=self.model,
            body=json.dumps({"inputText": text[:MAX_INPUT_CHARS]}),
        )
        body = json.loads(response["body"].read())
        return body["embedding"]

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        embeddings: List[List[float]] = []

        for index, text in enumerate(texts):
            try:
                values = await asyncio.to_thread(self._invoke, text)
            except Exception as exc:
                logger.error(
                    "Bedrock embedding request failed (%s): %s",
                    type(exc).__name__,
                    str(exc),
                )
                raise EmbeddingError(
                    f"Bedrock embeddings failed: {type(exc).__name__}"
                ) from exc

            embeddings.append(_validate_vector(values, index))

        return embeddings


class UnavailableEmbedder(Embedder):
    """
    Stand-in used when no embedding provider is configured.

    Every call raises ``EmbeddingError`` with the configuration hint.
    """

    provider = "none"
    model = "none"

    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        raise EmbeddingError(self.reason)
