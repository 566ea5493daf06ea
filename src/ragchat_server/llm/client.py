"""
Completion Clients

Each client turns ``(system_prompt, history, message)`` into a single reply
string. Providers: Anthropic Messages API, OpenAI Chat Completions, Gemini
generateContent. Every transport failure, timeout or unexpected response
shape is raised as ``CompletionError``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
import logging

import httpx

from ..api.models import ChatTurn
from ..config import secret_value, settings
from ..core.errors import CompletionError

logger = logging.getLogger("ragchat.llm")


NO_RESPONSE = "No response generated."


class LLMClient:
    """
    Base completion client.

    Subclasses build a provider payload and parse the provider response;
    the HTTP round trip and error mapping live here.
    """

    provider: str = "base"
    default_model: str = ""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or settings.llm_model or self.default_model
        self.timeout = timeout or settings.request_timeout
        self.max_tokens = max_tokens or settings.max_tokens
        self.temperature = settings.temperature if temperature is None else temperature
        self._transport = transport

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        raise NotImplementedError

    async def _post(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.post(url, json=payload, headers=headers, params=params)
                resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "%s completion returned HTTP %d: %s",
                    self.provider,
                    exc.response.status_code,
                    exc.response.text[:500],
                )
                raise CompletionError(
                    f"{self.provider} API error: HTTP {exc.response.status_code}"
                ) from exc
            except httpx.HTTPError as exc:
                logger.error(
                    "%s completion request failed (%s): %s",
                    self.provider,
                    type(exc).__name__,
                    str(exc),
                )
                raise CompletionError(
                    f"{self.provider} API error: {type(exc).__name__}"
                ) from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise CompletionError(f"{self.provider} API returned invalid JSON") from exc


class OpenAIClient(LLMClient):
    provider = "openai"
    default_model = "gpt-4o-mini"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(api_key=api_key or secret_value(settings.openai_api_key), **kwargs)

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        """
        Returns the assistant message content from OpenAI, e.g. from:
        { "choices": [ {"message": {"role": "assistant", "content": "..."}} ] }
        """
        messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        messages += [{"role": h.role, "content": h.text} for h in history]
        messages.append({"role": "user", "content": message})

        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        data = await self._post(
            "https://api.openai.com/v1/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

        try:
            return data["choices"][0]["message"]["content"] or NO_RESPONSE
        except (KeyError, IndexError, TypeError):
            return NO_RESPONSE


class AnthropicClient(LLMClient):
    provider = "anthropic"
    default_model = "claude-sonnet-4-5-20250929"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(api_key=api_key or secret_value(settings.anthropic_api_key), **kwargs)

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        messages = [{"role": h.role, "content": h.text} for h in history]
        messages.append({"role": "user", "content": message})

        payload = {
            "model": self.model,
            "system": system_prompt,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }

        data = await self._post(
            "https://api.anthropic.com/v1/messages",
            payload,
            headers={
                "x-api-key": self.api_key or "",
                "anthropic-version": "2023-06-01",
            },
        )

        try:
            return data["content"][0]["text"] or NO_RESPONSE
        except (KeyError, IndexError, TypeError):
            return NO_RESPONSE


class GeminiClient(LLMClient):
    provider = "gemini"
    default_model = "gemini-2.0-flash"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(api_key=api_key or secret_value(settings.gemini_api_key), **kwargs)

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        message: str,
    ) -> str:
        # Gemini names the assistant role "model"
        contents = [
            {
                "role": "model" if h.role == "assistant" else "user",
                "parts": [{"text": h.text}],
            }
            for h in history
        ]
        contents.append({"role": "user", "parts": [{"text": message}]})

        payload = {
            "system_instruction": {"parts": [{"text": system_prompt}]},
            "contents": contents,
            "generationConfig": {
                "maxOutputTokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }

        data = await self._post(
            f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent",
            payload,
            params={"key": self.api_key or ""},
        )

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"] or NO_RESPONSE
        except (KeyError, IndexError, TypeError):
            return NO_RESPONSE
