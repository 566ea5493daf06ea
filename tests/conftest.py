from typing import Dict, List, Optional, Sequence

import pytest

from ragchat_server.api.models import ChatTurn
from ragchat_server.core.errors import CompletionError, EmbeddingError
from ragchat_server.embeddings.embedder import Embedder
from ragchat_server.llm.client import LLMClient
from ragchat_server.main import build_chat_handler
from ragchat_server.store import NamespaceStore


class FakeEmbedder(Embedder):
    """Returns canned vectors keyed by text; ``default`` for anything else."""

    provider = "fake"
    model = "fake-embedding"

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        default: Optional[List[float]] = None,
        fail_on: Optional[set] = None,
        fail_all: bool = False,
    ) -> None:
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0]
        self.fail_on = fail_on or set()
        self.fail_all = fail_all
        self.calls: List[str] = []

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        out = []
        for text in texts:
            self.calls.append(text)
            if self.fail_all or text in self.fail_on:
                raise EmbeddingError("embedding service unavailable")
            out.append(self.vectors.get(text, self.default))
        return out


class FakeLLMClient(LLMClient):
    """Records every completion call and answers with a fixed reply."""

    provider = "fake"

    def __init__(self, reply: str = "Fake reply.", error: Optional[Exception] = None) -> None:
        super().__init__(api_key="test", model="fake-model")
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def complete(self, system_prompt: str, history: Sequence[ChatTurn], message: str) -> str:
        self.calls.append(
            {"system_prompt": system_prompt, "history": list(history), "message": message}
        )
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def store(tmp_path):
    return NamespaceStore(tmp_path / "namespaces")


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def llm():
    return FakeLLMClient()


@pytest.fixture
def failing_llm():
    return FakeLLMClient(error=CompletionError("openai API error: ReadTimeout"))


@pytest.fixture
def chat_handler(store, embedder, llm):
    return build_chat_handler(store, embedder, llm)
