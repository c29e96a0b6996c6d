"""Inference and embedding provider adapters."""

from __future__ import annotations

import logging
from collections.abc import Callable
from hashlib import blake2b
from math import sqrt
from typing import Any, Protocol

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from shop_assistant.errors import InferenceError, ProviderOverloadError, is_overload_error

logger = logging.getLogger(__name__)


class InferenceProvider(Protocol):
    """Chat completion contract used by the gateway."""

    async def invoke(
        self,
        model_id: str,
        system_prompt: str,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Return the model's text reply."""


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for one text."""


class LangChainInferenceProvider:
    """Calls any LangChain chat model, one instance per model id.

    Provider exceptions are mapped onto the assistant's taxonomy so the
    gateway can tell overload (retry) from everything else (propagate).
    """

    def __init__(self, model_factory: Callable[[str], BaseChatModel]) -> None:
        self._model_factory = model_factory
        self._models: dict[str, BaseChatModel] = {}

    async def invoke(
        self,
        model_id: str,
        system_prompt: str,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        model = self._models.get(model_id)
        if model is None:
            model = self._model_factory(model_id)
            self._models[model_id] = model

        chat: list[BaseMessage] = [SystemMessage(content=system_prompt)]
        for message in messages:
            if message.get("role") == "assistant":
                chat.append(AIMessage(content=message.get("content", "")))
            else:
                chat.append(HumanMessage(content=message.get("content", "")))

        try:
            response = await model.bind(
                max_tokens=max_tokens, temperature=temperature
            ).ainvoke(chat)
        except Exception as exc:
            if is_overload_error(exc):
                raise ProviderOverloadError(f"{model_id}: {exc}") from exc
            raise InferenceError(f"{model_id}: {type(exc).__name__}") from exc

        return _message_text(response)


class OfflineInferenceProvider:
    """Used when no LLM is configured; every call fails as a provider error."""

    async def invoke(
        self,
        model_id: str,
        system_prompt: str,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
    ) -> str:
        raise InferenceError("no inference provider configured")


class LangChainEmbeddingProvider:
    """Adapts a LangChain `Embeddings` model to the provider contract."""

    def __init__(self, embeddings: Embeddings) -> None:
        self._embeddings = embeddings

    async def embed(self, text: str) -> list[float]:
        try:
            return list(await self._embeddings.aembed_query(text))
        except Exception as exc:
            if is_overload_error(exc):
                raise ProviderOverloadError(f"embedding: {exc}") from exc
            raise InferenceError(f"embedding: {type(exc).__name__}") from exc


class HashingEmbedder(Embeddings):
    """Deterministic embedding without external model calls.

    Used for local runs and tests. In production, pass an OpenAI (or other)
    LangChain embedding model to `LangChainEmbeddingProvider` instead.
    """

    def __init__(self, dimension: int = 256) -> None:
        self.dimension = dimension

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> list[float]:
        return self._embed(text)

    def _embed(self, text: str) -> list[float]:
        vector = [0.0 for _ in range(self.dimension)]
        tokens = text.lower().split()
        if not tokens:
            return vector

        for token in tokens:
            digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            sign = -1.0 if digest[4] % 2 else 1.0
            vector[idx] += sign

        norm = sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts).strip()
    return str(content).strip()
