"""Gateway-backed inference and embedding clients."""

from __future__ import annotations

import logging
from enum import Enum

from shop_assistant.errors import ProviderOverloadError
from shop_assistant.gateway.providers import EmbeddingProvider, InferenceProvider
from shop_assistant.gateway.throttle import EndpointClass, ThrottledGateway

logger = logging.getLogger(__name__)


class ModelTier(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class InferenceClient:
    """Chat completions paced through the gateway's inference lane."""

    def __init__(self, provider: InferenceProvider, gateway: ThrottledGateway) -> None:
        self.provider = provider
        self.gateway = gateway

    def model_for(self, tier: ModelTier) -> str:
        config = self.gateway.config
        return config.primary_model if tier is ModelTier.PRIMARY else config.fallback_model

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        *,
        tier: ModelTier = ModelTier.FALLBACK,
        max_tokens: int = 500,
        temperature: float = 0.0,
    ) -> str:
        messages = [{"role": "user", "content": user_message}]
        try:
            return await self._complete_with(
                self.model_for(tier), system_prompt, messages, max_tokens, temperature
            )
        except ProviderOverloadError:
            if tier is ModelTier.FALLBACK or not self.gateway.config.fallback_on_overload:
                raise
            logger.warning(
                "[llm] primary model overloaded; retrying with %s",
                self.model_for(ModelTier.FALLBACK),
            )
            return await self._complete_with(
                self.model_for(ModelTier.FALLBACK),
                system_prompt,
                messages,
                max_tokens,
                temperature,
            )

    async def _complete_with(
        self,
        model_id: str,
        system_prompt: str,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> str:
        async def _call() -> str:
            return await self.provider.invoke(
                model_id,
                system_prompt,
                messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )

        out = await self.gateway.invoke(_call, EndpointClass.INFERENCE)
        logger.info("[llm] model=%s response_len=%d", model_id, len(out))
        return out


class EmbeddingClient:
    """Embeddings paced through the gateway's embedding lane."""

    def __init__(self, provider: EmbeddingProvider, gateway: ThrottledGateway) -> None:
        self.provider = provider
        self.gateway = gateway

    async def embed(self, text: str) -> list[float]:
        async def _call() -> list[float]:
            return await self.provider.embed(text)

        return await self.gateway.invoke(_call, EndpointClass.EMBEDDING)
