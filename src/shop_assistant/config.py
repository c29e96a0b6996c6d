"""Configuration models for the shopping assistant."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GatewayConfig(BaseModel):
    """Configures pacing, backoff and model tiers for provider calls."""

    inference_spacing_seconds: float = Field(default=1.5, ge=0.0)
    embedding_spacing_seconds: float = Field(default=2.0, ge=0.0)
    max_attempts: int = Field(default=4, ge=1)
    inference_base_delay: float = Field(default=1.0, ge=0.0)
    embedding_base_delay: float = Field(default=2.0, ge=0.0)
    jitter_seconds: float = Field(default=0.5, ge=0.0)
    primary_model: str = "gpt-4o"
    fallback_model: str = "gpt-4o-mini"
    fallback_on_overload: bool = True


class CacheConfig(BaseModel):
    """Configures the semantic result cache."""

    ttl_seconds: float = Field(default=30 * 60, gt=0.0)
    max_entries: int = Field(default=100, ge=1)
    fuzzy_min_key_length: int = Field(default=10, ge=0)
    similarity_threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class AssistantConfig(BaseModel):
    """Configures routing, fan-out and synthesis behavior."""

    router_max_tokens: int = Field(default=300, ge=1)
    router_temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    synthesis_max_tokens: int = Field(default=700, ge=1)
    synthesis_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    graph_max_tokens: int = Field(default=500, ge=1)
    knowledge_base_top_k: int = Field(default=4, ge=1)
    catalog_limit: int = Field(default=3, ge=1)
    order_limit: int = Field(default=3, ge=1)
    # Web search is awaited in-line before the other agents are joined.
    serialize_web_search: bool = True
