"""Throttled access to inference and embedding providers."""

from .llm import EmbeddingClient, InferenceClient, ModelTier
from .throttle import EndpointClass, ThrottledGateway

__all__ = [
    "EmbeddingClient",
    "EndpointClass",
    "InferenceClient",
    "ModelTier",
    "ThrottledGateway",
]
