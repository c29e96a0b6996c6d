"""Adapters for the external collaborators the agents consume."""

from .base import (
    CartStore,
    CatalogStore,
    GraphStore,
    IdentityVerifier,
    OrderStore,
    PromotionStore,
    Row,
    VectorIndex,
    WebSearchProvider,
)

__all__ = [
    "CartStore",
    "CatalogStore",
    "GraphStore",
    "IdentityVerifier",
    "OrderStore",
    "PromotionStore",
    "Row",
    "VectorIndex",
    "WebSearchProvider",
]
