"""Contracts for the external collaborators the agents depend on."""

from __future__ import annotations

from typing import Any, Protocol

from shop_assistant.types import Identity, ScoredDocument

Row = dict[str, Any]


class OrderStore(Protocol):
    async def list_recent_orders(self, user_id: int, limit: int) -> list[Row]:
        """Newest-first orders owned by `user_id`."""


class PromotionStore(Protocol):
    async def list_active(self) -> list[Row]:
        """Promotions whose time window contains now."""


class CatalogStore(Protocol):
    async def search(self, text: str, limit: int) -> list[Row]:
        """Products whose name or processor matches `text`."""


class CartStore(Protocol):
    async def add_item(self, user_id: int, product_id: int, quantity: int) -> bool:
        """Add a product to the user's cart; False when it cannot be added."""


class GraphStore(Protocol):
    async def run(self, query: str) -> list[Row]:
        """Execute a graph query and return one property dict per record."""


class VectorIndex(Protocol):
    async def nearest_neighbors(self, vector: list[float], k: int) -> list[ScoredDocument]:
        """Top-k passages closest to `vector`."""


class WebSearchProvider(Protocol):
    async def search(self, text: str) -> dict[str, Any]:
        """Return ``{"answer": str | None, "results": [{title, url, content}]}``."""


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity:
        """Decode a bearer credential; raise `IdentityError` when invalid."""
