"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class AgentName(str, Enum):
    ORDER = "order"
    PROMOTION = "promotion"
    PRODUCT = "product"
    GRAPH_QUERY = "graph_query"
    KNOWLEDGE_BASE = "knowledge_base"
    WEB_SEARCH = "web_search"


@dataclass(frozen=True, slots=True)
class Identity:
    """Caller identity derived from a verified bearer credential."""

    user_id: int
    role: str | None = None


@dataclass(frozen=True, slots=True)
class Query:
    """One incoming user question. Immutable once received."""

    text: str
    identity: Identity | None = None
    previous_context: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None


@dataclass(slots=True)
class RoutingDecision:
    """Which agents the router enabled for a query."""

    flags: dict[AgentName, bool]
    reasoning: str = ""
    fallback: bool = False

    @classmethod
    def enable_all(cls, reasoning: str) -> "RoutingDecision":
        return cls(
            flags={name: True for name in AgentName},
            reasoning=reasoning,
            fallback=True,
        )

    def selected(self) -> list[AgentName]:
        return [name for name in AgentName if self.flags.get(name, False)]


@dataclass(frozen=True, slots=True)
class TextContent:
    """Plain-text agent payload."""

    text: str


@dataclass(frozen=True, slots=True)
class ProductOffer:
    """Structured product match that expects a cart-add confirmation next."""

    text: str
    product_id: int
    product: dict[str, Any]
    quantity: int = 1
    awaiting_confirmation: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "isProductDisplay": True,
            "product": self.product,
            "productId": self.product_id,
            "quantity": self.quantity,
            "awaitingCartConfirmation": self.awaiting_confirmation,
        }


Payload = Union[TextContent, ProductOffer]


@dataclass(slots=True)
class AgentResult:
    """Output of one agent for one query."""

    agent: AgentName
    payload: Payload
    is_error: bool = False
    latency_ms: float = 0.0

    @property
    def is_structured(self) -> bool:
        return isinstance(self.payload, ProductOffer)

    @property
    def text(self) -> str:
        return self.payload.text


@dataclass(slots=True)
class CacheEntry:
    key: str
    result: str
    created_at: float


@dataclass(slots=True)
class ThrottleState:
    """Pacing state for one endpoint family."""

    min_spacing: float
    last_call_at: float | None = None


class PendingAction(str, Enum):
    NONE = "none"
    AWAIT_CART_CONFIRMATION = "await_cart_confirmation"


@dataclass(slots=True)
class ConversationRecord:
    pending_action: PendingAction = PendingAction.NONE
    product_id: int | None = None
    quantity: int = 1


@dataclass(slots=True)
class KnowledgeDocument:
    """A knowledge-base passage stored in the vector index."""

    doc_id: str
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ScoredDocument:
    document: KnowledgeDocument
    score: float
    rank: int = 0


@dataclass(slots=True)
class AgentTrace:
    """Trace record for one executed agent."""

    name: str
    is_error: bool
    output_preview: str
    latency_ms: float
