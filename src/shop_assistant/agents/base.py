"""Retrieval agent interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from shop_assistant.types import AgentName, AgentResult, Payload, Query, TextContent


class RetrievalAgent(ABC):
    """One retrieval capability plus a cheap relevance heuristic.

    `is_relevant` is a local keyword check, never an inference call.
    `overrides_router` lets the heuristic alone dispatch the agent even when
    the router did not select it.
    """

    name: AgentName
    failure_message: str = "Không thể truy vấn thông tin."
    overrides_router: bool = False

    @abstractmethod
    def is_relevant(self, query: Query) -> bool:
        """Return True when the query looks like this agent's territory."""

    @abstractmethod
    async def get_context(self, query: Query) -> AgentResult:
        """Produce this agent's context for the query."""

    def result(self, payload: Payload | str) -> AgentResult:
        if isinstance(payload, str):
            payload = TextContent(payload)
        return AgentResult(agent=self.name, payload=payload)


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)
