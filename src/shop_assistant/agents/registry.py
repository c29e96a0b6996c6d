"""Agent registry with latency stamping."""

from __future__ import annotations

from collections.abc import Iterator
from time import perf_counter

from shop_assistant.agents.base import RetrievalAgent
from shop_assistant.types import AgentName, AgentResult, Query


class AgentRegistry:
    """Stores retrieval agents by name and executes them."""

    def __init__(self) -> None:
        self._agents: dict[AgentName, RetrievalAgent] = {}

    def register(self, agent: RetrievalAgent) -> None:
        if agent.name in self._agents:
            raise ValueError(f"Agent already registered: {agent.name.value}")
        self._agents[agent.name] = agent

    def get(self, name: AgentName) -> RetrievalAgent:
        agent = self._agents.get(name)
        if agent is None:
            raise KeyError(f"Unknown agent: {name.value}")
        return agent

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    def __iter__(self) -> Iterator[RetrievalAgent]:
        return iter(self._agents.values())

    def names(self) -> list[AgentName]:
        return list(self._agents)

    async def execute(self, name: AgentName, query: Query) -> AgentResult:
        agent = self.get(name)
        start = perf_counter()
        result = await agent.get_context(query)
        result.latency_ms = (perf_counter() - start) * 1000.0
        return result
