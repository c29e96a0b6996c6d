"""Concurrent agent fan-out with per-agent failure isolation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from time import perf_counter

from shop_assistant.agents.registry import AgentRegistry
from shop_assistant.config import AssistantConfig
from shop_assistant.types import AgentName, AgentResult, Query, RoutingDecision, TextContent

logger = logging.getLogger(__name__)

TOTAL_FAILURE_MESSAGE = "Hệ thống đang gặp sự cố. Vui lòng thử lại sau ít phút."
NO_RESULT_MESSAGE = (
    "Xin lỗi, tôi không tìm thấy thông tin phù hợp với câu hỏi của bạn. "
    "Vui lòng thử lại với câu hỏi khác hoặc liên hệ với chúng tôi để được hỗ trợ."
)


@dataclass(slots=True)
class FanOutOutcome:
    """Settled results of one fan-out, in dispatch order."""

    dispatched: list[AgentName]
    results: list[AgentResult] = field(default_factory=list)
    short_circuit_answer: str | None = None
    short_circuit_reason: str | None = None

    @property
    def usable_results(self) -> list[AgentResult]:
        return [result for result in self.results if not result.is_error]

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if result.is_error)


class FanOutExecutor:
    """Runs the selected agents concurrently.

    A failing agent becomes an error result carrying its own fallback text and
    never cancels its siblings. When every dispatched agent fails the outcome
    carries a static answer so synthesis is skipped.
    """

    def __init__(self, registry: AgentRegistry, config: AssistantConfig | None = None) -> None:
        self.registry = registry
        self.config = config or AssistantConfig()

    def dispatch_set(self, query: Query, decision: RoutingDecision) -> list[AgentName]:
        """Router selections plus any override agent whose heuristic matches."""
        selected = set(decision.selected())
        for agent in self.registry:
            if agent.overrides_router and agent.name not in selected and agent.is_relevant(query):
                logger.info("[fanout] %s dispatched by its own heuristic", agent.name.value)
                selected.add(agent.name)
        return [name for name in AgentName if name in selected and name in self.registry]

    async def run(self, query: Query, decision: RoutingDecision) -> FanOutOutcome:
        dispatched = self.dispatch_set(query, decision)
        outcome = FanOutOutcome(dispatched=dispatched)
        if not dispatched:
            outcome.short_circuit_answer = NO_RESULT_MESSAGE
            outcome.short_circuit_reason = "no_agents"
            return outcome

        serialized = (
            AgentName.WEB_SEARCH
            if self.config.serialize_web_search and AgentName.WEB_SEARCH in dispatched
            else None
        )
        tasks = {
            name: asyncio.create_task(self._run_isolated(name, query))
            for name in dispatched
            if name is not serialized
        }
        settled: dict[AgentName, AgentResult] = {}
        if serialized is not None:
            # Awaited before the other tasks are joined; they are already running.
            settled[serialized] = await self._run_isolated(serialized, query)
        if tasks:
            joined = await asyncio.gather(*tasks.values())
            settled.update(zip(tasks.keys(), joined))

        outcome.results = [settled[name] for name in dispatched]
        logger.info(
            "[fanout] dispatched=%d failed=%d",
            len(outcome.results),
            outcome.failed_count,
        )
        if outcome.failed_count == len(outcome.results):
            outcome.short_circuit_answer = TOTAL_FAILURE_MESSAGE
            outcome.short_circuit_reason = "all_failed"
        return outcome

    async def _run_isolated(self, name: AgentName, query: Query) -> AgentResult:
        start = perf_counter()
        try:
            return await self.registry.execute(name, query)
        except Exception as exc:
            logger.exception("[fanout] agent %s failed: %s", name.value, exc)
            agent = self.registry.get(name)
            return AgentResult(
                agent=name,
                payload=TextContent(agent.failure_message),
                is_error=True,
                latency_ms=(perf_counter() - start) * 1000.0,
            )
