"""Top-level request flow: identity, pending confirmation, route, fan out, synthesize."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from shop_assistant.errors import IdentityError
from shop_assistant.obs.tracing import Timer, TraceStore
from shop_assistant.orchestration.conversation import CartConfirmationHandler
from shop_assistant.orchestration.executor import FanOutExecutor
from shop_assistant.orchestration.router import QueryRouter
from shop_assistant.orchestration.synthesizer import ResponseSynthesizer
from shop_assistant.stores.base import IdentityVerifier
from shop_assistant.types import AgentName, AgentResult, Identity, ProductOffer, Query, RoutingDecision

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssistantReply:
    answer: str | ProductOffer
    trace_id: str
    dispatched: list[AgentName] = field(default_factory=list)
    short_circuit: str | None = None

    def answer_payload(self) -> str | dict[str, Any]:
        if isinstance(self.answer, ProductOffer):
            return self.answer.to_payload()
        return self.answer


class ShoppingAssistant:
    """Answers one question per call; holds no per-request state itself."""

    def __init__(
        self,
        *,
        router: QueryRouter,
        executor: FanOutExecutor,
        synthesizer: ResponseSynthesizer,
        confirmations: CartConfirmationHandler,
        trace_store: TraceStore,
        identity_verifier: IdentityVerifier | None = None,
    ) -> None:
        self.router = router
        self.executor = executor
        self.synthesizer = synthesizer
        self.confirmations = confirmations
        self.trace_store = trace_store
        self.identity_verifier = identity_verifier

    def identify(self, token: str | None) -> Identity | None:
        """Verify a bearer credential; an invalid one is treated as anonymous."""
        if not token or self.identity_verifier is None:
            return None
        try:
            return self.identity_verifier.verify(token)
        except IdentityError as exc:
            logger.warning("[assistant] credential rejected, continuing anonymously: %s", exc)
            return None

    async def answer(
        self,
        question: str,
        token: str | None = None,
        previous_context: str | None = None,
    ) -> AssistantReply:
        query = Query(text=question, identity=self.identify(token), previous_context=previous_context)
        decision: RoutingDecision | None = None
        results: list[AgentResult] = []
        dispatched: list[AgentName] = []
        short_circuit: str | None = None

        with Timer() as timer:
            answer: str | ProductOffer
            pending = (
                await self.confirmations.pending(query.identity) if query.identity else None
            )
            if pending is not None:
                answer = await self.confirmations.resolve(query.identity, question)
                short_circuit = "cart_confirmation"
            else:
                decision = await self.router.route(query)
                outcome = await self.executor.run(query, decision)
                results = outcome.results
                dispatched = outcome.dispatched
                if outcome.short_circuit_answer is not None:
                    answer = outcome.short_circuit_answer
                    short_circuit = outcome.short_circuit_reason
                else:
                    answer = await self.synthesizer.synthesize(query, outcome.usable_results)

                if (
                    isinstance(answer, ProductOffer)
                    and answer.awaiting_confirmation
                    and query.identity is not None
                ):
                    await self.confirmations.conversations.await_cart_confirmation(
                        query.identity, answer.product_id, answer.quantity
                    )

        answer_text = answer.text if isinstance(answer, ProductOffer) else answer
        record = self.trace_store.create_record(
            question=question,
            answer=answer_text,
            user_id=query.identity.user_id if query.identity else None,
            decision=decision,
            results=results,
            short_circuit=short_circuit,
            latency_ms=timer.elapsed_ms,
        )
        logger.info(
            "[assistant] trace=%s dispatched=%s short_circuit=%s latency_ms=%.1f",
            record.trace_id,
            [name.value for name in dispatched],
            short_circuit,
            record.latency_ms,
        )
        return AssistantReply(
            answer=answer,
            trace_id=record.trace_id,
            dispatched=dispatched,
            short_circuit=short_circuit,
        )
