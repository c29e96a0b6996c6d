"""Request tracing and aggregate metrics."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from shop_assistant.types import AgentResult, AgentTrace, RoutingDecision

PREVIEW_LENGTH = 200


@dataclass(slots=True)
class TraceRecord:
    trace_id: str
    timestamp_utc: str
    question: str
    answer_preview: str
    user_id: int | None
    routing: dict[str, bool]
    routing_reasoning: str
    routing_fallback: bool
    agent_traces: list[AgentTrace]
    short_circuit: str | None
    latency_ms: float


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def agent_traces_from(results: list[AgentResult]) -> list[AgentTrace]:
    return [
        AgentTrace(
            name=result.agent.value,
            is_error=result.is_error,
            output_preview=preview(result.text),
            latency_ms=result.latency_ms,
        )
        for result in results
    ]


class TraceStore:
    """In-memory trace storage for API-level observability."""

    def __init__(self, *, max_records: int = 1000) -> None:
        self._records: dict[str, TraceRecord] = {}
        self.max_records = max_records

    def create_record(
        self,
        *,
        question: str,
        answer: str,
        user_id: int | None,
        decision: RoutingDecision | None,
        results: list[AgentResult],
        short_circuit: str | None,
        latency_ms: float,
    ) -> TraceRecord:
        record = TraceRecord(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            question=question,
            answer_preview=preview(answer),
            user_id=user_id,
            routing={name.value: flag for name, flag in decision.flags.items()} if decision else {},
            routing_reasoning=decision.reasoning if decision else "",
            routing_fallback=decision.fallback if decision else False,
            agent_traces=agent_traces_from(results),
            short_circuit=short_circuit,
            latency_ms=latency_ms,
        )
        self._records[record.trace_id] = record
        while len(self._records) > self.max_records:
            del self._records[next(iter(self._records))]
        return record

    def get(self, trace_id: str) -> TraceRecord:
        record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[TraceRecord]:
        return list(self._records.values())[-limit:]

    def __len__(self) -> int:
        return len(self._records)

    def summary(self) -> dict[str, float | int]:
        """Aggregate core observability metrics for dashboard display."""
        records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_requests": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "agent_calls": 0,
                "agent_error_rate": 0.0,
                "short_circuits": 0,
                "routing_fail_open": 0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        agent_calls = sum(len(record.agent_traces) for record in records)
        agent_errors = sum(
            1 for record in records for trace in record.agent_traces if trace.is_error
        )

        return {
            "total_requests": total,
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "agent_calls": agent_calls,
            "agent_error_rate": agent_errors / agent_calls if agent_calls else 0.0,
            "short_circuits": sum(1 for record in records if record.short_circuit),
            "routing_fail_open": sum(1 for record in records if record.routing_fallback),
        }


class Timer:
    """Simple context timer used by the assistant."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
