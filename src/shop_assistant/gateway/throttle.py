"""Paced, serialized provider calls with exponential backoff on overload."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

from shop_assistant.config import GatewayConfig
from shop_assistant.errors import ProviderOverloadError
from shop_assistant.types import ThrottleState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EndpointClass(str, Enum):
    INFERENCE = "inference"
    EMBEDDING = "embedding"


class _Lane:
    """Single-file queue for one endpoint family."""

    def __init__(self, state: ThrottleState, base_delay: float) -> None:
        self.state = state
        self.base_delay = base_delay
        self.lock = asyncio.Lock()


class ThrottledGateway:
    """The only path to an external inference or embedding provider.

    Each endpoint class gets its own lane. A lane admits one call at a time
    (an `asyncio.Lock`, which wakes waiters in FIFO order) and keeps at least
    `min_spacing` seconds between the starts of consecutive calls by delaying,
    never rejecting, the next caller.

    Overload errors are retried up to `max_attempts` total attempts. The wait
    before retry ``n`` is ``base_delay * 2 ** (n - 1)`` plus uniform jitter in
    ``[0, jitter_seconds]``. The backoff wait is taken outside the lane so
    other callers keep flowing. Any other exception propagates immediately.
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.config = config or GatewayConfig()
        self._clock = clock
        self._sleep = sleep
        self._jitter = jitter
        self._lanes = {
            EndpointClass.INFERENCE: _Lane(
                ThrottleState(min_spacing=self.config.inference_spacing_seconds),
                self.config.inference_base_delay,
            ),
            EndpointClass.EMBEDDING: _Lane(
                ThrottleState(min_spacing=self.config.embedding_spacing_seconds),
                self.config.embedding_base_delay,
            ),
        }

    def state(self, endpoint: EndpointClass) -> ThrottleState:
        return self._lanes[endpoint].state

    def backoff_delay(self, endpoint: EndpointClass, retry_number: int) -> float:
        """Minimum wait (without jitter) before the given 1-based retry."""
        return self._lanes[endpoint].base_delay * (2 ** (retry_number - 1))

    async def invoke(
        self,
        operation: Callable[[], Awaitable[T]],
        endpoint: EndpointClass = EndpointClass.INFERENCE,
    ) -> T:
        lane = self._lanes[endpoint]
        max_attempts = self.config.max_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                return await self._call_in_lane(lane, endpoint, operation, attempt)
            except ProviderOverloadError as exc:
                if attempt == max_attempts:
                    logger.error(
                        "[gateway:%s] overloaded after %d attempts", endpoint.value, attempt
                    )
                    raise ProviderOverloadError(str(exc), attempts=attempt) from exc

                delay = self.backoff_delay(endpoint, attempt)
                delay += self._jitter(0.0, self.config.jitter_seconds)
                logger.warning(
                    "[gateway:%s] overload on attempt %d/%d, retrying in %.2fs",
                    endpoint.value,
                    attempt,
                    max_attempts,
                    delay,
                )
                await self._sleep(delay)

        # max_attempts >= 1, so the loop always returns or raises.
        raise AssertionError("unreachable")

    async def _call_in_lane(
        self,
        lane: _Lane,
        endpoint: EndpointClass,
        operation: Callable[[], Awaitable[T]],
        attempt: int,
    ) -> T:
        async with lane.lock:
            state = lane.state
            if state.last_call_at is not None:
                elapsed = self._clock() - state.last_call_at
                wait = state.min_spacing - elapsed
                if wait > 0:
                    logger.info(
                        "[gateway:%s] pacing: waiting %.2fs before next call",
                        endpoint.value,
                        wait,
                    )
                    await self._sleep(wait)
            state.last_call_at = self._clock()
            logger.debug("[gateway:%s] sending request (attempt %d)", endpoint.value, attempt)
            return await operation()
