"""Approximate result cache keyed by normalized query text."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from shop_assistant.config import CacheConfig
from shop_assistant.types import CacheEntry

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[?!.,;:\-]")
_WHITESPACE = re.compile(r"\s+")

STALE_NOTE = "(Lưu ý: Đây là kết quả tạm thời do hệ thống đang quá tải)"


def normalize_query(text: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace and trim."""
    lowered = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def character_similarity(first: str, second: str) -> float:
    """Share of the shorter string's characters found anywhere in the longer.

    Divided by the longer string's length. Order-insensitive and cheap; short
    strings made of common characters score high, which is accepted.
    """
    longer, shorter = (first, second) if len(first) > len(second) else (second, first)
    if not longer:
        return 1.0
    matches = sum(1 for char in shorter if char in longer)
    return matches / len(longer)


@dataclass(slots=True)
class CacheHit:
    result: str
    key: str
    fuzzy: bool = False
    stale: bool = False


class SemanticResultCache:
    """In-memory TTL cache with fuzzy near-duplicate lookup.

    Lookup order:
    1. Exact match on the normalized key.
    2. Fuzzy match over unexpired entries whose key is longer than
       `fuzzy_min_key_length`: substring containment either way, or
       `character_similarity` above `similarity_threshold`.
    3. Only when `degraded=True`: the most recently created unexpired entry of
       any key, annotated as a temporary result.

    TTL is measured from creation, never refreshed on access.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, query: str, *, degraded: bool = False) -> CacheHit | None:
        key = normalize_query(query)
        async with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry, now):
                self.hits += 1
                logger.info("[cache] exact hit (hits=%d misses=%d)", self.hits, self.misses)
                return CacheHit(result=entry.result, key=key)

            for cached_key, cached in self._entries.items():
                if not self._is_fresh(cached, now):
                    continue
                if len(cached_key) <= self.config.fuzzy_min_key_length:
                    continue
                if (
                    key in cached_key
                    or cached_key in key
                    or character_similarity(cached_key, key) > self.config.similarity_threshold
                ):
                    self.hits += 1
                    logger.info(
                        "[cache] similar hit key=%r (hits=%d misses=%d)",
                        cached_key,
                        self.hits,
                        self.misses,
                    )
                    return CacheHit(result=cached.result, key=cached_key, fuzzy=True)

            if degraded:
                newest = self._newest_fresh(now)
                if newest is not None:
                    logger.warning("[cache] serving stale entry key=%r under overload", newest.key)
                    return CacheHit(
                        result=f"{newest.result}\n\n{STALE_NOTE}",
                        key=newest.key,
                        stale=True,
                    )

            self.misses += 1
            logger.info("[cache] miss (hits=%d misses=%d)", self.hits, self.misses)
            return None

    async def put(self, query: str, result: str) -> None:
        key = normalize_query(query)
        async with self._lock:
            self._entries[key] = CacheEntry(key=key, result=result, created_at=self._clock())
            if len(self._entries) > self.config.max_entries:
                self._sweep(self._clock())

    def stats(self) -> dict[str, int]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at < self.config.ttl_seconds

    def _newest_fresh(self, now: float) -> CacheEntry | None:
        fresh = [entry for entry in self._entries.values() if self._is_fresh(entry, now)]
        if not fresh:
            return None
        return max(fresh, key=lambda entry: entry.created_at)

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if not self._is_fresh(entry, now)]
        for key in expired:
            del self._entries[key]
        logger.info(
            "[cache] swept %d expired entries, %d remaining", len(expired), len(self._entries)
        )
