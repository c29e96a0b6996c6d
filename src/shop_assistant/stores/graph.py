"""Neo4j adapter for the graph-query agent."""

from __future__ import annotations

import logging
from typing import Any

from shop_assistant.stores.base import Row

logger = logging.getLogger(__name__)


class Neo4jGraphStore:
    """Runs Cypher through the async Neo4j driver.

    Each record's first value is returned as a property dict when it is a
    node; other records are returned as their key/value mapping.
    """

    def __init__(self, uri: str, user: str, password: str) -> None:
        try:
            from neo4j import AsyncGraphDatabase
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "Neo4j driver is not available. Install the 'graph' extra."
            ) from exc

        self._driver = AsyncGraphDatabase.driver(uri, auth=(user, password))

    async def run(self, query: str) -> list[Row]:
        async with self._driver.session() as session:
            result = await session.run(query)
            records = [record async for record in result]

        rows: list[Row] = []
        for record in records:
            first: Any = record[0] if len(record) else None
            properties = getattr(first, "_properties", None)
            if properties is not None:
                rows.append(dict(properties))
            elif isinstance(first, dict):
                rows.append(dict(first))
            else:
                rows.append(dict(record.items()))
        logger.info("[neo4j] query returned %d rows", len(rows))
        return rows

    async def close(self) -> None:
        await self._driver.close()
