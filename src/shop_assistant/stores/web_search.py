"""Tavily web search adapter."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class TavilySearchProvider:
    """Calls the Tavily search API and normalizes its response.

    Returns ``{"answer": str | None, "results": [{"title", "url", "content"}]}``.
    HTTP and transport errors propagate to the calling agent.
    """

    _TAVILY_URL = "https://api.tavily.com/search"

    def __init__(
        self,
        api_key: str,
        *,
        max_results: int = 5,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.max_results = max_results
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def search(self, text: str) -> dict[str, Any]:
        payload = {
            "api_key": self.api_key,
            "query": text,
            "search_depth": "basic",
            "include_answer": True,
            "max_results": self.max_results,
        }
        logger.info("[tavily] searching query=%r", text)
        if self._client is not None:
            response = await self._client.post(self._TAVILY_URL, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self._TAVILY_URL, json=payload)
        response.raise_for_status()
        data = response.json()
        return _normalize(data if isinstance(data, dict) else {})


def _normalize(data: dict[str, Any]) -> dict[str, Any]:
    results = []
    for item in data.get("results") or []:
        if not isinstance(item, dict):
            continue
        results.append(
            {
                "title": str(item.get("title") or ""),
                "url": str(item.get("url") or ""),
                "content": str(item.get("content") or ""),
            }
        )
    answer = data.get("answer")
    return {"answer": answer if isinstance(answer, str) and answer else None, "results": results}
