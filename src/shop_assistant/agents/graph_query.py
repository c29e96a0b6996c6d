"""Graph agent: text-to-Cypher over the product recommendation graph."""

from __future__ import annotations

import logging
import re

from shop_assistant.agents.base import RetrievalAgent, contains_any
from shop_assistant.agents.formatting import MISSING, format_vnd, or_missing
from shop_assistant.errors import InferenceError
from shop_assistant.gateway import InferenceClient, ModelTier
from shop_assistant.stores.base import GraphStore, Row
from shop_assistant.types import AgentName, AgentResult, Query

logger = logging.getLogger(__name__)

GRAPH_KEYWORDS = (
    "gợi ý",
    "đề xuất",
    "tương tự",
    "phù hợp",
    "khoảng",
    "dưới",
    "trên",
    "triệu",
    "gaming",
    "văn phòng",
    "recommend",
)

CYPHER_SYSTEM_PROMPT = """You are a Cypher query generator for a Neo4j laptop store graph.

Schema:
(:Customer)-[:ADDED_TO_CART]->(:Product)
(:Customer)-[:PLACED]->(:Order)
(:Order)-[:CONTAINS]->(:Product)
(:Product)-[:RECOMMENDS]->(:Product)
(:Product)-[:HAS_SPEC]->(:LaptopSpec)
(:Product)-[:BELONGS_TO]->(:Category)

Node properties:
- Product: id, name, brand, price
- LaptopSpec: processor_name, ram, ssd, hdd, display_inches
- Category: name

Price guidelines (prices are in VND):
- "khoảng 15 triệu" means p.price >= 13000000 AND p.price <= 17000000 (2 triệu either side)
- "dưới 10 triệu" means p.price < 10000000
- "trên 20 triệu" means p.price > 20000000

Example 1
Question: laptop gaming dưới 20 triệu
Cypher:
MATCH (p:Product)-[:BELONGS_TO]->(c:Category), (p)-[:HAS_SPEC]->(s:LaptopSpec)
WHERE toLower(c.name) CONTAINS 'gaming' AND p.price < 20000000
RETURN p.id AS id, p.name AS name, p.brand AS brand, p.price AS price,
       s.processor_name AS processor_name, s.ram AS ram, s.ssd AS ssd,
       s.hdd AS hdd, s.display_inches AS display_inches
LIMIT 5

Example 2
Question: laptop HP văn phòng khoảng 15 triệu
Cypher:
MATCH (p:Product)-[:BELONGS_TO]->(c:Category), (p)-[:HAS_SPEC]->(s:LaptopSpec)
WHERE toLower(p.brand) = 'hp' AND toLower(c.name) CONTAINS 'văn phòng'
  AND p.price >= 13000000 AND p.price <= 17000000
RETURN p.id AS id, p.name AS name, p.brand AS brand, p.price AS price,
       s.processor_name AS processor_name, s.ram AS ram, s.ssd AS ssd,
       s.hdd AS hdd, s.display_inches AS display_inches
LIMIT 5

Rules:
- Return only the Cypher query, no explanation and no code fences.
- Only read data; never use CREATE, MERGE, SET or DELETE.
- Always LIMIT results to 5.
"""

GENERATION_FAILED = "Không thể sinh truy vấn Cypher từ câu hỏi."
NO_ROWS = "Không tìm thấy kết quả phù hợp."
GRAPH_UNAVAILABLE = "Không thể truy vấn cơ sở dữ liệu Neo4j."

_CODE_FENCE = re.compile(r"^```(?:cypher)?\s*|\s*```$", re.IGNORECASE)
_WRITE_CLAUSE = re.compile(r"\b(create|merge|set|delete|detach|remove|drop)\b", re.IGNORECASE)


def clean_cypher(raw: str) -> str:
    return _CODE_FENCE.sub("", raw.strip()).strip()


class GraphQueryAgent(RetrievalAgent):
    name = AgentName.GRAPH_QUERY
    failure_message = GRAPH_UNAVAILABLE

    def __init__(
        self,
        inference: InferenceClient,
        graph_store: GraphStore | None,
        *,
        max_tokens: int = 500,
    ) -> None:
        self.inference = inference
        self.graph_store = graph_store
        self.max_tokens = max_tokens

    def is_relevant(self, query: Query) -> bool:
        return contains_any(query.text, GRAPH_KEYWORDS)

    async def get_context(self, query: Query) -> AgentResult:
        if self.graph_store is None:
            return self.result(GRAPH_UNAVAILABLE)

        try:
            raw = await self.inference.complete(
                CYPHER_SYSTEM_PROMPT,
                query.text,
                tier=ModelTier.PRIMARY,
                max_tokens=self.max_tokens,
                temperature=0.0,
            )
        except InferenceError as exc:
            logger.warning("[graph] cypher generation failed: %s", exc)
            return self.result(GENERATION_FAILED)

        cypher = clean_cypher(raw)
        if not cypher or _WRITE_CLAUSE.search(cypher):
            logger.warning("[graph] rejected generated query: %r", cypher[:200])
            return self.result(GENERATION_FAILED)

        rows = await self.graph_store.run(cypher)
        logger.info("[graph] rows=%d", len(rows))
        if not rows:
            return self.result(NO_ROWS)
        return self.result("\n\n".join(format_graph_row(row) for row in rows))


def format_graph_row(row: Row) -> str:
    display = row.get("display_inches")
    screen = f"{display} inch" if display not in (None, "") else MISSING
    return "\n".join(
        [
            f"• {or_missing(row.get('name'))}",
            f"  • Thương hiệu: {or_missing(row.get('brand'))}",
            f"  • CPU: {or_missing(row.get('processor_name'))}",
            f"  • RAM: {or_missing(row.get('ram'))}",
            f"  • SSD: {or_missing(row.get('ssd'))}",
            f"  • HDD: {or_missing(row.get('hdd'))}",
            f"  • Màn hình: {screen}",
            f"  • Giá: {format_vnd(row.get('price'))}",
            f"  • ID: {or_missing(row.get('id'))}",
        ]
    )
