"""In-process vector index for knowledge-base passages."""

from __future__ import annotations

from dataclasses import dataclass
from math import sqrt

from shop_assistant.types import KnowledgeDocument, ScoredDocument


@dataclass(slots=True)
class _StoredVector:
    document: KnowledgeDocument
    embedding: list[float]


class InMemoryVectorStore:
    """Deterministic cosine-similarity index used for tests and local runs.

    Satisfies the `VectorIndex` contract, so a hosted index can replace it
    without touching the knowledge-base agent.
    """

    def __init__(self) -> None:
        self._store: dict[str, _StoredVector] = {}

    def __len__(self) -> int:
        return len(self._store)

    def upsert(self, documents: list[KnowledgeDocument], embeddings: list[list[float]]) -> None:
        if len(documents) != len(embeddings):
            raise ValueError("documents and embeddings must have the same length")
        for document, embedding in zip(documents, embeddings, strict=True):
            self._store[document.doc_id] = _StoredVector(document=document, embedding=embedding)

    async def nearest_neighbors(self, vector: list[float], k: int) -> list[ScoredDocument]:
        ranked = sorted(
            (
                ScoredDocument(
                    document=record.document,
                    score=_cosine_similarity(vector, record.embedding),
                )
                for record in self._store.values()
            ),
            key=lambda item: item.score,
            reverse=True,
        )
        return [
            ScoredDocument(document=item.document, score=item.score, rank=i + 1)
            for i, item in enumerate(ranked[:k])
        ]


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
