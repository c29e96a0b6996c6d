from .cache import CacheHit, SemanticResultCache, character_similarity, normalize_query
from .vector_store import InMemoryVectorStore

__all__ = [
    "CacheHit",
    "InMemoryVectorStore",
    "SemanticResultCache",
    "character_similarity",
    "normalize_query",
]
