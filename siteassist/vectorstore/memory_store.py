"""
In-Memory Vector Store
Process-local index with the same surface as the Pinecone backend
"""
from typing import Dict, Any, List, Optional
import logging
import math

from siteassist.vectorstore.filters import matches_filter
from siteassist.vectorstore.schema import IndexStats, QueryMatch, StoredVector

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = ""


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """Cosine similarity, 0.0 when either vector has zero norm"""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorStore:
    """
    Linear-scan vector index partitioned by namespace.
    Not persistent; contents live as long as the process.
    """

    backend_name = "memory"

    def __init__(self, dimension: int = 0):
        self.dimension = dimension
        self._namespaces: Dict[str, Dict[str, StoredVector]] = {}

    async def upsert(self, vectors: List[StoredVector], namespace: Optional[str] = None) -> int:
        bucket = self._namespaces.setdefault(namespace or DEFAULT_NAMESPACE, {})
        for vector in vectors:
            bucket[vector.id] = vector.model_copy(deep=True)
            if not self.dimension:
                self.dimension = len(vector.values)
        return len(vectors)

    async def query(
        self,
        vector: List[float],
        top_k: int,
        namespace: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[QueryMatch]:
        bucket = self._namespaces.get(namespace or DEFAULT_NAMESPACE, {})

        matches = [
            QueryMatch(
                id=stored.id,
                score=cosine_similarity(vector, stored.values),
                metadata=dict(stored.metadata),
            )
            for stored in bucket.values()
            if matches_filter(stored.metadata, filter)
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:max(top_k, 0)]

    async def delete(
        self,
        ids: Optional[List[str]] = None,
        filter: Optional[Dict[str, Any]] = None,
        namespace: Optional[str] = None
    ) -> int:
        bucket = self._namespaces.get(namespace or DEFAULT_NAMESPACE, {})

        if ids is not None:
            doomed = [vid for vid in ids if vid in bucket]
        else:
            doomed = [vid for vid, stored in bucket.items() if matches_filter(stored.metadata, filter)]

        for vid in doomed:
            del bucket[vid]

        return len(doomed)

    async def stats(self) -> IndexStats:
        namespaces = {
            name: len(bucket)
            for name, bucket in self._namespaces.items()
            if bucket
        }
        return IndexStats(
            vector_count=sum(namespaces.values()),
            dimension=self.dimension,
            index_fullness=0.0,
            namespaces=namespaces,
        )


__all__ = ["InMemoryVectorStore", "cosine_similarity"]
