"""
Vector Store
Namespaced upsert and query over Pinecone, with a one-way fallback to memory
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol
from datetime import datetime
from enum import Enum
import asyncio
import hashlib
import json
import logging

from siteassist.core.config import get_settings
from siteassist.core.errors import IndexUnavailable, ValidationError
from siteassist.core.logging import audit_logger, performance_logger
from siteassist.vectorstore.memory_store import InMemoryVectorStore
from siteassist.vectorstore.pinecone_client import connect_pinecone_backend
from siteassist.vectorstore.schema import (
    IndexStats,
    QueryMatch,
    StoredVector,
    UpsertResult,
    VectorInput,
    sanitize_metadata,
)

settings = get_settings()
logger = logging.getLogger(__name__)

# Smallest non-zero component; the durable index rejects all-zero vectors
PLACEHOLDER_EPSILON = 1e-8


class IndexState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DURABLE = "durable"
    FALLBACK = "fallback"


class IndexBackend(Protocol):
    backend_name: str

    async def upsert(self, vectors: List[StoredVector], namespace: Optional[str] = None) -> int:
        ...

    async def query(
        self,
        vector: List[float],
        top_k: int,
        namespace: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[QueryMatch]:
        ...

    async def delete(
        self,
        ids: Optional[List[str]] = None,
        filter: Optional[Dict[str, Any]] = None,
        namespace: Optional[str] = None
    ) -> int:
        ...

    async def stats(self) -> IndexStats:
        ...


BackendFactory = Callable[[], Awaitable[IndexBackend]]


class VectorStore:
    """
    Facade over a durable index that degrades to an in-memory store.

    State moves UNINITIALIZED -> DURABLE on a successful connection and
    UNINITIALIZED/DURABLE -> FALLBACK on any durable failure. FALLBACK is
    terminal for the life of the process. Transitions happen under a lock so
    concurrent failures create exactly one fallback store.
    """

    def __init__(
        self,
        backend_factory: Optional[BackendFactory] = None,
        dimension: Optional[int] = None,
        text_max_chars: Optional[int] = None
    ):
        self._backend_factory = backend_factory or connect_pinecone_backend
        self.dimension = dimension or settings.PINECONE_DIMENSION
        self.text_max_chars = text_max_chars or settings.VECTOR_TEXT_MAX_CHARS

        self._state = IndexState.UNINITIALIZED
        self._durable: Optional[IndexBackend] = None
        self._fallback: Optional[InMemoryVectorStore] = None
        self._lock = asyncio.Lock()
        self.fallback_activations = 0
        self.fallback_reason: Optional[str] = None

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def backend_name(self) -> str:
        if self._state is IndexState.DURABLE:
            return self._durable.backend_name
        if self._state is IndexState.FALLBACK:
            return self._fallback.backend_name
        return "none"

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def initialize(self) -> IndexState:
        """Connect to the durable backend once; any failure selects fallback"""
        if self._state is not IndexState.UNINITIALIZED:
            return self._state

        async with self._lock:
            if self._state is IndexState.UNINITIALIZED:
                try:
                    self._durable = await self._backend_factory()
                    self._state = IndexState.DURABLE
                    logger.info("Vector store using durable index")
                except Exception as e:
                    logger.warning(f"Durable index initialization failed: {type(e).__name__}: {e}")
                    self._enter_fallback_locked(f"initialization failed: {e}")

        return self._state

    def _enter_fallback_locked(self, reason: str) -> None:
        if self._state is IndexState.FALLBACK:
            return

        self._fallback = InMemoryVectorStore(dimension=self.dimension)
        self._state = IndexState.FALLBACK
        self.fallback_activations += 1
        self.fallback_reason = reason

        logger.warning(f"Vector store switched to in-memory fallback: {reason}")
        audit_logger.log_security_event(
            event_type="vector_store_fallback",
            severity="medium",
            details={"reason": reason}
        )

    async def _activate_fallback(self, reason: str) -> None:
        async with self._lock:
            self._enter_fallback_locked(reason)

    async def _call(self, operation: str, namespace: Optional[str], call: Callable[[IndexBackend], Awaitable[Any]]):
        await self.initialize()

        if self._state is IndexState.DURABLE:
            try:
                return await call(self._durable)
            except Exception as e:
                logger.warning(
                    f"Durable {operation} failed on namespace={namespace}: {type(e).__name__}: {e}"
                )
                await self._activate_fallback(f"{operation} failed: {e}")

        try:
            return await call(self._fallback)
        except Exception as e:
            logger.error(f"Fallback {operation} failed: {type(e).__name__}: {e}")
            raise IndexUnavailable(f"Vector {operation} failed: {e}") from e

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _to_stored(self, vector: VectorInput) -> StoredVector:
        metadata = dict(vector.metadata)
        metadata.update({
            "text": (vector.text or "")[:self.text_max_chars],
            "url": vector.url,
            "title": vector.title,
            "apiKey": vector.api_key,
        })
        return StoredVector(id=vector.id, values=vector.embedding, metadata=sanitize_metadata(metadata))

    async def upsert(self, vectors: List[VectorInput], namespace: str) -> UpsertResult:
        """
        Write vectors to one namespace.

        A durable write failure switches to fallback and the same write is
        retried there; the caller only sees an error when no store works.
        """
        if not namespace:
            raise ValidationError("Namespace is required for upsert")
        if not vectors:
            return UpsertResult(upserted_count=0)

        for vector in vectors:
            if len(vector.embedding) != self.dimension:
                raise ValidationError(
                    f"Vector {vector.id} has dimension {len(vector.embedding)}, expected {self.dimension}"
                )

        stored = [self._to_stored(v) for v in vectors]

        start_time = datetime.now()
        count = await self._call("upsert", namespace, lambda b: b.upsert(stored, namespace))
        duration_ms = (datetime.now() - start_time).total_seconds() * 1000

        logger.info(
            f"Upserted {count} vectors to namespace={namespace} "
            f"via {self.backend_name} in {duration_ms:.2f}ms"
        )
        performance_logger.log_vector_operation(
            operation="upsert",
            namespace=namespace,
            backend=self.backend_name,
            duration_ms=duration_ms,
            count=count
        )

        return UpsertResult(upserted_count=count)

    async def query(
        self,
        embedding: List[float],
        top_k: int = 5,
        namespace: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None,
        score_threshold: Optional[float] = None
    ) -> List[QueryMatch]:
        """
        Nearest neighbours within a namespace, best first.
        Matches scoring below score_threshold are dropped in either mode.
        """
        if top_k <= 0:
            raise ValidationError("top_k must be positive")

        start_time = datetime.now()
        matches = await self._call(
            "query", namespace,
            lambda b: b.query(embedding, top_k, namespace=namespace, filter=filter)
        )
        duration_ms = (datetime.now() - start_time).total_seconds() * 1000

        if score_threshold is not None:
            matches = [m for m in matches if m.score >= score_threshold]
        matches.sort(key=lambda m: m.score, reverse=True)

        logger.info(
            f"Query returned {len(matches)} matches from namespace={namespace} "
            f"(top_k={top_k}, filters={bool(filter)}) in {duration_ms:.2f}ms"
        )
        performance_logger.log_vector_operation(
            operation="query",
            namespace=namespace or "",
            backend=self.backend_name,
            duration_ms=duration_ms,
            count=len(matches),
            top_k=top_k
        )

        return matches

    async def delete_by_ids(self, ids: List[str], namespace: Optional[str] = None) -> int:
        if not ids:
            return 0
        deleted = await self._call(
            "delete", namespace,
            lambda b: b.delete(ids=list(ids), namespace=namespace)
        )
        logger.info(f"Deleted {len(ids)} vectors from namespace={namespace}")
        return deleted

    async def delete_by_filter(self, filter: Dict[str, Any], namespace: Optional[str] = None) -> int:
        """
        Returns the number of deleted vectors, or -1 when the backend does
        not report it.
        """
        if not filter:
            raise ValidationError("A non-empty filter is required")
        deleted = await self._call(
            "delete", namespace,
            lambda b: b.delete(filter=filter, namespace=namespace)
        )
        logger.info(f"Deleted vectors matching filter={filter} from namespace={namespace}")
        return deleted

    async def stats(self) -> IndexStats:
        return await self._call("stats", None, lambda b: b.stats())

    async def store_project_metadata(self, project_id: str, metadata: Dict[str, Any], title: Optional[str] = None) -> UpsertResult:
        """
        Persist a project's summary record in its reserved metadata namespace.
        The vector is a non-semantic placeholder.
        """
        placeholder = [0.0] * self.dimension
        placeholder[0] = PLACEHOLDER_EPSILON

        record = VectorInput(
            id=self.metadata_record_id(project_id),
            embedding=placeholder,
            text=json.dumps(metadata, default=str)[:settings.ORIGINAL_CONTENT_MAX_CHARS],
            url=metadata.get("url"),
            title=title,
            api_key=project_id,
            metadata={
                **metadata,
                "projectId": project_id,
                "contentType": "metadata",
                "isMetadata": True,
            },
        )
        return await self.upsert([record], self.metadata_namespace(project_id))

    # ------------------------------------------------------------------
    # Ids and namespaces
    # ------------------------------------------------------------------

    @staticmethod
    def generate_id(source_url: str, chunk_index: int) -> str:
        """Stable id for a chunk of a source; re-ingestion overwrites"""
        url_hash = hashlib.sha256(source_url.encode("utf-8")).hexdigest()[:20]
        return f"{url_hash}_{chunk_index}"

    @staticmethod
    def record_id(project_id: str, content_type: str, index: int) -> str:
        return f"{project_id}_{content_type}_{index}"

    @staticmethod
    def metadata_record_id(project_id: str) -> str:
        return f"{project_id}_metadata"

    @staticmethod
    def namespace(project_id: str, content_type: str) -> str:
        return settings.get_namespace(project_id, content_type)

    @staticmethod
    def metadata_namespace(project_id: str) -> str:
        return f"{project_id}_metadata"


# Singleton instance
_vector_store: Optional[VectorStore] = None


def get_vector_store() -> VectorStore:
    """Get or create VectorStore singleton"""
    global _vector_store

    if _vector_store is None:
        _vector_store = VectorStore()

    return _vector_store


__all__ = ["VectorStore", "IndexState", "IndexBackend", "get_vector_store"]
