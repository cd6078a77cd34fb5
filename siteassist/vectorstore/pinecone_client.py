"""
Pinecone Client Initialization
Index creation with a bounded readiness wait, and an async adapter over the index
"""
from typing import Any, Callable, Dict, List, Optional
import asyncio
import logging

from pinecone import Pinecone, ServerlessSpec
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from siteassist.core.config import get_settings
from siteassist.core.errors import IndexUnavailable
from siteassist.vectorstore.schema import IndexStats, QueryMatch, StoredVector

settings = get_settings()
logger = logging.getLogger(__name__)


class PineconeClient:
    """
    Connects to Pinecone and makes sure the configured index exists and is ready.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        index_name: Optional[str] = None,
        dimension: Optional[int] = None,
        metric: Optional[str] = None,
        ready_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        client: Optional[Any] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        self.index_name = index_name or settings.PINECONE_INDEX_NAME
        self.dimension = dimension or settings.PINECONE_DIMENSION
        self.metric = metric or settings.PINECONE_METRIC
        self.ready_timeout = ready_timeout if ready_timeout is not None else settings.PINECONE_READY_TIMEOUT_SECONDS
        self.poll_interval = poll_interval if poll_interval is not None else settings.PINECONE_READY_POLL_SECONDS
        self._sleep = sleep
        self._index = None

        if client is not None:
            self._pinecone = client
        else:
            api_key = api_key or settings.PINECONE_API_KEY
            if not api_key:
                raise IndexUnavailable("PINECONE_API_KEY is not configured")
            # SECURITY: never log the API key
            logger.info("Initializing Pinecone client...")
            self._pinecone = Pinecone(api_key=api_key)

    def _ensure_index_exists(self) -> None:
        existing = [idx.name for idx in self._pinecone.list_indexes()]

        if self.index_name in existing:
            logger.info(f"Index '{self.index_name}' already exists")
            return

        logger.info(f"Creating Pinecone index: {self.index_name}")
        self._pinecone.create_index(
            name=self.index_name,
            dimension=self.dimension,
            metric=self.metric,
            spec=ServerlessSpec(
                cloud=settings.PINECONE_CLOUD,
                region=settings.PINECONE_REGION
            )
        )

    def _is_ready(self) -> bool:
        description = self._pinecone.describe_index(self.index_name)
        return bool(description.status["ready"])

    def wait_until_ready(self) -> None:
        """
        Poll the index status until ready.

        Raises:
            IndexUnavailable: not ready within the configured wait
        """
        attempts = max(1, int(self.ready_timeout / self.poll_interval)) if self.poll_interval > 0 else 1
        retry_kwargs = {
            "stop": stop_after_attempt(attempts + 1),
            "wait": wait_fixed(self.poll_interval),
            "retry": retry_if_result(lambda ready: not ready),
        }
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep

        try:
            for attempt in Retrying(**retry_kwargs):
                with attempt:
                    ready = self._is_ready()
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(ready)
        except RetryError as e:
            raise IndexUnavailable(
                f"Index '{self.index_name}' not ready after {self.ready_timeout:.0f}s"
            ) from e

        logger.info(f"Index '{self.index_name}' is ready")

    def get_index(self):
        """
        Create the index if needed, wait for it and return the index handle.
        """
        if self._index is None:
            self._ensure_index_exists()
            self.wait_until_ready()
            self._index = self._pinecone.Index(self.index_name)

            stats = self._index.describe_index_stats()
            logger.info(f"Index stats: {stats.total_vector_count} vectors")

        return self._index


class PineconeIndexBackend:
    """
    Async adapter over a Pinecone index handle.
    The SDK is synchronous; every call runs in a worker thread.
    """

    backend_name = "pinecone"

    def __init__(self, index: Any, batch_size: Optional[int] = None):
        self.index = index
        self.batch_size = batch_size or settings.PINECONE_UPSERT_BATCH_SIZE

    async def upsert(self, vectors: List[StoredVector], namespace: Optional[str] = None) -> int:
        formatted = [
            {"id": v.id, "values": v.values, "metadata": v.metadata}
            for v in vectors
        ]

        for i in range(0, len(formatted), self.batch_size):
            batch = formatted[i:i + self.batch_size]
            await asyncio.to_thread(
                self.index.upsert,
                vectors=batch,
                namespace=namespace or ""
            )

        return len(formatted)

    async def query(
        self,
        vector: List[float],
        top_k: int,
        namespace: Optional[str] = None,
        filter: Optional[Dict[str, Any]] = None
    ) -> List[QueryMatch]:
        results = await asyncio.to_thread(
            self.index.query,
            vector=vector,
            namespace=namespace or "",
            top_k=top_k,
            filter=filter,
            include_metadata=True
        )

        return [
            QueryMatch(id=match.id, score=match.score, metadata=dict(match.metadata or {}))
            for match in results.matches
        ]

    async def delete(
        self,
        ids: Optional[List[str]] = None,
        filter: Optional[Dict[str, Any]] = None,
        namespace: Optional[str] = None
    ) -> int:
        if ids is not None:
            await asyncio.to_thread(self.index.delete, ids=ids, namespace=namespace or "")
            return len(ids)

        await asyncio.to_thread(self.index.delete, filter=filter, namespace=namespace or "")
        # Pinecone does not report how many records a filtered delete removed
        return -1

    async def stats(self) -> IndexStats:
        stats = await asyncio.to_thread(self.index.describe_index_stats)

        return IndexStats(
            vector_count=stats.total_vector_count,
            dimension=stats.dimension,
            index_fullness=stats.index_fullness or 0.0,
            namespaces={
                name: ns.vector_count
                for name, ns in (stats.namespaces or {}).items()
            },
        )


async def connect_pinecone_backend() -> PineconeIndexBackend:
    """
    Connect using settings. Raises when credentials are missing or the index
    never becomes ready.
    """
    client = PineconeClient()
    index = await asyncio.to_thread(client.get_index)
    return PineconeIndexBackend(index)


__all__ = ["PineconeClient", "PineconeIndexBackend", "connect_pinecone_backend"]
