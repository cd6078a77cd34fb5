"""
Retrieval Service
Key-gated similarity search across a project's namespaces
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from siteassist.core.config import get_settings
from siteassist.core.errors import ValidationError
from siteassist.core.logging import audit_logger
from siteassist.core.security import security_utils
from siteassist.embeddings.embedder import EmbeddingPipeline, get_embedding_pipeline
from siteassist.keys.registry import KeyRegistry
from siteassist.keys.schema import APIKey
from siteassist.services.schema import NamespaceQuery, RetrievalResult, RetrievedFragment
from siteassist.vectorstore.vector_store import VectorStore, get_vector_store

settings = get_settings()
logger = logging.getLogger(__name__)


def default_namespace_queries() -> List[NamespaceQuery]:
    """
    Main content plus interactive elements, each with its own depth and floor.
    """
    return [
        NamespaceQuery(
            content_type="mainContent",
            top_k=settings.RETRIEVAL_MAIN_TOP_K,
            score_threshold=settings.RETRIEVAL_MAIN_THRESHOLD,
        ),
        NamespaceQuery(
            content_type="interactive",
            top_k=settings.RETRIEVAL_INTERACTIVE_TOP_K,
            score_threshold=settings.RETRIEVAL_INTERACTIVE_THRESHOLD,
        ),
    ]


class RetrievalGateway:
    """
    Authorizes a key, then queries the namespaces of the key's project.

    Authentication failures are raised before anything is billed. Once the
    key is accepted the request is metered, whether or not the search
    succeeds.
    """

    def __init__(
        self,
        registry: KeyRegistry,
        vector_store: Optional[VectorStore] = None,
        pipeline: Optional[EmbeddingPipeline] = None
    ):
        self.registry = registry
        self.vector_store = vector_store or get_vector_store()
        self._pipeline = pipeline

    @property
    def pipeline(self) -> EmbeddingPipeline:
        if self._pipeline is None:
            self._pipeline = get_embedding_pipeline()
        return self._pipeline

    async def retrieve(
        self,
        token: str,
        query_vector: List[float],
        queries: Optional[List[NamespaceQuery]] = None,
        endpoint: str = "/retrieve",
        origin: Optional[str] = None,
        feature: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> RetrievalResult:
        """
        Ranked fragments for a query vector.

        Raises:
            AuthError subclasses: key rejected (not billed)
            ValidationError: key is not bound to a project
        """
        api_key = await self.registry.authorize(token, endpoint, origin, feature, metadata)
        return await self._search(api_key, query_vector, queries, endpoint)

    async def retrieve_text(
        self,
        token: str,
        query_text: str,
        queries: Optional[List[NamespaceQuery]] = None,
        endpoint: str = "/retrieve",
        origin: Optional[str] = None,
        feature: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> RetrievalResult:
        """
        Same as retrieve(), embedding the query text after the key is accepted.
        """
        api_key = await self.registry.authorize(token, endpoint, origin, feature, metadata)
        if not query_text or not query_text.strip():
            raise ValidationError("Query text is required")

        query_vector = await self.pipeline.embed(query_text)
        return await self._search(api_key, query_vector, queries, endpoint)

    async def _search(
        self,
        api_key: APIKey,
        query_vector: List[float],
        queries: Optional[List[NamespaceQuery]],
        endpoint: str
    ) -> RetrievalResult:
        if not api_key.project_id:
            raise ValidationError("API key is not bound to a project")

        start_time = datetime.now()
        queries = queries or default_namespace_queries()

        fragments: List[RetrievedFragment] = []
        namespaces: List[str] = []

        for query in queries:
            namespace = VectorStore.namespace(api_key.project_id, query.content_type)
            namespaces.append(namespace)

            matches = await self.vector_store.query(
                query_vector,
                top_k=query.top_k,
                namespace=namespace,
                filter=query.filter,
                score_threshold=query.score_threshold,
            )

            fragments.extend(
                RetrievedFragment(
                    id=match.id,
                    score=match.score,
                    namespace=namespace,
                    content_type=query.content_type,
                    text=match.text,
                    metadata=match.metadata,
                )
                for match in matches
            )

        fragments.sort(key=lambda f: f.score, reverse=True)

        processing_time_ms = (datetime.now() - start_time).total_seconds() * 1000

        audit_logger.log_retrieval(
            masked_key=security_utils.mask_api_key(api_key.key),
            project_id=api_key.project_id,
            endpoint=endpoint,
            namespaces=namespaces,
            result_count=len(fragments),
            processing_time_ms=processing_time_ms
        )

        return RetrievalResult(
            project_id=api_key.project_id,
            fragments=fragments,
            namespaces=namespaces,
            processing_time_ms=processing_time_ms,
        )


__all__ = ["RetrievalGateway", "default_namespace_queries"]
