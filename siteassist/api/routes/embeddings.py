"""
Embeddings API Endpoints
Index statistics, key-authenticated free-text search and free-text storage
"""
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from siteassist.api.routes.dependencies import (
    get_orchestrator,
    get_origin,
    get_registry,
    get_retrieval_gateway,
    get_store,
    require_api_key,
)
from siteassist.core.config import get_settings
from siteassist.core.errors import ValidationError
from siteassist.ingestion.content import ContentDocument
from siteassist.keys.registry import KeyRegistry
from siteassist.services.ingestion_service import IngestionOrchestrator
from siteassist.services.retrieval_service import RetrievalGateway
from siteassist.services.schema import NamespaceQuery
from siteassist.vectorstore.filters import VectorStoreFilters
from siteassist.vectorstore.vector_store import VectorStore

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


class EmbeddingQueryRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=8000)
    content_type: str = Field(default="mainContent", description="Namespace suffix to search")
    top_k: int = Field(default=5, gt=0, le=100)
    score_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    unit_types: Optional[List[str]] = Field(
        default=None,
        description="Restrict to heading, paragraph, list or link units"
    )
    source_url: Optional[str] = Field(default=None, description="Restrict to vectors from one source")
    filter: Optional[Dict[str, Any]] = None


class EmbeddingStoreRequest(BaseModel):
    content: Union[str, ContentDocument] = Field(
        ...,
        description="Plain text, or a fetched page document as returned by /scrape"
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "Plans start at ten dollars per month and include five seats ...",
                "metadata": {"source": "pricing-faq"}
            }
        }
    )


@router.get("/stats", summary="Vector index statistics")
async def embedding_stats(vector_store: VectorStore = Depends(get_store)):
    stats = await vector_store.stats()
    return {
        "success": True,
        "data": {
            "index_name": settings.PINECONE_INDEX_NAME,
            "state": vector_store.state.value,
            "total_vectors": stats.vector_count,
            "dimension": stats.dimension,
            "index_fullness": stats.index_fullness,
            "namespaces": stats.namespaces,
        },
    }


@router.post("/query", summary="Search one namespace of the key's project")
async def embedding_query(
    payload: EmbeddingQueryRequest,
    request: Request,
    token: str = Depends(require_api_key),
    origin: Optional[str] = Depends(get_origin),
    gateway: RetrievalGateway = Depends(get_retrieval_gateway),
):
    metadata_filter = VectorStoreFilters.combine_filters(
        payload.filter,
        VectorStoreFilters.build_unit_type_filter(payload.unit_types) if payload.unit_types else None,
        VectorStoreFilters.build_url_filter(payload.source_url) if payload.source_url else None,
    )

    result = await gateway.retrieve_text(
        token,
        payload.query,
        queries=[
            NamespaceQuery(
                content_type=payload.content_type,
                top_k=payload.top_k,
                score_threshold=payload.score_threshold,
                filter=metadata_filter,
            )
        ],
        endpoint="/embeddings/query",
        origin=origin,
        metadata={"user_agent": request.headers.get("user-agent", "")},
    )
    return {
        "success": True,
        "data": {
            "query": payload.query,
            "results": result.fragments,
            "total_results": len(result.fragments),
            "project_id": result.project_id,
        },
    }


@router.post("/store", summary="Chunk, embed and store text in the key's data namespace")
async def embedding_store(
    payload: EmbeddingStoreRequest,
    request: Request,
    token: str = Depends(require_api_key),
    origin: Optional[str] = Depends(get_origin),
    registry: KeyRegistry = Depends(get_registry),
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
):
    api_key = await registry.authorize(
        token,
        "/embeddings/store",
        origin,
        metadata={"user_agent": request.headers.get("user-agent", "")},
    )
    if not api_key.project_id:
        raise ValidationError("API key is not bound to a project")

    if isinstance(payload.content, ContentDocument):
        document = payload.content
        text = document.text_for_embedding()
        source_url, title = document.url, document.title
        content_metadata = {
            "description": document.description,
            "headingsCount": len(document.headings),
            "paragraphsCount": len(document.paragraphs),
        }
    else:
        text = payload.content
        source_url, title = None, None
        content_metadata = {}

    if not text.strip():
        raise ValidationError("Content is required")

    namespace = api_key.metadata.data_namespace or VectorStore.namespace(api_key.project_id, "data")
    result = await orchestrator.ingest_text(
        text,
        namespace,
        api_key.project_id,
        source_url=source_url,
        title=title,
        metadata={**content_metadata, **payload.metadata},
    )

    return {
        "success": True,
        "data": {
            "vectors_stored": result.vectors_stored,
            "chunks_processed": result.chunks_processed,
            "errors": len(result.errors),
            "namespace": result.namespace,
            "vector_ids": result.vector_ids,
        },
    }
