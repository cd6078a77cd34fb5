"""
Request Dependencies
API key extraction and service wiring for route handlers.

Routes receive their collaborators through these functions so tests can swap
them with app.dependency_overrides.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from siteassist.core.errors import MissingAPIKey
from siteassist.embeddings.embedder import EmbeddingPipeline, get_embedding_pipeline
from siteassist.ingestion.content import ContentFetcher
from siteassist.ingestion.web_fetcher import HtmlContentFetcher
from siteassist.keys.registry import KeyRegistry, get_key_registry
from siteassist.services.ingestion_service import IngestionOrchestrator
from siteassist.services.project_service import ProjectService
from siteassist.services.retrieval_service import RetrievalGateway
from siteassist.vectorstore.vector_store import VectorStore, get_vector_store

logger = logging.getLogger(__name__)

# Either header is accepted; the two schemes show up as Authorize options in Swagger
api_key_header = APIKeyHeader(name="x-api-key", scheme_name="APIKey", auto_error=False)
bearer = HTTPBearer(scheme_name="Bearer", auto_error=False)


async def require_api_key(
    request: Request,
    header_key: Optional[str] = Depends(api_key_header),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    """
    Read the presented API key from x-api-key or Authorization: Bearer.

    Raises:
        MissingAPIKey: neither header present
    """
    token = header_key or (credentials.credentials if credentials else None)

    if not token:
        raise MissingAPIKey()

    request.state.api_key = token
    return token


def get_origin(request: Request) -> Optional[str]:
    """Origin header used for allowed-domain checks"""
    return request.headers.get("origin")


def get_registry() -> KeyRegistry:
    return get_key_registry()


def get_store() -> VectorStore:
    return get_vector_store()


def get_pipeline() -> EmbeddingPipeline:
    return get_embedding_pipeline()


def get_fetcher() -> ContentFetcher:
    return HtmlContentFetcher()


def get_retrieval_gateway(
    registry: KeyRegistry = Depends(get_registry),
    vector_store: VectorStore = Depends(get_store),
    pipeline: EmbeddingPipeline = Depends(get_pipeline),
) -> RetrievalGateway:
    return RetrievalGateway(registry, vector_store, pipeline)


def get_orchestrator(
    vector_store: VectorStore = Depends(get_store),
    pipeline: EmbeddingPipeline = Depends(get_pipeline),
    fetcher: ContentFetcher = Depends(get_fetcher),
) -> IngestionOrchestrator:
    return IngestionOrchestrator(pipeline=pipeline, vector_store=vector_store, fetcher=fetcher)


def get_project_service(
    registry: KeyRegistry = Depends(get_registry),
    orchestrator: IngestionOrchestrator = Depends(get_orchestrator),
) -> ProjectService:
    return ProjectService(orchestrator, registry)
