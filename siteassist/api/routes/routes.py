"""
Routes Aggregator
Central module that combines all API routes into a single router.

Key-authenticated endpoints read the key through the require_api_key
dependency at the endpoint level, because project creation, key management
and index statistics are not key-gated.
"""
import logging

from fastapi import APIRouter

from siteassist.core.config import get_settings

# Import routers directly from files to avoid circular imports
from siteassist.api.routes.projects import router as projects_router
from siteassist.api.routes.keys import router as keys_router
from siteassist.api.routes.embeddings import router as embeddings_router
from siteassist.api.routes.retrieval import router as retrieval_router
from siteassist.api.routes.scrape import router as scrape_router
from siteassist.api.routes.widget import router as widget_router

settings = get_settings()
logger = logging.getLogger(__name__)


# Create a combined API router for all v1 routes
api_router = APIRouter()

api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(keys_router, prefix="/keys", tags=["API Keys"])
api_router.include_router(embeddings_router, prefix="/embeddings", tags=["Embeddings"])
api_router.include_router(retrieval_router, prefix="/retrieve", tags=["Retrieval"])
api_router.include_router(scrape_router, prefix="/scrape", tags=["Scraping"])
api_router.include_router(widget_router, prefix="/widget", tags=["Widget"])


def register_all_routes(app) -> None:
    """
    Register all routes to the FastAPI application under API_V1_PREFIX.

    Args:
        app: FastAPI application instance
    """
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
