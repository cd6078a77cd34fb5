"""
Retrieval API Endpoints
POST /api/v1/retrieve/{feature}

Returns ranked fragments of the key's project for the explain, chat and
analyze features. Answer generation happens downstream of this service.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from siteassist.api.routes.dependencies import get_origin, get_retrieval_gateway, require_api_key
from siteassist.core.errors import ValidationError
from siteassist.services.retrieval_service import RetrievalGateway
from siteassist.services.schema import NamespaceQuery

logger = logging.getLogger(__name__)

router = APIRouter()

RETRIEVAL_FEATURES = ("explain", "chat", "analyze")


class RetrievalRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=8000)
    queries: Optional[List[NamespaceQuery]] = Field(
        default=None,
        description="Namespaces to search; defaults to main content and interactive elements"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "query": "How much does the pro plan cost?",
                "queries": [
                    {"content_type": "mainContent", "top_k": 5, "score_threshold": 0.6},
                    {"content_type": "interactive", "top_k": 3, "score_threshold": 0.5}
                ]
            }
        }
    )


@router.post("/{feature}", summary="Retrieve grounding fragments")
async def retrieve(
    feature: str,
    payload: RetrievalRequest,
    request: Request,
    token: str = Depends(require_api_key),
    origin: Optional[str] = Depends(get_origin),
    gateway: RetrievalGateway = Depends(get_retrieval_gateway),
):
    if feature not in RETRIEVAL_FEATURES:
        raise ValidationError(
            f"Unknown feature '{feature}'",
            details={"supported": list(RETRIEVAL_FEATURES)},
        )

    result = await gateway.retrieve_text(
        token,
        payload.query,
        queries=payload.queries,
        endpoint=f"/{feature}",
        origin=origin,
        feature=feature,
        metadata={
            "user_agent": request.headers.get("user-agent", ""),
            "query_length": len(payload.query),
        },
    )

    return {
        "success": True,
        "data": {
            "feature": feature,
            "project_id": result.project_id,
            "fragments": result.fragments,
            "namespaces": result.namespaces,
            "processing_time_ms": result.processing_time_ms,
        },
    }
