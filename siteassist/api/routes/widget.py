"""
Widget API Endpoints
POST /api/v1/widget/status

Lets an embedded widget read its key's configuration, remaining hourly
quota and whether the page it runs on is an allowed domain.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from siteassist.api.routes.dependencies import get_origin, get_registry, require_api_key
from siteassist.core.security import security_utils
from siteassist.keys.registry import KeyRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


class WidgetStatusRequest(BaseModel):
    url: Optional[str] = Field(default=None, description="Page the widget is embedded in")


@router.post("/status", summary="Widget configuration and quota")
async def widget_status(
    payload: WidgetStatusRequest,
    request: Request,
    token: str = Depends(require_api_key),
    origin: Optional[str] = Depends(get_origin),
    registry: KeyRegistry = Depends(get_registry),
):
    api_key = await registry.authorize(
        token,
        "/widget/status",
        origin,
        feature="explain",
        metadata={"user_agent": request.headers.get("user-agent", "")},
    )

    allowed_domains = api_key.metadata.allowed_domains
    domain_allowed = True
    if payload.url and allowed_domains:
        domain_allowed = security_utils.domain_allowed(payload.url, allowed_domains)

    usage = api_key.usage
    return {
        "success": True,
        "data": {
            "config": {
                "project_id": api_key.project_id,
                "project_name": api_key.project_name,
                "project_url": api_key.project_url,
                "features": api_key.features,
                "language": "en",
                "status": "active",
                "usage": {
                    "total_requests": usage.total_requests,
                    "explanation_requests": usage.explanation_requests,
                    "chat_requests": usage.chat_requests,
                    "rate_limit": api_key.rate_limit,
                    "requests_this_hour": usage.requests_this_hour,
                },
                "allowed_domains": allowed_domains,
            },
            "domain_allowed": domain_allowed,
            "rate_limit_status": {
                "remaining": max(0, api_key.rate_limit - usage.requests_this_hour),
                "reset_time": (usage.last_hour_reset + timedelta(hours=1)).isoformat(),
            },
        },
    }
