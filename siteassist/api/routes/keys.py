"""
API Key Endpoints
Issue, list, inspect, update and revoke API keys

Mutations require the owner's user_id; a mismatch is reported as not found.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from siteassist.api.routes.dependencies import get_registry
from siteassist.core.errors import NotAuthorized
from siteassist.core.security import security_utils
from siteassist.keys.registry import KeyRegistry
from siteassist.keys.schema import KeyPatch

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateKeyRequest(BaseModel):
    user_id: str = Field(default="", description="Owner of the key")
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    project_url: Optional[str] = None
    description: str = ""
    features: Optional[List[str]] = None
    rate_limit: Optional[int] = Field(default=None, gt=0)
    allowed_domains: Optional[List[str]] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "user-1",
                "project_name": "Widget",
                "features": ["explain", "chat"],
                "rate_limit": 100,
                "allowed_domains": ["example.com"]
            }
        }
    )


@router.post("", summary="Issue an API key")
async def create_key(
    payload: CreateKeyRequest,
    registry: KeyRegistry = Depends(get_registry),
):
    api_key = await registry.issue(
        payload.user_id,
        project_id=payload.project_id,
        features=payload.features,
        rate_limit=payload.rate_limit,
        allowed_domains=payload.allowed_domains,
        project_name=payload.project_name,
        project_url=payload.project_url,
        description=payload.description,
    )
    # The full token is only ever returned here
    return {"success": True, "data": {"api_key": api_key}}


@router.get("", summary="List an owner's keys")
async def list_keys(
    user_id: str = Query(..., min_length=1),
    registry: KeyRegistry = Depends(get_registry),
):
    keys = await registry.list_by_owner(user_id)
    return {"success": True, "data": {"keys": keys, "total": len(keys)}}


@router.get("/stats", summary="Aggregate key statistics")
async def key_stats(registry: KeyRegistry = Depends(get_registry)):
    stats = await registry.stats_global()
    return {"success": True, "data": stats}


@router.get("/project/{project_id}", summary="Live key of a project")
async def get_project_key(
    project_id: str,
    user_id: str = Query(..., min_length=1),
    registry: KeyRegistry = Depends(get_registry),
):
    details = await registry.get_by_project(project_id, user_id)
    if details is None:
        raise NotAuthorized("No API key found for this project")
    details.api_key.key = security_utils.mask_api_key(details.api_key.key)
    return {"success": True, "data": details}


@router.get("/{token}", summary="Key details with recent usage")
async def get_key(
    token: str,
    user_id: str = Query(..., min_length=1),
    registry: KeyRegistry = Depends(get_registry),
):
    details = await registry.get_details(token, user_id)
    details.api_key.key = security_utils.mask_api_key(details.api_key.key)
    return {"success": True, "data": details}


@router.put("/{token}", summary="Update a key")
async def update_key(
    token: str,
    patch: KeyPatch,
    user_id: str = Query(..., min_length=1),
    registry: KeyRegistry = Depends(get_registry),
):
    api_key = await registry.update(token, user_id, patch)
    api_key.key = security_utils.mask_api_key(api_key.key)
    return {"success": True, "data": {"api_key": api_key}}


@router.delete("/{token}", summary="Revoke a key")
async def revoke_key(
    token: str,
    user_id: str = Query(..., min_length=1),
    registry: KeyRegistry = Depends(get_registry),
):
    await registry.revoke(token, user_id)
    return {"success": True, "message": "API key deleted successfully"}
