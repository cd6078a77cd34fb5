"""
Project API Endpoints
POST /api/v1/projects

Registers a website: its content is fetched, structured, embedded and
stored, then a project-bound API key is minted and returned once.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from siteassist.api.routes.dependencies import get_project_service
from siteassist.ingestion.content import FetchOptions
from siteassist.services.project_service import ProjectService

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateProjectRequest(BaseModel):
    url: str = Field(default="", description="Website to ingest")
    name: str = Field(default="", description="Project display name")
    user_id: str = Field(default="anonymous", description="Owner of the minted key")
    options: Optional[FetchOptions] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": "https://docs.example.com",
                "name": "Example Docs",
                "user_id": "user-1",
                "options": {"max_pages": 10, "include_images": False}
            }
        }
    )


@router.post("", summary="Create a project from a website")
async def create_project(
    payload: CreateProjectRequest,
    service: ProjectService = Depends(get_project_service),
):
    project = await service.create_project(
        payload.url,
        payload.name,
        payload.user_id,
        payload.options,
    )
    logger.info(f"Project {project.id} ready with {project.embedding_count} embeddings")
    return {"success": True, "data": project}
