"""
Project Service
Registers a web source: ingest its content, then mint its API key
"""
from typing import Optional
import logging
import secrets
import string
import time

from siteassist.core.errors import ValidationError
from siteassist.ingestion.content import FetchOptions
from siteassist.keys.registry import DEFAULT_PROJECT_FEATURES, KeyRegistry
from siteassist.services.ingestion_service import IngestionOrchestrator
from siteassist.services.schema import Project, ProjectCreated

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_project_id() -> str:
    """project_{epoch millis}_{9 base36 chars}"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"project_{int(time.time() * 1000)}_{suffix}"


class ProjectService:
    """
    Creates projects. The key is only issued after ingestion succeeds.
    """

    def __init__(self, orchestrator: IngestionOrchestrator, registry: KeyRegistry):
        self.orchestrator = orchestrator
        self.registry = registry

    async def create_project(
        self,
        url: str,
        name: str,
        owner_id: str,
        options: Optional[FetchOptions] = None
    ) -> ProjectCreated:
        """
        Raises:
            ValidationError: missing url or name
            IngestionError: fetching or embedding failed
        """
        if not url or not name:
            raise ValidationError("URL and project name are required")

        project = Project(id=generate_project_id(), name=name, url=url)
        logger.info(f"Starting processing for project: {name} ({project.id})")

        result = await self.orchestrator.ingest_url(project, options)

        api_key = await self.registry.issue(
            owner_id,
            project_id=project.id,
            features=list(DEFAULT_PROJECT_FEATURES),
            project_name=name,
            project_url=url,
        )

        return ProjectCreated(
            id=project.id,
            name=project.name,
            url=project.url,
            api_key=api_key.key,
            created_at=project.created_at,
            status="ready",
            stats=result.stats,
            content_types=result.content_types,
            embedding_count=result.embedding_count,
        )


__all__ = ["ProjectService", "generate_project_id"]
