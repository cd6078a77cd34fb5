"""Services package"""
from siteassist.services.ingestion_service import IngestionOrchestrator, get_ingestion_orchestrator
from siteassist.services.retrieval_service import RetrievalGateway
from siteassist.services.project_service import ProjectService

__all__ = [
    "IngestionOrchestrator",
    "get_ingestion_orchestrator",
    "RetrievalGateway",
    "ProjectService",
]
