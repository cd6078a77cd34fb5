"""
Service schemas and data models
Projects, ingestion statistics and retrieval results
"""
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field

from siteassist.embeddings.schema import EmbeddingFailure, UnitFailure


class Project(BaseModel):
    """
    A registered web source. Its id prefixes every vector namespace it owns.
    """
    id: str
    name: str
    url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ContentCounts(BaseModel):
    headings: int = 0
    paragraphs: int = 0
    lists: int = 0
    links: int = 0
    images: int = 0


class EmbeddingCounts(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0


class SourceMetadata(BaseModel):
    title: str = ""
    description: str = ""
    author: str = ""
    has_structured_data: bool = False


class IngestionStats(BaseModel):
    content: ContentCounts = Field(default_factory=ContentCounts)
    embeddings: EmbeddingCounts = Field(default_factory=EmbeddingCounts)
    metadata: SourceMetadata = Field(default_factory=SourceMetadata)


class IngestionResult(BaseModel):
    project_id: str
    stats: IngestionStats
    content_types: List[str]
    embedding_count: int
    errors: List[UnitFailure] = Field(default_factory=list)
    embeddings_by_type: Dict[str, int] = Field(default_factory=dict)


class TextIngestionResult(BaseModel):
    """Outcome of chunking, embedding and storing one block of text"""
    namespace: str
    vectors_stored: int
    chunks_processed: int
    errors: List[EmbeddingFailure] = Field(default_factory=list)
    vector_ids: List[str] = Field(default_factory=list)


class ProjectCreated(BaseModel):
    """Returned once a project's content is ingested and its key minted"""
    id: str
    name: str
    url: str
    api_key: str
    created_at: datetime
    status: str = "ready"
    stats: IngestionStats
    content_types: List[str]
    embedding_count: int


class NamespaceQuery(BaseModel):
    """
    One namespace to search, with its own depth and score floor.
    """
    content_type: str
    top_k: int = Field(default=5, gt=0)
    score_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    filter: Optional[Dict[str, Any]] = None


class RetrievedFragment(BaseModel):
    id: str
    score: float
    namespace: str
    content_type: str
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RetrievalResult(BaseModel):
    project_id: str
    fragments: List[RetrievedFragment]
    namespaces: List[str]
    processing_time_ms: float


__all__ = [
    "Project",
    "ContentCounts",
    "EmbeddingCounts",
    "SourceMetadata",
    "IngestionStats",
    "IngestionResult",
    "TextIngestionResult",
    "ProjectCreated",
    "NamespaceQuery",
    "RetrievedFragment",
    "RetrievalResult",
]
