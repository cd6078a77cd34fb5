"""
Embedding schemas and data models
"""
from typing import List, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field


class EmbeddedText(BaseModel):
    """One successful item of a batch"""
    index: int = Field(description="Position in the input batch")
    text: str
    embedding: List[float]


class EmbeddingFailure(BaseModel):
    """One failed item of a batch. The batch itself still succeeds."""
    index: int
    text: str = Field(description="Source text, truncated to 100 characters")
    error: str


class BatchResult(BaseModel):
    embeddings: List[EmbeddedText] = Field(default_factory=list)
    errors: List[EmbeddingFailure] = Field(default_factory=list)
    skipped: List[int] = Field(
        default_factory=list,
        description="Indexes whose normalized text was below the embedding floor"
    )


class EmbeddingRecord(BaseModel):
    """
    An embedded content unit, ready to be handed to the vector store.
    """
    id: str = Field(description="Stable id: {project_id}_{content_type}_{index}")
    project_id: str
    content_type: str
    original_content: str
    embedding_text: str
    embedding: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "project_1718000000000_k3j9x0a1b_mainContent_0",
                "project_id": "project_1718000000000_k3j9x0a1b",
                "content_type": "mainContent",
                "original_content": "Pricing",
                "embedding_text": "Section Header Pricing",
                "embedding": [0.1, 0.2, 0.3],
                "metadata": {"level": 1, "type": "heading"}
            }
        }
    )


class UnitFailure(BaseModel):
    """A content unit that could not be embedded during ingestion"""
    content_type: str
    index: int
    content: str
    error: str


__all__ = [
    "EmbeddedText",
    "EmbeddingFailure",
    "BatchResult",
    "EmbeddingRecord",
    "UnitFailure",
]
