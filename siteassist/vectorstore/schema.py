"""
Vector store schemas and data models
"""
from typing import List, Dict, Any, Optional
import json

from pydantic import BaseModel, Field


class VectorInput(BaseModel):
    """
    A vector as handed to the store by callers.
    Text, url, title and owning key are folded into the stored metadata.
    """
    id: str
    embedding: List[float]
    text: str = ""
    url: Optional[str] = None
    title: Optional[str] = None
    api_key: Optional[str] = Field(default=None, description="Owning project or key id")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StoredVector(BaseModel):
    """A vector in backend form: id, values and flat metadata"""
    id: str
    values: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class QueryMatch(BaseModel):
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return self.metadata.get("text", "")


class UpsertResult(BaseModel):
    upserted_count: int


class IndexStats(BaseModel):
    vector_count: int = 0
    dimension: int = 0
    index_fullness: float = 0.0
    namespaces: Dict[str, int] = Field(default_factory=dict, description="Vector count per namespace")


def sanitize_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """
    Coerce metadata to the value types a Pinecone index accepts:
    strings, numbers, booleans and lists of strings.
    None values are dropped; other structures become JSON strings.
    """
    clean: Dict[str, Any] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, bool, int, float)):
            clean[key] = value
        elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            clean[key] = list(value)
        else:
            clean[key] = json.dumps(value, default=str)
    return clean


__all__ = [
    "VectorInput",
    "StoredVector",
    "QueryMatch",
    "UpsertResult",
    "IndexStats",
    "sanitize_metadata",
]
