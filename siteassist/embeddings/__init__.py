"""
Embeddings Module
Providers, throttling and the batch embedding pipeline
"""
from siteassist.embeddings.embedder import (
    EmbeddingPipeline,
    get_embedding_pipeline,
    chunk,
    normalize,
    prepare_text,
)
from siteassist.embeddings.throttle import TokenBucket

__all__ = [
    "EmbeddingPipeline",
    "get_embedding_pipeline",
    "chunk",
    "normalize",
    "prepare_text",
    "TokenBucket",
]
