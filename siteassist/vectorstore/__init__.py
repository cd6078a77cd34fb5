"""
Vector Store Module
Durable Pinecone index with an in-memory fallback
"""
from siteassist.vectorstore.filters import VectorStoreFilters, matches_filter
from siteassist.vectorstore.memory_store import InMemoryVectorStore
from siteassist.vectorstore.schema import IndexStats, QueryMatch, VectorInput
from siteassist.vectorstore.vector_store import IndexState, VectorStore, get_vector_store

__all__ = [
    "VectorStoreFilters",
    "matches_filter",
    "InMemoryVectorStore",
    "IndexStats",
    "QueryMatch",
    "VectorInput",
    "IndexState",
    "VectorStore",
    "get_vector_store",
]
