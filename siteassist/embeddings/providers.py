"""
Embedding Providers
Gemini and OpenAI text embedding backends behind one async interface
"""
from typing import List, Optional, Protocol
import asyncio
import logging

import google.generativeai as genai
from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from siteassist.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Converts text into a fixed-dimension vector"""

    model: str
    dimension: int

    async def embed(self, text: str) -> List[float]:
        ...


def _check_dimension(embedding: List[float], expected: int) -> List[float]:
    if len(embedding) != expected:
        logger.error(f"Unexpected embedding dimension: {len(embedding)}")
        raise ValueError(f"Expected {expected} dimensions, got {len(embedding)}")
    return embedding


class GeminiEmbeddingProvider:
    """
    Google Generative AI embeddings.
    The SDK call is synchronous, so it runs in a worker thread.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None
    ):
        genai.configure(api_key=api_key or settings.GEMINI_API_KEY)
        self.model = model or settings.GEMINI_EMBEDDING_MODEL
        self.dimension = dimension or settings.PINECONE_DIMENSION

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True
    )
    async def embed(self, text: str) -> List[float]:
        result = await asyncio.to_thread(
            genai.embed_content,
            model=self.model,
            content=text,
            task_type="retrieval_document",
            output_dimensionality=self.dimension,
        )
        return _check_dimension(list(result["embedding"]), self.dimension)


class OpenAIEmbeddingProvider:
    """OpenAI embeddings via the async client"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None
    ):
        self.client = AsyncOpenAI(api_key=api_key or settings.OPENAI_API_KEY)
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self.dimension = dimension or settings.PINECONE_DIMENSION

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True
    )
    async def embed(self, text: str) -> List[float]:
        response = await self.client.embeddings.create(
            model=self.model,
            input=text,
            dimensions=self.dimension,
            encoding_format="float"
        )
        return _check_dimension(response.data[0].embedding, self.dimension)


def create_embedding_provider(name: Optional[str] = None) -> EmbeddingProvider:
    """
    Build the provider selected by EMBEDDING_PROVIDER.
    """
    name = name or settings.EMBEDDING_PROVIDER

    if name == "gemini":
        return GeminiEmbeddingProvider()
    if name == "openai":
        return OpenAIEmbeddingProvider()

    raise ValueError(f"Unknown embedding provider: {name}")


__all__ = [
    "EmbeddingProvider",
    "GeminiEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
]
