"""
Embedding Pipeline
Text chunking, normalization and throttled batch embedding
"""
from typing import List, Optional
from datetime import datetime
import logging
import re

from siteassist.core.config import get_settings
from siteassist.core.errors import ProviderError, TextTooShort, ValidationError
from siteassist.core.logging import performance_logger
from siteassist.embeddings.providers import EmbeddingProvider, create_embedding_provider
from siteassist.embeddings.schema import BatchResult, EmbeddedText, EmbeddingFailure
from siteassist.embeddings.throttle import TokenBucket, per_second
from siteassist.ingestion.content import ContentUnit

settings = get_settings()
logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
# Anything but word characters, whitespace and basic punctuation
_DISALLOWED = re.compile(r"[^\w\s.,!?-]")

UNIT_LABELS = {
    "heading": "Section Header",
    "paragraph": "Content",
    "list": "List Information",
    "link": "Navigation Link",
}
FALLBACK_LABEL = "Website Element"


def chunk(
    text: str,
    max_words: int = 1000,
    overlap_words: int = 100,
    min_chars: int = 50
) -> List[str]:
    """
    Split text into overlapping word windows.

    The window advances by max_words - overlap_words and stops once it
    reaches the last word. Chunks whose trimmed length does not exceed
    min_chars are dropped.

    Raises:
        ValidationError: the window would not advance
    """
    step = max_words - overlap_words
    if max_words <= 0 or step <= 0:
        raise ValidationError(
            "max_words must be positive and greater than overlap_words",
            details={"max_words": max_words, "overlap_words": overlap_words},
        )

    words = text.split()
    chunks = []

    for start in range(0, len(words), step):
        piece = " ".join(words[start:start + max_words]).strip()
        if len(piece) > min_chars:
            chunks.append(piece)
        if start + max_words >= len(words):
            break

    return chunks


def normalize(text: Optional[str], max_chars: Optional[int] = None) -> str:
    """Collapse whitespace, strip special characters and cap the length"""
    if not text:
        return ""
    text = _WHITESPACE.sub(" ", text)
    text = _DISALLOWED.sub("", text)
    return text.strip()[:max_chars or settings.EMBEDDING_MAX_CHARS]


def prepare_text(unit: ContentUnit) -> str:
    """
    Label a content unit with its role, then normalize it.
    """
    label = UNIT_LABELS.get(unit.type, FALLBACK_LABEL)
    return normalize(f"{label}: {unit.content}")


class EmbeddingPipeline:
    """
    Drives an embedding provider for single texts and for throttled batches.
    Per-item failures in a batch are collected, never raised.
    """

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        throttle: Optional[TokenBucket] = None,
        min_chars: Optional[int] = None
    ):
        self.provider = provider or create_embedding_provider()
        self.throttle = throttle if throttle is not None else per_second(
            settings.EMBEDDING_CALLS_PER_SECOND, settings.EMBEDDING_BURST
        )
        self.min_chars = min_chars if min_chars is not None else settings.EMBEDDING_MIN_CHARS

    @property
    def model(self) -> str:
        return getattr(self.provider, "model", "unknown")

    @property
    def dimension(self) -> int:
        return getattr(self.provider, "dimension", settings.PINECONE_DIMENSION)

    def chunk(self, text: str, max_words: Optional[int] = None, overlap_words: Optional[int] = None) -> List[str]:
        return chunk(
            text,
            max_words=max_words or settings.CHUNK_MAX_WORDS,
            overlap_words=settings.CHUNK_OVERLAP_WORDS if overlap_words is None else overlap_words,
            min_chars=settings.CHUNK_MIN_CHARS,
        )

    def is_embeddable(self, text: str) -> bool:
        return len(normalize(text)) >= self.min_chars

    async def embed(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            TextTooShort: normalized text below the minimum length
            ProviderError: the provider call failed
        """
        clean = normalize(text)
        if len(clean) < self.min_chars:
            raise TextTooShort(details={"length": len(clean), "minimum": self.min_chars})

        if self.throttle is not None:
            await self.throttle.acquire()

        try:
            return await self.provider.embed(clean)
        except Exception as e:
            logger.error(f"Failed to generate embedding: {type(e).__name__}: {e}")
            raise ProviderError(f"Failed to generate embedding: {e}") from e

    async def embed_batch(self, texts: List[str]) -> BatchResult:
        """
        Embed texts in input order.

        Too-short texts are reported in `skipped` and never reach the
        provider. Provider failures land in `errors` with the item's index.
        """
        result = BatchResult()
        if not texts:
            return result

        start_time = datetime.now()

        for index, text in enumerate(texts):
            try:
                embedding = await self.embed(text)
            except TextTooShort:
                result.skipped.append(index)
                continue
            except ProviderError as e:
                result.errors.append(EmbeddingFailure(
                    index=index,
                    text=(text or "")[:100],
                    error=e.message,
                ))
                continue

            result.embeddings.append(EmbeddedText(index=index, text=text, embedding=embedding))

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000

        performance_logger.log_embedding_generation(
            text_length=sum(len(t or "") for t in texts),
            batch_size=len(texts),
            failed=len(result.errors),
            duration_ms=duration_ms,
            model=self.model
        )

        logger.info(
            f"Embedded batch of {len(texts)}: {len(result.embeddings)} ok, "
            f"{len(result.errors)} failed, {len(result.skipped)} skipped in {duration_ms:.2f}ms"
        )

        return result


# Singleton instance
_embedding_pipeline: Optional[EmbeddingPipeline] = None


def get_embedding_pipeline() -> EmbeddingPipeline:
    """Get or create EmbeddingPipeline singleton"""
    global _embedding_pipeline

    if _embedding_pipeline is None:
        _embedding_pipeline = EmbeddingPipeline()

    return _embedding_pipeline


__all__ = [
    "EmbeddingPipeline",
    "get_embedding_pipeline",
    "chunk",
    "normalize",
    "prepare_text",
]
