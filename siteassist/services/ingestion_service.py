"""
Ingestion Service
Structures fetched content, embeds it and stores it in per-project namespaces
"""
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging

from siteassist.core.config import get_settings
from siteassist.core.errors import IngestionError, ProviderError, TextTooShort, ValidationError
from siteassist.core.logging import performance_logger
from siteassist.embeddings.embedder import EmbeddingPipeline, get_embedding_pipeline, prepare_text
from siteassist.embeddings.schema import EmbeddingRecord, UnitFailure
from siteassist.ingestion.content import ContentDocument, ContentFetcher, FetchOptions
from siteassist.ingestion.structurer import ContentStructurer
from siteassist.ingestion.web_fetcher import HtmlContentFetcher
from siteassist.services.schema import (
    ContentCounts,
    EmbeddingCounts,
    IngestionResult,
    IngestionStats,
    Project,
    SourceMetadata,
    TextIngestionResult,
)
from siteassist.vectorstore.schema import VectorInput
from siteassist.vectorstore.vector_store import VectorStore, get_vector_store

settings = get_settings()
logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """
    Runs one project's content through structuring, embedding and storage.

    Per-unit failures are collected and reported in the stats. The run only
    fails when the fetch fails or every unit that reached the embedder failed.
    """

    def __init__(
        self,
        pipeline: Optional[EmbeddingPipeline] = None,
        vector_store: Optional[VectorStore] = None,
        fetcher: Optional[ContentFetcher] = None,
        structurer: Optional[ContentStructurer] = None,
        min_text_chars: Optional[int] = None
    ):
        self.pipeline = pipeline or get_embedding_pipeline()
        self.vector_store = vector_store or get_vector_store()
        self.fetcher = fetcher or HtmlContentFetcher()
        self.structurer = structurer or ContentStructurer()
        self.min_text_chars = min_text_chars if min_text_chars is not None else settings.INGEST_MIN_TEXT_CHARS

    async def ingest_url(self, project: Project, options: Optional[FetchOptions] = None) -> IngestionResult:
        """
        Fetch the project's URL, then ingest it.

        Raises:
            IngestionError: the fetch failed, or no unit could be embedded
        """
        try:
            document = await self.fetcher.fetch(project.url, options)
        except IngestionError:
            raise
        except Exception as e:
            logger.error(f"Fetch failed for project {project.id}: {type(e).__name__}: {e}")
            raise IngestionError(details=str(e)) from e

        logger.info(
            f"Fetched {len(document.paragraphs)} paragraphs, "
            f"{len(document.headings)} headings for project {project.id}"
        )
        return await self.ingest(document, project)

    async def ingest(self, document: ContentDocument, project: Project) -> IngestionResult:
        start_time = datetime.now()

        structured = self.structurer.structure(document)
        buckets = structured.buckets()

        records, errors = await self._embed_units(buckets, project.id)

        attempted = len(records) + len(errors)
        if attempted and not records:
            logger.error(f"All {attempted} units failed to embed for project {project.id}")
            raise IngestionError(
                details={
                    "reason": "no embeddings produced",
                    "failed": len(errors),
                    "first_error": errors[0].error,
                }
            )

        by_type = await self._store_records(records, document, project)

        stats = self._build_stats(document, len(records), len(errors))

        await self.vector_store.store_project_metadata(
            project.id,
            {
                "projectId": project.id,
                "name": project.name,
                "url": project.url,
                "processedAt": datetime.now(timezone.utc).isoformat(),
                "contentStats": stats.model_dump(),
                "embeddingStats": {
                    "total": len(records),
                    "byType": by_type,
                    "errors": len(errors),
                },
                "title": document.title,
                "description": document.description,
            },
            title=project.name,
        )

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        performance_logger.log_ingestion(
            project_id=project.id,
            embedding_count=len(records),
            error_count=len(errors),
            duration_ms=duration_ms
        )
        logger.info(
            f"Ingested project {project.id}: {len(records)} embeddings, "
            f"{len(errors)} errors in {duration_ms:.2f}ms"
        )

        return IngestionResult(
            project_id=project.id,
            stats=stats,
            content_types=list(buckets.keys()),
            embedding_count=len(records),
            errors=errors,
            embeddings_by_type=by_type,
        )

    async def ingest_text(
        self,
        text: str,
        namespace: str,
        project_id: str,
        source_url: Optional[str] = None,
        title: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> TextIngestionResult:
        """
        Chunk free text, embed the chunks as one batch and store them.

        Chunk ids derive from the source URL and chunk position, so storing
        the same source again overwrites its earlier chunks.

        Raises:
            ValidationError: no chunk is long enough to keep
            IngestionError: every chunk failed to embed
        """
        chunks = self.pipeline.chunk(
            text,
            max_words=settings.STORE_CHUNK_MAX_WORDS,
            overlap_words=settings.STORE_CHUNK_OVERLAP_WORDS,
        )
        if not chunks:
            raise ValidationError("No valid text chunks found")

        batch = await self.pipeline.embed_batch(chunks)
        if not batch.embeddings:
            raise IngestionError(
                "Failed to generate any embeddings",
                details=[error.model_dump() for error in batch.errors],
            )

        vectors = [
            VectorInput(
                id=VectorStore.generate_id(source_url or "content", item.index),
                embedding=item.embedding,
                text=item.text,
                url=source_url,
                title=title,
                api_key=project_id,
                metadata={
                    **(metadata or {}),
                    "projectId": project_id,
                    "contentType": "data",
                    "chunkIndex": item.index,
                    "totalChunks": len(chunks),
                },
            )
            for item in batch.embeddings
        ]
        await self.vector_store.upsert(vectors, namespace)

        logger.info(
            f"Stored {len(vectors)} of {len(chunks)} chunks in namespace={namespace} "
            f"({len(batch.errors)} failed)"
        )

        return TextIngestionResult(
            namespace=namespace,
            vectors_stored=len(vectors),
            chunks_processed=len(chunks),
            errors=batch.errors,
            vector_ids=[v.id for v in vectors],
        )

    async def _embed_units(self, buckets, project_id: str):
        records: List[EmbeddingRecord] = []
        errors: List[UnitFailure] = []

        for content_type, units in buckets.items():
            logger.debug(f"Processing {len(units)} {content_type} units")

            for index, unit in enumerate(units):
                text = prepare_text(unit)
                if len(text) < self.min_text_chars:
                    continue

                try:
                    embedding = await self.pipeline.embed(text)
                except TextTooShort:
                    continue
                except ProviderError as e:
                    errors.append(UnitFailure(
                        content_type=content_type,
                        index=index,
                        content=unit.content[:100],
                        error=e.message,
                    ))
                    continue

                records.append(EmbeddingRecord(
                    id=VectorStore.record_id(project_id, content_type, index),
                    project_id=project_id,
                    content_type=content_type,
                    original_content=unit.content,
                    embedding_text=text,
                    embedding=embedding,
                    metadata={
                        **unit.metadata,
                        "type": unit.type,
                        "processedAt": datetime.now(timezone.utc).isoformat(),
                    },
                ))

        return records, errors

    async def _store_records(
        self,
        records: List[EmbeddingRecord],
        document: ContentDocument,
        project: Project
    ) -> Dict[str, int]:
        grouped: Dict[str, List[EmbeddingRecord]] = {}
        for record in records:
            grouped.setdefault(record.content_type, []).append(record)

        by_type: Dict[str, int] = {}
        for content_type, group in grouped.items():
            vectors = [
                VectorInput(
                    id=record.id,
                    embedding=record.embedding,
                    text=record.embedding_text or record.original_content,
                    url=project.url,
                    title=project.name,
                    api_key=project.id,
                    metadata={
                        **record.metadata,
                        "projectId": project.id,
                        "contentType": content_type,
                        "originalContent": record.original_content[:settings.ORIGINAL_CONTENT_MAX_CHARS],
                        "sourceTitle": document.title,
                    },
                )
                for record in group
            ]
            result = await self.vector_store.upsert(
                vectors, VectorStore.namespace(project.id, content_type)
            )
            by_type[content_type] = result.upserted_count

        return by_type

    @staticmethod
    def _build_stats(document: ContentDocument, successful: int, failed: int) -> IngestionStats:
        return IngestionStats(
            content=ContentCounts(
                headings=len(document.headings),
                paragraphs=len(document.paragraphs),
                lists=len(document.lists),
                links=len(document.links),
                images=len(document.images),
            ),
            embeddings=EmbeddingCounts(
                total=successful,
                successful=successful,
                failed=failed,
            ),
            metadata=SourceMetadata(
                title=document.title,
                description=document.description,
                author=document.metadata.author,
                has_structured_data=bool(document.metadata.published_time or document.metadata.author),
            ),
        )


# Singleton instance
_ingestion_orchestrator: Optional[IngestionOrchestrator] = None


def get_ingestion_orchestrator() -> IngestionOrchestrator:
    """Get or create IngestionOrchestrator singleton"""
    global _ingestion_orchestrator

    if _ingestion_orchestrator is None:
        _ingestion_orchestrator = IngestionOrchestrator()

    return _ingestion_orchestrator


__all__ = ["IngestionOrchestrator", "get_ingestion_orchestrator"]
