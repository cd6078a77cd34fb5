"""
Scrape API Endpoints
POST /api/v1/scrape
POST /api/v1/scrape/batch

Fetch pages and return their structured content together with the flattened
text that /embeddings/store accepts. Nothing is embedded or stored here.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from siteassist.api.routes.dependencies import get_fetcher
from siteassist.core.config import get_settings
from siteassist.core.errors import ValidationError
from siteassist.ingestion.content import ContentDocument, ContentFetcher, FetchOptions
from siteassist.ingestion.web_fetcher import fetch_many

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()


class ScrapeRequest(BaseModel):
    url: str = Field(default="", description="Page to fetch")
    options: Optional[FetchOptions] = None


class BatchScrapeRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)
    options: Optional[FetchOptions] = None


def _check_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Invalid URL format: {url}")


def _scraped(document: ContentDocument) -> dict:
    return {
        **document.model_dump(),
        "text_for_embedding": document.text_for_embedding(),
        "scraped_at": datetime.now(timezone.utc).isoformat(),
    }


@router.post("", summary="Fetch one page")
async def scrape(payload: ScrapeRequest, fetcher: ContentFetcher = Depends(get_fetcher)):
    if not payload.url:
        raise ValidationError("URL is required")
    _check_url(payload.url)

    document = await fetcher.fetch(payload.url, payload.options)
    return {"success": True, "data": _scraped(document)}


@router.post("/batch", summary="Fetch several pages")
async def scrape_batch(payload: BatchScrapeRequest, fetcher: ContentFetcher = Depends(get_fetcher)):
    if not payload.urls:
        raise ValidationError("URLs array is required")
    if len(payload.urls) > settings.FETCH_BATCH_MAX_URLS:
        raise ValidationError(f"Maximum {settings.FETCH_BATCH_MAX_URLS} URLs allowed per batch")
    for url in payload.urls:
        _check_url(url)

    documents, failures = await fetch_many(fetcher, payload.urls, payload.options)

    return {
        "success": True,
        "data": {
            "results": [_scraped(document) for document in documents],
            "errors": failures,
            "summary": {
                "total": len(payload.urls),
                "successful": len(documents),
                "failed": len(failures),
            },
        },
    }
