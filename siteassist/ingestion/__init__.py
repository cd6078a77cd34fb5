"""
Ingestion Module
Page fetching and content structuring
"""
from siteassist.ingestion.content import (
    ContentDocument,
    ContentUnit,
    FetchOptions,
    StructuredContent,
)
from siteassist.ingestion.structurer import ContentStructurer
from siteassist.ingestion.web_fetcher import HtmlContentFetcher

__all__ = [
    "ContentDocument",
    "ContentUnit",
    "FetchOptions",
    "StructuredContent",
    "ContentStructurer",
    "HtmlContentFetcher",
]
