"""
Test doubles shared across the suite.
No network, no sleeping.
"""
import asyncio
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from siteassist.core.errors import IngestionError
from siteassist.ingestion.content import ContentDocument, FetchOptions
from siteassist.keys.store import InMemoryKeyStore
from siteassist.vectorstore.memory_store import InMemoryVectorStore

DIMENSION = 8


def run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Monotonic clock plus a sleep that advances it instead of waiting."""

    def __init__(self):
        self.value = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.value

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.value += seconds


def text_vector(text: str, dimension: int = DIMENSION) -> List[float]:
    """Deterministic non-zero vector derived from the text."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(digest[i] + 1) / 256.0 for i in range(dimension)]


class FakeEmbeddingProvider:
    """
    Returns deterministic vectors. Texts containing any of `fail_on` raise.
    """

    model = "fake-embedding"

    def __init__(self, dimension: int = DIMENSION, fail_on: Optional[List[str]] = None, fail_all: bool = False):
        self.dimension = dimension
        self.fail_on = fail_on or []
        self.fail_all = fail_all
        self.calls: List[str] = []
        self.fixed: Dict[str, List[float]] = {}

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_all or any(marker in text for marker in self.fail_on):
            raise RuntimeError("provider unavailable")
        for marker, vector in self.fixed.items():
            if marker in text:
                return list(vector)
        return text_vector(text, self.dimension)


class YieldingKeyStore(InMemoryKeyStore):
    """Suspends on every call, the way a database-backed store does."""

    async def get(self, token):
        await asyncio.sleep(0)
        return await super().get(token)

    async def put(self, api_key):
        await asyncio.sleep(0)
        await super().put(api_key)

    async def find_live_by_project(self, project_id):
        await asyncio.sleep(0)
        return await super().find_live_by_project(project_id)


class FakeDurableBackend(InMemoryVectorStore):
    """
    Stands in for the Pinecone backend. Operations named in `fail_on` raise.
    """

    backend_name = "fake-durable"

    def __init__(self, dimension: int = DIMENSION, fail_on: Optional[List[str]] = None):
        super().__init__(dimension=dimension)
        self.fail_on = set(fail_on or [])
        self.calls: List[str] = []

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise ConnectionError(f"durable {operation} failed")

    async def upsert(self, vectors, namespace=None):
        await asyncio.sleep(0)
        self._maybe_fail("upsert")
        return await super().upsert(vectors, namespace)

    async def query(self, vector, top_k, namespace=None, filter=None):
        self._maybe_fail("query")
        return await super().query(vector, top_k, namespace=namespace, filter=filter)

    async def delete(self, ids=None, filter=None, namespace=None):
        self._maybe_fail("delete")
        return await super().delete(ids=ids, filter=filter, namespace=namespace)

    async def stats(self):
        self._maybe_fail("stats")
        return await super().stats()


def backend_factory(backend: Any):
    async def factory():
        return backend
    return factory


def failing_factory(message: str = "PINECONE_API_KEY is not configured"):
    calls = []

    async def factory():
        calls.append(message)
        raise RuntimeError(message)

    factory.calls = calls
    return factory


class FakeFetcher:
    """Returns a fixed document, or raises the given error."""

    def __init__(self, document: Optional[ContentDocument] = None, error: Optional[Exception] = None):
        self.document = document
        self.error = error
        self.requests: List[str] = []

    async def fetch(self, url: str, options: Optional[FetchOptions] = None) -> ContentDocument:
        self.requests.append(url)
        if self.error is not None:
            raise self.error
        if self.document is not None:
            return self.document.model_copy(update={"url": url})
        return ContentDocument(url=url)


def sample_document(url: str = "https://docs.example.com/pricing") -> ContentDocument:
    return ContentDocument.model_validate({
        "url": url,
        "title": "Example Pricing",
        "description": "Plans and prices",
        "headings": [
            {"level": 1, "text": "Pricing plans for every team", "id": "pricing"},
            {"level": 3, "text": "Frequently asked questions", "id": "faq"},
        ],
        "paragraphs": [
            "The starter plan costs ten dollars per month and includes five seats.",
            "Enterprise customers get single sign-on and a dedicated support engineer.",
        ],
        "lists": [{"type": "ul", "items": ["Starter plan", "Team plan", "Enterprise plan"]}],
        "links": [
            {"url": "https://docs.example.com/contact", "text": "Contact our sales team", "is_internal": True},
            {"url": "https://docs.example.com/x", "text": "Go", "is_internal": True},
        ],
        "images": [{"src": "https://docs.example.com/logo.png", "alt": "logo"}],
        "metadata": {"author": "Docs Team", "published_time": ""},
    })


class FailingForFetcher(FakeFetcher):
    """Fails with an HTTP 404 for URLs containing `failing`."""

    def __init__(self, document: ContentDocument, failing: str):
        super().__init__(document)
        self.failing = failing

    async def fetch(self, url: str, options: Optional[FetchOptions] = None) -> ContentDocument:
        if self.failing in url:
            self.requests.append(url)
            raise IngestionError(f"Failed to fetch {url}: HTTP 404", details={"url": url, "status": 404})
        return await super().fetch(url, options)
