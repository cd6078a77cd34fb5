import pytest

from siteassist.embeddings.embedder import EmbeddingPipeline
from siteassist.embeddings.throttle import TokenBucket
from siteassist.keys.registry import KeyRegistry
from siteassist.keys.store import InMemoryKeyStore
from siteassist.vectorstore.vector_store import VectorStore

from helpers import DIMENSION, FakeClock, FakeEmbeddingProvider, FakeMonotonic, failing_factory


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return KeyRegistry(InMemoryKeyStore(), clock=clock, usage_log_limit=1000)


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def pipeline(provider):
    monotonic = FakeMonotonic()
    throttle = TokenBucket(rate=5, capacity=1, clock=monotonic, sleep=monotonic.sleep)
    return EmbeddingPipeline(provider=provider, throttle=throttle, min_chars=10)


@pytest.fixture
def fallback_store():
    """A store whose durable backend is unavailable from the start."""
    return VectorStore(backend_factory=failing_factory(), dimension=DIMENSION)
