"""
Tests for the Pinecone client and its async index adapter, against fake SDK objects.
"""
from types import SimpleNamespace

import pytest

from siteassist.core.errors import IndexUnavailable
from siteassist.vectorstore.pinecone_client import PineconeClient, PineconeIndexBackend
from siteassist.vectorstore.schema import StoredVector

from helpers import run


class FakeIndex:
    def __init__(self):
        self.upserts = []
        self.deletes = []
        self.queries = []

    def upsert(self, vectors, namespace):
        self.upserts.append((namespace, [v["id"] for v in vectors]))

    def query(self, **kwargs):
        self.queries.append(kwargs)
        return SimpleNamespace(matches=[
            SimpleNamespace(id="a", score=0.9, metadata={"text": "Pricing"}),
            SimpleNamespace(id="b", score=0.4, metadata=None),
        ])

    def delete(self, **kwargs):
        self.deletes.append(kwargs)

    def describe_index_stats(self):
        return SimpleNamespace(
            total_vector_count=5,
            dimension=8,
            index_fullness=None,
            namespaces={"project_1_mainContent": SimpleNamespace(vector_count=5)},
        )


class FakePinecone:
    """Stands in for pinecone.Pinecone; becomes ready after `ready_after` polls."""

    def __init__(self, existing=("other-index",), ready_after=0):
        self.existing = list(existing)
        self.ready_after = ready_after
        self.polls = 0
        self.created = []
        self.index = FakeIndex()

    def list_indexes(self):
        return [SimpleNamespace(name=name) for name in self.existing]

    def create_index(self, name, dimension, metric, spec):
        self.created.append((name, dimension, metric))
        self.existing.append(name)

    def describe_index(self, name):
        self.polls += 1
        return SimpleNamespace(status={"ready": self.polls > self.ready_after})

    def Index(self, name):
        return self.index


def _client(fake, sleeps, ready_timeout=10.0):
    return PineconeClient(
        index_name="siteassist",
        dimension=8,
        metric="cosine",
        ready_timeout=ready_timeout,
        poll_interval=2.0,
        client=fake,
        sleep=sleeps.append,
    )


class TestPineconeClient:
    """Test index creation and the readiness wait."""

    def test_creates_missing_index_and_waits(self):
        fake = FakePinecone(ready_after=2)
        sleeps = []

        index = _client(fake, sleeps).get_index()

        assert index is fake.index
        assert fake.created == [("siteassist", 8, "cosine")]
        assert fake.polls == 3
        assert sleeps == [2.0, 2.0]

    def test_existing_index_not_recreated(self):
        fake = FakePinecone(existing=("siteassist",))

        client = _client(fake, [])
        client.get_index()
        client.get_index()

        assert fake.created == []
        assert fake.polls == 1

    def test_not_ready_in_time(self):
        fake = FakePinecone(ready_after=100)
        sleeps = []

        with pytest.raises(IndexUnavailable):
            _client(fake, sleeps, ready_timeout=4.0).wait_until_ready()

        assert fake.polls == 3

    def test_missing_api_key(self, monkeypatch):
        from siteassist.vectorstore import pinecone_client

        monkeypatch.setattr(pinecone_client.settings, "PINECONE_API_KEY", None)

        with pytest.raises(IndexUnavailable):
            PineconeClient()


class TestPineconeIndexBackend:
    """Test the async adapter over the SDK index."""

    def test_upsert_in_batches(self):
        index = FakeIndex()
        backend = PineconeIndexBackend(index, batch_size=2)
        vectors = [StoredVector(id=f"v{i}", values=[1.0]) for i in range(5)]

        count = run(backend.upsert(vectors, "ns"))

        assert count == 5
        assert index.upserts == [("ns", ["v0", "v1"]), ("ns", ["v2", "v3"]), ("ns", ["v4"])]

    def test_query(self):
        index = FakeIndex()
        backend = PineconeIndexBackend(index)

        matches = run(backend.query([1.0], 2, namespace=None, filter={"type": "heading"}))

        assert [(m.id, m.score) for m in matches] == [("a", 0.9), ("b", 0.4)]
        assert matches[0].text == "Pricing"
        assert matches[1].metadata == {}
        assert index.queries[0]["namespace"] == ""
        assert index.queries[0]["include_metadata"] is True
        assert index.queries[0]["filter"] == {"type": "heading"}

    def test_delete(self):
        index = FakeIndex()
        backend = PineconeIndexBackend(index)

        assert run(backend.delete(ids=["a", "b"], namespace="ns")) == 2
        assert run(backend.delete(filter={"type": "list"}, namespace="ns")) == -1
        assert index.deletes == [
            {"ids": ["a", "b"], "namespace": "ns"},
            {"filter": {"type": "list"}, "namespace": "ns"},
        ]

    def test_stats(self):
        stats = run(PineconeIndexBackend(FakeIndex()).stats())

        assert stats.vector_count == 5
        assert stats.dimension == 8
        assert stats.index_fullness == 0.0
        assert stats.namespaces == {"project_1_mainContent": 5}
