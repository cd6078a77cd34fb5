"""
Tests for the SQLAlchemy key store against in-memory SQLite.

Each test runs its whole scenario inside one event loop, since the
aiosqlite connection belongs to the loop that opened it.
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from siteassist.db.base import Base
from siteassist.keys.registry import KeyRegistry
from siteassist.keys.schema import KeyPatch, UsageRecord
from siteassist.keys.store import SQLAlchemyKeyStore
from siteassist.models import APIKeyRecord, KeyUsageRecord  # noqa: F401

from helpers import FakeClock, run


async def _make_store():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, SQLAlchemyKeyStore(session_factory)


class TestSQLAlchemyKeyStore:
    """Test the durable key store."""

    def test_round_trip(self):
        """A stored key reads back with counters, metadata and aware timestamps."""
        async def scenario():
            engine, store = await _make_store()
            registry = KeyRegistry(store, clock=FakeClock())
            try:
                issued = await registry.issue(
                    "user-1",
                    project_id="project_1",
                    project_url="https://docs.example.com",
                )
                await registry.authorize(issued.key, "/explain")
                return issued, await store.get(issued.key)
            finally:
                await engine.dispose()

        issued, stored = run(scenario())

        assert stored.key == issued.key
        assert stored.features == ["explain", "chat", "analyze"]
        assert stored.metadata.allowed_domains == ["docs.example.com"]
        assert stored.metadata.data_namespace == "project_1_data"
        assert stored.usage.total_requests == 1
        assert stored.usage.explanation_requests == 1
        assert stored.created_at.tzinfo is not None

    def test_usage_log_trimmed_to_limit(self):
        """Appending past the limit evicts the oldest records."""
        async def scenario():
            engine, store = await _make_store()
            registry = KeyRegistry(store, clock=FakeClock())
            try:
                issued = await registry.issue("user-1")
                start = datetime(2026, 1, 1, tzinfo=timezone.utc)
                for i in range(5):
                    await store.append_usage(
                        issued.key,
                        UsageRecord(
                            timestamp=start + timedelta(minutes=i),
                            endpoint="/chat",
                            feature="chat",
                            metadata={"n": i},
                        ),
                        limit=3,
                    )
                return (
                    await store.usage_history(issued.key),
                    await store.usage_history(issued.key, last=1),
                )
            finally:
                await engine.dispose()

        history, last_one = run(scenario())

        assert [r.metadata["n"] for r in history] == [2, 3, 4]
        assert [r.metadata["n"] for r in last_one] == [4]

    def test_find_live_and_delete(self):
        """Superseded keys are not live; delete removes key and usage."""
        async def scenario():
            engine, store = await _make_store()
            clock = FakeClock()
            registry = KeyRegistry(store, clock=clock)
            try:
                first = await registry.issue("user-1", project_id="project_1")
                clock.advance(seconds=1)
                second = await registry.issue("user-1", project_id="project_1")
                live = await store.find_live_by_project("project_1")

                await registry.authorize(second.key, "/chat")
                await registry.update(second.key, "user-1", KeyPatch(description="docs"))
                owned = await store.list_by_owner("user-1")

                deleted = await store.delete(second.key)
                deleted_again = await store.delete(second.key)
                return (
                    first, second, live, owned, deleted, deleted_again,
                    await store.get(second.key),
                    await store.usage_history(second.key),
                )
            finally:
                await engine.dispose()

        first, second, live, owned, deleted, deleted_again, gone, history = run(scenario())

        assert live.key == second.key
        assert {k.key for k in owned} == {first.key, second.key}
        assert [k.is_active for k in owned] == [False, True]
        assert deleted is True
        assert deleted_again is False
        assert gone is None
        assert history == []
