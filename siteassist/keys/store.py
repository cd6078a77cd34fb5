"""
API Key Storage
Storage interface behind the key registry, with in-memory and SQL implementations
"""
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional
import logging

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from siteassist.keys.schema import APIKey, KeyMetadata, KeyUsage, UsageRecord
from siteassist.models.api_key import APIKeyRecord, KeyUsageRecord

logger = logging.getLogger(__name__)


class KeyStore(ABC):
    """
    Persistence contract for API keys and their usage logs.
    Implementations return copies; callers write changes back with put().
    """

    @abstractmethod
    async def get(self, token: str) -> Optional[APIKey]:
        ...

    @abstractmethod
    async def put(self, api_key: APIKey) -> None:
        """Insert or replace a key"""

    @abstractmethod
    async def delete(self, token: str) -> bool:
        """Remove a key and its usage log. Returns False if it did not exist."""

    @abstractmethod
    async def list_all(self) -> List[APIKey]:
        ...

    @abstractmethod
    async def list_by_owner(self, user_id: str) -> List[APIKey]:
        ...

    @abstractmethod
    async def find_live_by_project(self, project_id: str) -> Optional[APIKey]:
        """The newest active key bound to a project"""

    @abstractmethod
    async def append_usage(self, token: str, record: UsageRecord, limit: int) -> None:
        """Append a usage record, evicting the oldest beyond `limit`"""

    @abstractmethod
    async def usage_history(self, token: str, last: Optional[int] = None) -> List[UsageRecord]:
        """Usage records oldest first, optionally only the most recent `last`"""


class InMemoryKeyStore(KeyStore):
    """
    Process-local store.
    The usage log of each key is a bounded deque acting as a ring buffer.
    """

    def __init__(self):
        self._keys: Dict[str, APIKey] = {}
        self._usage: Dict[str, Deque[UsageRecord]] = {}

    async def get(self, token: str) -> Optional[APIKey]:
        api_key = self._keys.get(token)
        return api_key.model_copy(deep=True) if api_key else None

    async def put(self, api_key: APIKey) -> None:
        self._keys[api_key.key] = api_key.model_copy(deep=True)

    async def delete(self, token: str) -> bool:
        self._usage.pop(token, None)
        return self._keys.pop(token, None) is not None

    async def list_all(self) -> List[APIKey]:
        return [k.model_copy(deep=True) for k in self._keys.values()]

    async def list_by_owner(self, user_id: str) -> List[APIKey]:
        return [
            k.model_copy(deep=True)
            for k in self._keys.values()
            if k.user_id == user_id
        ]

    async def find_live_by_project(self, project_id: str) -> Optional[APIKey]:
        live = [
            k for k in self._keys.values()
            if k.project_id == project_id and k.is_active
        ]
        if not live:
            return None
        newest = max(live, key=lambda k: k.created_at)
        return newest.model_copy(deep=True)

    async def append_usage(self, token: str, record: UsageRecord, limit: int) -> None:
        history = self._usage.get(token)
        if history is None or history.maxlen != limit:
            history = deque(history or (), maxlen=limit)
            self._usage[token] = history
        history.append(record)

    async def usage_history(self, token: str, last: Optional[int] = None) -> List[UsageRecord]:
        history = list(self._usage.get(token, ()))
        if last is not None:
            history = history[-last:] if last > 0 else []
        return history


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyKeyStore(KeyStore):
    """
    Async SQLAlchemy store over the api_keys and key_usage_records tables.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _to_schema(row: APIKeyRecord) -> APIKey:
        return APIKey(
            id=row.id,
            key=row.key,
            user_id=row.user_id,
            project_id=row.project_id,
            project_name=row.project_name,
            project_url=row.project_url,
            description=row.description or "",
            features=list(row.features or []),
            rate_limit=row.rate_limit,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
            last_used=_as_utc(row.last_used),
            is_active=row.is_active,
            usage=KeyUsage.model_validate(row.usage),
            metadata=KeyMetadata.model_validate(row.key_metadata or {}),
        )

    @staticmethod
    def _apply(row: APIKeyRecord, api_key: APIKey) -> None:
        row.user_id = api_key.user_id
        row.project_id = api_key.project_id
        row.project_name = api_key.project_name
        row.project_url = api_key.project_url
        row.description = api_key.description
        row.features = list(api_key.features)
        row.rate_limit = api_key.rate_limit
        row.is_active = api_key.is_active
        row.usage = api_key.usage.model_dump(mode="json")
        row.key_metadata = api_key.metadata.model_dump(mode="json")
        row.created_at = api_key.created_at
        row.updated_at = api_key.updated_at
        row.last_used = api_key.last_used

    async def get(self, token: str) -> Optional[APIKey]:
        async with self._session_factory() as session:
            row = await session.scalar(
                select(APIKeyRecord).where(APIKeyRecord.key == token)
            )
            return self._to_schema(row) if row else None

    async def put(self, api_key: APIKey) -> None:
        async with self._session_factory() as session:
            row = await session.scalar(
                select(APIKeyRecord).where(APIKeyRecord.key == api_key.key)
            )
            if row is None:
                row = APIKeyRecord(id=api_key.id, key=api_key.key)
                session.add(row)
            self._apply(row, api_key)
            await session.commit()

    async def delete(self, token: str) -> bool:
        async with self._session_factory() as session:
            await session.execute(
                delete(KeyUsageRecord).where(KeyUsageRecord.key == token)
            )
            result = await session.execute(
                delete(APIKeyRecord).where(APIKeyRecord.key == token)
            )
            await session.commit()
            return result.rowcount > 0

    async def list_all(self) -> List[APIKey]:
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(APIKeyRecord).order_by(APIKeyRecord.created_at)
            )
            return [self._to_schema(row) for row in rows]

    async def list_by_owner(self, user_id: str) -> List[APIKey]:
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(APIKeyRecord)
                .where(APIKeyRecord.user_id == user_id)
                .order_by(APIKeyRecord.created_at)
            )
            return [self._to_schema(row) for row in rows]

    async def find_live_by_project(self, project_id: str) -> Optional[APIKey]:
        async with self._session_factory() as session:
            row = await session.scalar(
                select(APIKeyRecord)
                .where(
                    APIKeyRecord.project_id == project_id,
                    APIKeyRecord.is_active.is_(True),
                )
                .order_by(APIKeyRecord.created_at.desc())
                .limit(1)
            )
            return self._to_schema(row) if row else None

    async def append_usage(self, token: str, record: UsageRecord, limit: int) -> None:
        async with self._session_factory() as session:
            session.add(KeyUsageRecord(
                key=token,
                timestamp=record.timestamp,
                endpoint=record.endpoint,
                feature=record.feature,
                details=record.metadata,
            ))
            await session.flush()

            count = await session.scalar(
                select(func.count(KeyUsageRecord.id)).where(KeyUsageRecord.key == token)
            )
            overflow = (count or 0) - limit
            if overflow > 0:
                oldest = await session.scalars(
                    select(KeyUsageRecord.id)
                    .where(KeyUsageRecord.key == token)
                    .order_by(KeyUsageRecord.id)
                    .limit(overflow)
                )
                await session.execute(
                    delete(KeyUsageRecord).where(KeyUsageRecord.id.in_(list(oldest)))
                )

            await session.commit()

    async def usage_history(self, token: str, last: Optional[int] = None) -> List[UsageRecord]:
        async with self._session_factory() as session:
            query = select(KeyUsageRecord).where(KeyUsageRecord.key == token)
            if last is not None:
                query = query.order_by(KeyUsageRecord.id.desc()).limit(max(last, 0))
            else:
                query = query.order_by(KeyUsageRecord.id)
            rows = list(await session.scalars(query))

        if last is not None:
            rows.reverse()

        return [
            UsageRecord(
                timestamp=_as_utc(row.timestamp),
                endpoint=row.endpoint,
                feature=row.feature,
                metadata=row.details or {},
            )
            for row in rows
        ]


__all__ = ["KeyStore", "InMemoryKeyStore", "SQLAlchemyKeyStore"]
