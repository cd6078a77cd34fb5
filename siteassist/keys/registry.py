"""
API Key Registry
Issues, validates and meters API keys with per-key hourly rate limits
"""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse
import asyncio
import logging
import uuid

from siteassist.core.config import get_settings
from siteassist.core.errors import (
    DomainNotAllowed,
    FeatureNotGranted,
    KeyDisabled,
    KeyNotFound,
    NotAuthorized,
    RateLimitExceeded,
    ValidationError,
)
from siteassist.core.logging import audit_logger
from siteassist.core.security import security_utils
from siteassist.keys.schema import (
    APIKey,
    GlobalKeyStats,
    KeyDetails,
    KeyMetadata,
    KeyPatch,
    KeyUsage,
    UsageRecord,
)
from siteassist.keys.store import InMemoryKeyStore, KeyStore, SQLAlchemyKeyStore

settings = get_settings()
logger = logging.getLogger(__name__)

HOUR = timedelta(hours=1)

DEFAULT_PROJECT_FEATURES = ["explain", "chat", "analyze"]
DEFAULT_STANDALONE_FEATURES = ["scraping", "embeddings", "ai_explanations"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def feature_for_endpoint(endpoint: str) -> str:
    """Map an endpoint path to the usage bucket it is billed under"""
    if "explain" in endpoint:
        return "explanation"
    if "chat" in endpoint:
        return "chat"
    if "analyze" in endpoint:
        return "analysis"
    return "unknown"


class KeyLocks:
    """
    Named asyncio locks that exist only while a coroutine holds or waits on
    them, so tokens that never resolve to a key leave nothing behind.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def __contains__(self, name: str) -> bool:
        return name in self._locks

    @asynccontextmanager
    async def hold(self, name: str):
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        self._users[name] = self._users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[name] -= 1
            if not self._users[name]:
                del self._users[name]
                del self._locks[name]


class KeyRegistry:
    """
    Owns API keys, their hourly windows and usage counters.

    Every mutation of one key's counters happens while holding that key's
    asyncio lock, so concurrent requests cannot undercount the hourly window.
    """

    def __init__(
        self,
        store: KeyStore,
        clock: Optional[Callable[[], datetime]] = None,
        usage_log_limit: Optional[int] = None
    ):
        self.store = store
        self._clock = clock or _utcnow
        self.usage_log_limit = usage_log_limit or settings.KEY_USAGE_LOG_LIMIT
        self._locks = KeyLocks()

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    async def issue(
        self,
        owner_id: str,
        project_id: Optional[str] = None,
        features: Optional[List[str]] = None,
        rate_limit: Optional[int] = None,
        allowed_domains: Optional[List[str]] = None,
        project_name: Optional[str] = None,
        project_url: Optional[str] = None,
        description: str = ""
    ) -> APIKey:
        """
        Create a new key with zeroed usage.

        Project-bound keys default their allowed domains to the project URL's
        hostname. Issuing for a project that already has a live key disables
        the previous one, so each project has at most one live key.

        Raises:
            ValidationError: empty owner or non-positive rate limit
        """
        if not owner_id or not owner_id.strip():
            raise ValidationError("Owner id is required")

        if rate_limit is None:
            rate_limit = settings.KEY_DEFAULT_RATE_LIMIT
        if rate_limit <= 0:
            raise ValidationError("Rate limit must be a positive number of requests per hour")

        now = self._clock()

        if project_id:
            prefix = settings.KEY_PROJECT_PREFIX
            if features is None:
                features = list(DEFAULT_PROJECT_FEATURES)
            if allowed_domains is None and project_url:
                hostname = urlparse(project_url).hostname
                allowed_domains = [hostname] if hostname else []
            data_namespace = f"{project_id}_data"
        else:
            prefix = settings.KEY_STANDALONE_PREFIX
            if features is None:
                features = list(DEFAULT_STANDALONE_FEATURES)
            data_namespace = None

        # Ordered, de-duplicated
        features = list(dict.fromkeys(features))

        api_key = APIKey(
            id=str(uuid.uuid4()),
            key=security_utils.generate_api_key(prefix),
            user_id=owner_id.strip(),
            project_id=project_id,
            project_name=project_name,
            project_url=project_url,
            description=description,
            features=features,
            rate_limit=rate_limit,
            created_at=now,
            is_active=True,
            usage=KeyUsage(last_hour_reset=now),
            metadata=KeyMetadata(
                allowed_domains=allowed_domains or [],
                data_namespace=data_namespace,
            ),
        )

        if project_id:
            # Lookup, supersede and put must not interleave with another issue
            async with self._locks.hold(f"project:{project_id}"):
                await self._supersede_live_key(project_id, now)
                await self.store.put(api_key)
        else:
            await self.store.put(api_key)

        audit_logger.log_key_event(
            "issued",
            security_utils.mask_api_key(api_key.key),
            api_key.user_id,
            project_id=project_id,
            features=features,
            rate_limit=rate_limit,
        )
        logger.info(
            f"Issued API key {security_utils.mask_api_key(api_key.key)} "
            f"for owner={api_key.user_id}, project={project_id}"
        )

        return api_key

    async def _supersede_live_key(self, project_id: str, now: datetime) -> None:
        previous = await self.store.find_live_by_project(project_id)
        if previous is None:
            return

        async with self._locks.hold(previous.key):
            previous = await self.store.get(previous.key)
            if previous is None:
                return
            previous.is_active = False
            previous.updated_at = now
            await self.store.put(previous)

        audit_logger.log_key_event(
            "superseded",
            security_utils.mask_api_key(previous.key),
            previous.user_id,
            project_id=project_id,
        )

    # ------------------------------------------------------------------
    # Validation and metering
    # ------------------------------------------------------------------

    async def validate(self, token: str, origin: Optional[str] = None) -> APIKey:
        """
        Check that a key may be used right now.

        Resets the hourly window first when it has expired; that reset is the
        only state change validation makes.

        Raises:
            KeyNotFound, KeyDisabled, DomainNotAllowed, RateLimitExceeded
        """
        async with self._locks.hold(token):
            return await self._validate_locked(token, origin)

    async def record_usage(
        self,
        token: str,
        endpoint: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Meter one request. Unknown keys are ignored.
        """
        async with self._locks.hold(token):
            api_key = await self.store.get(token)
            if api_key is None:
                return
            await self._record_locked(api_key, endpoint, metadata)

    async def authorize(
        self,
        token: str,
        endpoint: str,
        origin: Optional[str] = None,
        feature: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> APIKey:
        """
        Validate, check feature access and record usage as one step.

        Rejected requests are not billed. Returns the key as it was after
        metering.
        """
        async with self._locks.hold(token):
            api_key = await self._validate_locked(token, origin)

            if feature and not self.has_feature(api_key, feature):
                audit_logger.log_auth_failure(
                    security_utils.mask_api_key(token), "feature_not_granted", origin
                )
                raise FeatureNotGranted(f"Feature '{feature}' not available for this API key")

            return await self._record_locked(api_key, endpoint, metadata)

    async def _validate_locked(self, token: str, origin: Optional[str]) -> APIKey:
        masked = security_utils.mask_api_key(token)

        api_key = await self.store.get(token) if token else None
        if api_key is None:
            audit_logger.log_auth_failure(masked, "not_found", origin)
            raise KeyNotFound()

        if not api_key.is_active:
            audit_logger.log_auth_failure(masked, "disabled", origin)
            raise KeyDisabled()

        if origin and api_key.metadata.allowed_domains:
            if not security_utils.domain_allowed(origin, api_key.metadata.allowed_domains):
                audit_logger.log_auth_failure(masked, "domain_not_allowed", origin)
                raise DomainNotAllowed()

        now = self._clock()
        if now - api_key.usage.last_hour_reset >= HOUR:
            api_key.usage.requests_this_hour = 0
            api_key.usage.last_hour_reset = now
            await self.store.put(api_key)
            logger.debug(f"Hourly window reset for key {masked}")

        if api_key.usage.requests_this_hour >= api_key.rate_limit:
            audit_logger.log_auth_failure(masked, "rate_limit_exceeded", origin)
            raise RateLimitExceeded(
                details={
                    "rate_limit": api_key.rate_limit,
                    "window_resets_at": (api_key.usage.last_hour_reset + HOUR).isoformat(),
                }
            )

        return api_key

    async def _record_locked(
        self,
        api_key: APIKey,
        endpoint: str,
        metadata: Optional[Dict[str, Any]]
    ) -> APIKey:
        now = self._clock()
        feature = feature_for_endpoint(endpoint)

        api_key.usage.total_requests += 1
        api_key.usage.requests_this_hour += 1
        api_key.last_used = now

        if feature == "explanation":
            api_key.usage.explanation_requests += 1
        elif feature == "chat":
            api_key.usage.chat_requests += 1
        elif feature == "analysis":
            api_key.usage.analyze_requests += 1

        await self.store.put(api_key)

        record_metadata = dict(metadata or {})
        record_metadata["project_id"] = api_key.project_id
        await self.store.append_usage(
            api_key.key,
            UsageRecord(
                timestamp=now,
                endpoint=endpoint,
                feature=feature,
                metadata=record_metadata,
            ),
            self.usage_log_limit,
        )

        return api_key

    @staticmethod
    def has_feature(api_key: APIKey, feature: str) -> bool:
        """Check if API key has specific feature access"""
        return feature in api_key.features

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    async def _owned(self, token: str, owner_id: str) -> APIKey:
        api_key = await self.store.get(token)
        if api_key is None or api_key.user_id != owner_id:
            raise NotAuthorized()
        return api_key

    async def update(self, token: str, owner_id: str, patch: KeyPatch) -> APIKey:
        """
        Apply an owner's changes to a key.

        Raises:
            NotAuthorized: unknown key or a different owner
        """
        async with self._locks.hold(token):
            api_key = await self._owned(token, owner_id)

            changes = patch.model_dump(exclude_unset=True)
            if "allowed_domains" in changes:
                api_key.metadata.allowed_domains = list(changes.pop("allowed_domains") or [])
            if changes.get("features") is not None:
                changes["features"] = list(dict.fromkeys(changes["features"]))
            for field, value in changes.items():
                if value is not None:
                    setattr(api_key, field, value)

            api_key.updated_at = self._clock()
            await self.store.put(api_key)

        audit_logger.log_key_event(
            "updated",
            security_utils.mask_api_key(token),
            owner_id,
            project_id=api_key.project_id,
            fields=sorted(patch.model_dump(exclude_unset=True).keys()),
        )
        return api_key

    async def update_allowed_domains(self, token: str, owner_id: str, domains: List[str]) -> APIKey:
        return await self.update(token, owner_id, KeyPatch(allowed_domains=domains))

    async def revoke(self, token: str, owner_id: str) -> None:
        """
        Permanently delete a key and its usage log.

        Raises:
            NotAuthorized: unknown key or a different owner
        """
        async with self._locks.hold(token):
            api_key = await self._owned(token, owner_id)
            await self.store.delete(token)

        audit_logger.log_key_event(
            "revoked",
            security_utils.mask_api_key(token),
            owner_id,
            project_id=api_key.project_id,
        )

    async def list_by_owner(self, owner_id: str) -> List[APIKey]:
        """
        An owner's keys, newest first, with tokens masked.
        """
        keys = await self.store.list_by_owner(owner_id)
        keys.sort(key=lambda k: k.created_at, reverse=True)
        for api_key in keys:
            api_key.key = security_utils.mask_api_key(api_key.key)
        return keys

    async def get_details(self, token: str, owner_id: str, recent: int = 100) -> KeyDetails:
        api_key = await self._owned(token, owner_id)
        history = await self.store.usage_history(token)
        return KeyDetails(
            api_key=api_key,
            recent_usage=history[-recent:] if recent > 0 else [],
            average_requests_per_day=self._average_daily(history),
        )

    async def get_by_project(self, project_id: str, owner_id: str, recent: int = 50) -> Optional[KeyDetails]:
        api_key = await self.store.find_live_by_project(project_id)
        if api_key is None or api_key.user_id != owner_id:
            return None
        history = await self.store.usage_history(api_key.key)
        return KeyDetails(
            api_key=api_key,
            recent_usage=history[-recent:] if recent > 0 else [],
            average_requests_per_day=self._average_daily(history),
        )

    async def stats_global(self) -> GlobalKeyStats:
        """Aggregate counters across every key"""
        keys = await self.store.list_all()

        total_keys = len(keys)
        active_keys = sum(1 for k in keys if k.is_active)
        total_projects = len({k.project_id for k in keys if k.project_id})
        total_requests = sum(k.usage.total_requests for k in keys)
        total_explanations = sum(k.usage.explanation_requests for k in keys)

        return GlobalKeyStats(
            total_keys=total_keys,
            active_keys=active_keys,
            total_projects=total_projects,
            total_requests=total_requests,
            total_explanations=total_explanations,
            average_requests_per_key=round(total_requests / total_keys) if total_keys else 0,
            average_explanations_per_project=round(total_explanations / total_projects) if total_projects else 0,
        )

    @staticmethod
    def _average_daily(history: List[UsageRecord]) -> int:
        if not history:
            return 0
        span_days = (history[-1].timestamp - history[0].timestamp).total_seconds() / 86400
        return round(len(history) / max(1.0, span_days))


# Singleton instance
_key_registry: Optional[KeyRegistry] = None


def get_key_registry() -> KeyRegistry:
    """
    Get or create KeyRegistry singleton.
    The backing store is chosen by KEY_STORE_BACKEND.
    """
    global _key_registry

    if _key_registry is None:
        if settings.KEY_STORE_BACKEND == "database":
            from siteassist.db.session import AsyncSessionLocal

            store = SQLAlchemyKeyStore(AsyncSessionLocal)
        else:
            store = InMemoryKeyStore()
        _key_registry = KeyRegistry(store)

    return _key_registry


__all__ = ["KeyRegistry", "feature_for_endpoint", "get_key_registry"]
