"""
API Key Models
Durable storage for issued keys and their bounded usage log
"""
from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean, JSON, Index, ForeignKey

from siteassist.db.base import Base, UUIDMixin


class APIKeyRecord(Base, UUIDMixin):
    """
    One issued API key.
    Counters and domain metadata are stored as JSON documents.
    """

    __tablename__ = "api_keys"

    key = Column(
        String(128),
        nullable=False,
        unique=True,
        index=True,
        comment="Opaque API token ({prefix}_{hex})"
    )

    user_id = Column(
        String(255),
        nullable=False,
        index=True,
        comment="Owner of the key"
    )

    project_id = Column(
        String(100),
        nullable=True,
        index=True,
        comment="Bound project, if any"
    )

    project_name = Column(String(255), nullable=True)
    project_url = Column(Text, nullable=True)
    description = Column(Text, nullable=False, default="")

    features = Column(
        JSON,
        nullable=False,
        default=list,
        comment="Granted feature names, in grant order"
    )

    rate_limit = Column(
        Integer,
        nullable=False,
        comment="Requests per hour"
    )

    is_active = Column(Boolean, nullable=False, default=True)

    usage = Column(
        JSON,
        nullable=False,
        comment="Usage counters and hour-window reset timestamp"
    )

    key_metadata = Column(
        JSON,
        nullable=False,
        comment="Allowed domains and data namespace"
    )

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    last_used = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_api_key_project_active", "project_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<APIKeyRecord(id={self.id}, user_id={self.user_id}, project_id={self.project_id})>"


class KeyUsageRecord(Base):
    """
    Append-only usage log entry.
    Rows beyond the per-key bound are trimmed oldest first.
    """

    __tablename__ = "key_usage_records"

    id = Column(Integer, primary_key=True, autoincrement=True)

    key = Column(
        String(128),
        ForeignKey("api_keys.key", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    timestamp = Column(DateTime(timezone=True), nullable=False)
    endpoint = Column(String(255), nullable=False)
    feature = Column(String(50), nullable=False)
    details = Column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<KeyUsageRecord(id={self.id}, endpoint={self.endpoint}, feature={self.feature})>"
