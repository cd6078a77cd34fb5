"""
SQLAlchemy declarative base and common mixins
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base, declared_attr
import uuid


Base = declarative_base()


class UUIDMixin:
    """
    Mixin for UUID primary keys.
    Uses UUID4 for global uniqueness.
    """

    @declared_attr
    def id(cls):
        return Column(
            String(36),
            primary_key=True,
            default=lambda: str(uuid.uuid4()),
            comment="UUID primary key"
        )
