"""Database models package"""

# Import all models here so Alembic can detect them
from siteassist.models.api_key import APIKeyRecord, KeyUsageRecord

__all__ = [
    "APIKeyRecord",
    "KeyUsageRecord",
]
