"""
Keys Module
API key issuance, validation, metering and storage
"""
from siteassist.keys.registry import KeyRegistry, feature_for_endpoint, get_key_registry
from siteassist.keys.schema import APIKey, KeyPatch, UsageRecord
from siteassist.keys.store import InMemoryKeyStore, KeyStore, SQLAlchemyKeyStore

__all__ = [
    "KeyRegistry",
    "feature_for_endpoint",
    "get_key_registry",
    "APIKey",
    "KeyPatch",
    "UsageRecord",
    "KeyStore",
    "InMemoryKeyStore",
    "SQLAlchemyKeyStore",
]
