"""
API key schemas and data models
"""
from typing import List, Dict, Any, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Serialises with camelCase aliases, accepts either spelling on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyUsage(_CamelModel):
    """
    Usage counters for one key.
    requests_this_hour is reset lazily by validation once the hour window expires.
    """
    total_requests: int = 0
    requests_this_hour: int = 0
    last_hour_reset: datetime
    explanation_requests: int = 0
    chat_requests: int = 0
    analyze_requests: int = 0


class KeyMetadata(_CamelModel):
    allowed_domains: List[str] = Field(default_factory=list)
    data_namespace: Optional[str] = None


class APIKey(_CamelModel):
    """
    An issued API key.
    The token (`key`) is globally unique and never changes after issuance.
    """
    id: str
    key: str
    user_id: str = Field(description="Owner of the key")
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    project_url: Optional[str] = None
    description: str = ""
    features: List[str] = Field(default_factory=list)
    rate_limit: int = Field(description="Requests per hour")
    created_at: datetime
    updated_at: Optional[datetime] = None
    last_used: Optional[datetime] = None
    is_active: bool = True
    usage: KeyUsage
    metadata: KeyMetadata = Field(default_factory=KeyMetadata)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "0b9f5a0e-2c1d-4c55-9a55-7f0d1a3e2b11",
                "key": "learn_3f1c...",
                "projectId": "project_1718000000000_k3j9x0a1b",
                "projectName": "Docs",
                "userId": "user-1",
                "features": ["explain", "chat", "analyze"],
                "rateLimit": 1000,
                "isActive": True,
                "usage": {
                    "totalRequests": 0,
                    "requestsThisHour": 0,
                    "explanationRequests": 0,
                    "chatRequests": 0,
                    "analyzeRequests": 0
                },
                "metadata": {
                    "allowedDomains": ["docs.example.com"],
                    "dataNamespace": "project_1718000000000_k3j9x0a1b_data"
                }
            }
        }
    )


class UsageRecord(_CamelModel):
    """One metered request. Append-only."""
    timestamp: datetime
    endpoint: str
    feature: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class KeyPatch(_CamelModel):
    """Fields an owner may change on an existing key"""
    project_name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    rate_limit: Optional[int] = Field(default=None, gt=0)
    features: Optional[List[str]] = None
    allowed_domains: Optional[List[str]] = None


class KeyDetails(_CamelModel):
    """Key plus recent usage, returned to the key's owner"""
    api_key: APIKey
    recent_usage: List[UsageRecord]
    average_requests_per_day: int


class GlobalKeyStats(_CamelModel):
    total_keys: int
    active_keys: int
    total_projects: int
    total_requests: int
    total_explanations: int
    average_requests_per_key: int
    average_explanations_per_project: int


__all__ = [
    "KeyUsage",
    "KeyMetadata",
    "APIKey",
    "UsageRecord",
    "KeyPatch",
    "KeyDetails",
    "GlobalKeyStats",
]
