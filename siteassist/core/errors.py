"""
Error Taxonomy
Every failure the service reports carries its own HTTP status
"""
from typing import Any, Optional


class SiteAssistError(Exception):
    """
    Base class for all service errors.

    Attributes:
        message: Human-readable error returned to API callers
        details: Optional debugging detail (never a stack trace)
    """

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.error
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(SiteAssistError):
    """Malformed or missing input"""
    status_code = 400
    error = "Invalid input"


class TextTooShort(ValidationError):
    """Normalized text is below the embedding floor"""
    error = "Text too short for embedding generation"


class AuthError(SiteAssistError):
    """API key rejected. Never retried, never billed."""
    status_code = 403
    error = "Authentication failed"


class MissingAPIKey(AuthError):
    status_code = 401
    error = "API key required"


class KeyNotFound(AuthError):
    status_code = 401
    error = "Invalid API key"


class KeyDisabled(AuthError):
    error = "API key is disabled"


class DomainNotAllowed(AuthError):
    error = "Domain not authorized for this API key"


class RateLimitExceeded(AuthError):
    error = "Rate limit exceeded"


class FeatureNotGranted(AuthError):
    error = "Feature not available for this API key"


class NotAuthorized(SiteAssistError):
    """Ownership mismatch on a key mutation, reported as not found"""
    status_code = 404
    error = "API key not found"


class ProviderError(SiteAssistError):
    """Embedding, completion or content-fetch provider failed"""
    status_code = 500
    error = "Provider call failed"


class IndexUnavailable(SiteAssistError):
    """The durable vector index cannot be reached"""
    status_code = 500
    error = "Vector index unavailable"


class IngestionError(SiteAssistError):
    """A whole ingestion run failed"""
    status_code = 500
    error = "Failed to process website"


__all__ = [
    "SiteAssistError",
    "ValidationError",
    "TextTooShort",
    "AuthError",
    "MissingAPIKey",
    "KeyNotFound",
    "KeyDisabled",
    "DomainNotAllowed",
    "RateLimitExceeded",
    "FeatureNotGranted",
    "NotAuthorized",
    "ProviderError",
    "IndexUnavailable",
    "IngestionError",
]
