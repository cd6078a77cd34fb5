"""
Security Utilities
API key generation, masking and origin checks
"""
from typing import Iterable, Optional
from urllib.parse import urlparse
import logging
import secrets

logger = logging.getLogger(__name__)


class SecurityUtils:
    """Key and origin helpers shared by the registry and the API layer"""

    @staticmethod
    def generate_api_key(prefix: str) -> str:
        """
        Generate a cryptographically random API key.
        Format: {prefix}_{64 hex chars}
        """
        return f"{prefix}_{secrets.token_hex(32)}"

    @staticmethod
    def mask_api_key(api_key: Optional[str]) -> str:
        """Shorten a key for listings and logs: first 12 and last 4 characters"""
        if not api_key:
            return "<none>"
        if len(api_key) <= 16:
            return "***"
        return f"{api_key[:12]}...{api_key[-4:]}"

    @staticmethod
    def extract_hostname(origin: Optional[str]) -> Optional[str]:
        """
        Hostname of a request origin.
        Accepts a full origin ("https://docs.example.com") or a bare host.
        """
        if not origin:
            return None
        origin = origin.strip()
        if "://" not in origin:
            origin = f"//{origin}"
        hostname = urlparse(origin).hostname
        return hostname.lower() if hostname else None

    @staticmethod
    def domain_allowed(origin: Optional[str], allowed_domains: Iterable[str]) -> bool:
        """
        True when the origin's host equals an allowed domain or is a subdomain of one.
        An empty allow-list permits every origin.
        """
        allowed = [d.lower().strip() for d in allowed_domains if d]
        if not allowed:
            return True

        hostname = SecurityUtils.extract_hostname(origin)
        if not hostname:
            return False

        return any(
            hostname == domain or hostname.endswith(f".{domain}")
            for domain in allowed
        )


security_utils = SecurityUtils()

__all__ = ["SecurityUtils", "security_utils"]
