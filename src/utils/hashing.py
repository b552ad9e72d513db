import hashlib
import secrets

from src.api.core.constants import (
    API_KEY_MASK_CHAR,
    API_KEY_VISIBLE_PREFIX,
    API_KEY_VISIBLE_SUFFIX,
    WIDGET_API_KEY_PREFIX,
)


class HashingService:
    """Service for hashing, generating and masking widget API keys."""

    @staticmethod
    def generate_api_key() -> str:
        """Generate a new random widget API key (prefix + 64 hex chars)."""
        return f"{WIDGET_API_KEY_PREFIX}{secrets.token_hex(32)}"

    @staticmethod
    def hash_api_key(plain_key: str) -> str:
        """
        Hash an API key for storage and lookup.

        Widget keys are 256-bit random values, so an unsalted SHA-256 digest is
        enough to protect them at rest while still allowing an indexed lookup
        on every widget request.

        Args:
            plain_key: The plain text API key to hash

        Returns:
            The hex digest of the key
        """
        return hashlib.sha256(plain_key.encode("utf-8")).hexdigest()

    @staticmethod
    def mask_api_key(plain_key: str) -> str:
        """Redact everything but a short prefix and suffix of a key."""
        visible = API_KEY_VISIBLE_PREFIX + API_KEY_VISIBLE_SUFFIX
        if len(plain_key) <= visible:
            return API_KEY_MASK_CHAR * len(plain_key)
        hidden = len(plain_key) - visible
        return (
            plain_key[:API_KEY_VISIBLE_PREFIX]
            + API_KEY_MASK_CHAR * hidden
            + plain_key[-API_KEY_VISIBLE_SUFFIX:]
        )
