"""OAuth data sanitization for logging.

Ensures no secrets, tokens or authorization codes are written to logs in full.
"""

import re
from typing import Any, Dict


class OAuthSanitizer:
    """Utility class for sanitizing OAuth-related sensitive data."""

    # Fields that should be completely redacted
    REDACT_FIELDS = {
        'client_secret', 'password', 'redis_password', 'authorization',
    }

    # Fields that should be partially masked
    MASK_FIELDS = {
        'access_token', 'refresh_token', 'token', 'code', 'old_refresh_token',
    }

    # Query parameters that carry credentials
    SENSITIVE_PARAMS = ('code', 'token', 'secret', 'password')

    @staticmethod
    def sanitize_token(token: str, preview_length: int = 6) -> str:
        """Show only the first N and last 4 characters of a token.

        Args:
            token: Token to sanitize
            preview_length: Number of characters to show at start

        Returns:
            Sanitized token string
        """
        if not token:
            return "***EMPTY***"

        if len(token) <= (preview_length + 8):
            # Too short to safely show any part
            return f"***{len(token)}_chars***"

        return f"{token[:preview_length]}...{token[-4:]}"

    @staticmethod
    def sanitize_url(url: str) -> str:
        """Remove credentials and sensitive query parameters from a URL."""
        if not url:
            return url

        # redis://:password@host:port
        url = re.sub(r'://[^/@]*@', '://***@', url)

        for param in OAuthSanitizer.SENSITIVE_PARAMS:
            url = re.sub(f'([?&]{param}=)[^&]*', r'\1***', url, flags=re.IGNORECASE)

        return url

    @classmethod
    def sanitize_value(cls, key: str, value: Any) -> Any:
        """Sanitize a single structured log field."""
        if value is None:
            return value
        lowered = key.lower()
        if lowered in cls.REDACT_FIELDS:
            return "***REDACTED***"
        if lowered in cls.MASK_FIELDS and isinstance(value, str):
            return cls.sanitize_token(value)
        if (lowered.endswith('_url') or lowered.endswith('_uri')) and isinstance(value, str):
            return cls.sanitize_url(value)
        return value

    @classmethod
    def sanitize_fields(cls, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize a dictionary of structured log fields (one level deep)."""
        if not fields:
            return {}
        return {key: cls.sanitize_value(key, value) for key, value in fields.items()}
