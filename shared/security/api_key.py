"""
Internal API key check for admin and service-to-service routes.

The expected key comes from Settings, so a missing INTERNAL_API_KEY falls back
to an insecure default with a loud warning instead of crashing at import time.
"""
import secrets
import warnings

from shared.config.settings import Settings

_INSECURE_DEFAULT = "insecure-default-change-me"


def verify_api_key(provided_key: str, settings: Settings) -> bool:
    """Verify an API key using constant-time comparison to prevent timing attacks."""
    if not provided_key:
        return False
    expected = settings.internal_api_key
    if expected == _INSECURE_DEFAULT:
        warnings.warn(
            "INTERNAL_API_KEY is not set. Using an insecure default. "
            "Set this env var in production!",
            stacklevel=2,
        )
    return secrets.compare_digest(str(provided_key), str(expected))
