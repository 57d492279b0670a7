"""
Internal service-to-service key check.

Falls back to an insecure default with a loud warning when INTERNAL_API_KEY
is unset, so local development works but production misconfiguration is
clearly surfaced.
"""
import secrets
import warnings

from shared.config.settings import get_settings

_INTERNAL_API_KEY: str = get_settings().internal_api_key

if not _INTERNAL_API_KEY:
    warnings.warn(
        "INTERNAL_API_KEY is not set. Using an insecure default. "
        "Set this env var in production!",
        stacklevel=2,
    )
    _INTERNAL_API_KEY = "insecure-default-change-me"

INTERNAL_API_KEY: str = _INTERNAL_API_KEY


def verify_api_key(provided_key: str) -> bool:
    """Verify an API key using constant-time comparison to prevent timing attacks."""
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), str(INTERNAL_API_KEY))
