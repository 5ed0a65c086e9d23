"""
Environment validation utilities.

Ensures the service fails fast on misconfiguration while
remaining bypassable for tests via SKIP_ENV_VALIDATION.
"""

import os
from typing import Optional, Iterable
from urllib.parse import urlparse

from groupplan.core.config import settings, AppConfig


class EnvValidationError(RuntimeError):
    """Raised when environment validation fails."""


def _is_valid_db_url(url: str) -> bool:
    """Basic DATABASE_URL validation using urlparse."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return True
    return bool(parsed.scheme and parsed.netloc)


def _require(fields_required: Iterable[str], source: object) -> None:
    for field in fields_required:
        if not getattr(source, field, None):
            raise EnvValidationError(f"{field} is required in production")


def validate_env(env: Optional[str] = None, settings_obj=None, app_config: Optional[AppConfig] = None) -> bool:
    """Validate environment and app configuration.

    Args:
        env: Override environment name (defaults to settings.ENV)
        settings_obj: Override settings object (defaults to groupplan.core.config.settings)
        app_config: The loaded JSON app config, checked in production

    Returns:
        True if validation passes.

    Raises:
        EnvValidationError when a rule is violated.
    """
    if os.getenv("SKIP_ENV_VALIDATION") == "1":
        return True

    cfg = settings_obj or settings
    mode = (env or getattr(cfg, "ENV", "development") or "development").lower()
    db_url = getattr(cfg, "DATABASE_URL", None)

    if not db_url:
        raise EnvValidationError("DATABASE_URL is required")
    if not _is_valid_db_url(db_url):
        raise EnvValidationError("DATABASE_URL must be a valid URL (e.g. sqlite:///groupplan.sqlite3)")

    if getattr(cfg, "SESSION_TTL_SECONDS", 0) <= 0:
        raise EnvValidationError("SESSION_TTL_SECONDS must be positive")

    if mode == "production":
        if app_config is None:
            raise EnvValidationError("app config is required in production")
        _require(["hostname", "discord_key", "discord_secret"], app_config)

    return True
