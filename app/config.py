# app/config.py
"""
Centralized configuration management with startup validation.

Reads environment variables into an AppConfig and provides a safe
configuration snapshot for the startup log.
"""
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

SERVICE_NAME = "members-area"
SERVICE_VERSION = "0.1.0"

DEFAULT_DB_PATH = "data/members.db"
DEFAULT_SESSION_TTL_SECONDS = 60 * 60  # 1 hour
MIN_SESSION_TTL_SECONDS = 60
DEFAULT_BCRYPT_ROUNDS = 12
MIN_BCRYPT_ROUNDS = 4
DEFAULT_PORT = 8000

# The one account created with the admin role (seeding, not a rule)
DEFAULT_BOOTSTRAP_ADMIN_EMAIL = "jesse@jessemckenzie.com"

# Sensitive substrings that should never appear in logs
SENSITIVE_SUBSTRINGS = ("key", "token", "secret", "password", "credential")


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class AppConfig:
    """Application configuration loaded from environment."""

    # Service info
    service_name: str = SERVICE_NAME
    service_version: str = SERVICE_VERSION
    environment: str = "development"
    port: int = DEFAULT_PORT

    # Storage
    db_path: str = DEFAULT_DB_PATH

    # Sessions
    session_ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    session_resave: bool = True
    session_cookie_secure: bool = False

    # Credentials
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    bootstrap_admin_email: str = DEFAULT_BOOTSTRAP_ADMIN_EMAIL
    revoke_sessions_on_role_change: bool = True

    # Warnings collected during config load
    warnings: list = field(default_factory=list)


# =============================================================================
# Configuration Loading
# =============================================================================


def _parse_int_env(
    name: str, default: int, min_value: Optional[int] = None
) -> tuple[int, Optional[str]]:
    """
    Parse an integer environment variable with validation.

    Returns (value, warning_message).
    On invalid input, returns default with a warning.
    """
    raw = os.environ.get(name)
    if raw is None:
        return default, None

    try:
        value = int(raw)
    except ValueError:
        warning = f"{name}='{raw}' is not a valid integer; using default {default}"
        return default, warning

    if min_value is not None and value < min_value:
        warning = f"{name}={value} is below minimum {min_value}; using default {default}"
        return default, warning

    return value, None


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    raw = os.environ.get(name, "").lower()
    if raw in ("true", "1", "yes", "on"):
        return True
    if raw in ("false", "0", "no", "off"):
        return False
    return default


def load_config(fail_fast: bool = True) -> AppConfig:
    """
    Load and validate application configuration from environment.

    Args:
        fail_fast: If True, raise ConfigurationError on critical issues.
                   If False, collect warnings and continue.

    Returns:
        AppConfig instance with validated configuration.

    Raises:
        ConfigurationError: If required configuration is missing/invalid
                           and fail_fast is True.
    """
    warnings = []

    environment = os.environ.get("APP_ENV", "development")

    port, port_warning = _parse_int_env("PORT", DEFAULT_PORT, min_value=1)
    ttl, ttl_warning = _parse_int_env(
        "SESSION_TTL_SECONDS",
        DEFAULT_SESSION_TTL_SECONDS,
        min_value=MIN_SESSION_TTL_SECONDS,
    )
    rounds, rounds_warning = _parse_int_env(
        "BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS, min_value=MIN_BCRYPT_ROUNDS
    )
    warnings.extend(w for w in (port_warning, ttl_warning, rounds_warning) if w)

    db_path = os.environ.get("AUTH_DB_PATH") or DEFAULT_DB_PATH
    bootstrap_admin_email = os.environ.get(
        "BOOTSTRAP_ADMIN_EMAIL", DEFAULT_BOOTSTRAP_ADMIN_EMAIL
    ).strip()

    session_cookie_secure = _parse_bool_env("SESSION_COOKIE_SECURE", False)
    if environment == "production" and not session_cookie_secure:
        message = "SESSION_COOKIE_SECURE must be true in production"
        if fail_fast:
            raise ConfigurationError(message)
        warnings.append(message)

    if not bootstrap_admin_email:
        warnings.append("BOOTSTRAP_ADMIN_EMAIL is empty; no account will be created as admin")

    # Log warnings
    for warning in warnings:
        logger.warning(f"[CONFIG] {warning}")

    return AppConfig(
        environment=environment,
        port=port,
        db_path=db_path,
        session_ttl_seconds=ttl,
        session_resave=_parse_bool_env("SESSION_RESAVE", True),
        session_cookie_secure=session_cookie_secure,
        bcrypt_rounds=rounds,
        bootstrap_admin_email=bootstrap_admin_email,
        revoke_sessions_on_role_change=_parse_bool_env("REVOKE_SESSIONS_ON_ROLE_CHANGE", True),
        warnings=warnings,
    )


def log_config_snapshot(config: AppConfig) -> str:
    """
    Generate and log a safe configuration snapshot.

    Returns the snapshot string for testing purposes.
    Never logs the bootstrap admin address or other identifying values.
    """
    snapshot = (
        f"[STARTUP] service={config.service_name} "
        f"version={config.service_version} "
        f"environment={config.environment} "
        f"db_path={config.db_path} "
        f"session_ttl_seconds={config.session_ttl_seconds} "
        f"session_resave={config.session_resave} "
        f"session_cookie_secure={config.session_cookie_secure} "
        f"bcrypt_rounds={config.bcrypt_rounds} "
        f"bootstrap_admin_configured={bool(config.bootstrap_admin_email)} "
        f"revoke_sessions_on_role_change={config.revoke_sessions_on_role_change}"
    )
    logger.info(snapshot)
    return snapshot


def validate_config_snapshot_safety(snapshot: str) -> bool:
    """
    Validate that a config snapshot doesn't contain sensitive values.

    Returns True if safe, False if potentially unsafe.
    """
    snapshot_lower = snapshot.lower()

    # Pattern: sensitive word followed by = and a value that's not a boolean
    for sensitive in SENSITIVE_SUBSTRINGS:
        pattern = rf"{sensitive}=(?!true|false)"
        if re.search(pattern, snapshot_lower):
            return False

    # Email addresses never belong in the startup log
    if "@" in snapshot:
        return False

    return True
