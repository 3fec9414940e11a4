"""
Invite Relay - Configuration Module
===================================

Centralized configuration with eager environment variable validation.

DESIGN:
    Configuration is loaded once from environment variables at startup
    (after load_dotenv() in main.py). Every required key is checked before
    anything is parsed so the operator sees all missing keys in a single
    error instead of fixing them one restart at a time.

    Join handling runs both flows: invite attribution and the default role
    grant, so DEFAULT_ROLE_ID is required.

Author: Invite Relay maintainers
Project: invite-relay
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from src.core.constants import (
    COOLDOWN_WINDOW_MS,
    DELIVERY_TIMEOUT,
    FETCH_TIMEOUT,
    MS_PER_SECOND,
    ROLE_GRANT_TIMEOUT,
)


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Relay configuration loaded from environment variables.

    Attributes:
        platform_token: Discord bot authentication token.
        monitored_channel_id: Channel whose messages are forwarded.
        webhook_url: Automation webhook receiving canonical payloads.
        default_role_id: Role granted to every new member.
    """

    # -------------------------------------------------------------------------
    # Required
    # -------------------------------------------------------------------------

    platform_token: str
    monitored_channel_id: int
    webhook_url: str
    default_role_id: int

    # -------------------------------------------------------------------------
    # Optional: Rate Limiting
    # -------------------------------------------------------------------------

    cooldown_seconds: int = COOLDOWN_WINDOW_MS // MS_PER_SECOND

    # -------------------------------------------------------------------------
    # Optional: Timeouts (seconds)
    # -------------------------------------------------------------------------

    delivery_timeout: int = DELIVERY_TIMEOUT
    fetch_timeout: int = FETCH_TIMEOUT
    role_grant_timeout: int = ROLE_GRANT_TIMEOUT

    # -------------------------------------------------------------------------
    # Optional: Alerts
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None

    @property
    def cooldown_window_ms(self) -> int:
        return self.cooldown_seconds * MS_PER_SECOND


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """
    Raised when required configuration is missing or invalid.

    Attributes:
        missing: Names of required keys that were absent.
    """

    def __init__(self, message: str, missing: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.missing = missing or []


REQUIRED_KEYS = (
    "PLATFORM_TOKEN",
    "MONITORED_CHANNEL_ID",
    "WEBHOOK_URL",
    "DEFAULT_ROLE_ID",
)


def _parse_int(value: str, name: str) -> int:
    """
    Parse a required integer (Discord IDs).

    Raises:
        ConfigValidationError: If value is not a valid integer.
    """
    try:
        return int(value)
    except ValueError:
        raise ConfigValidationError(f"Invalid integer for {name}: {value}")


def _parse_int_with_default(value: Optional[str], default: int, name: str, min_val: int = None, max_val: int = None) -> int:
    """
    Parse an optional integer, clamping to range and falling back to default.

    Args:
        value: String value from environment variable.
        default: Default value if not set or invalid.
        name: Variable name for warning messages.
        min_val: Minimum allowed value (inclusive).
        max_val: Maximum allowed value (inclusive).
    """
    if not value:
        return default
    from src.core.logger import logger
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _is_http_url(value: str) -> bool:
    return value.startswith(("https://", "http://"))


def _validate_optional_url(value: Optional[str], name: str) -> Optional[str]:
    """Return value when it is an http(s) URL, else warn and drop it."""
    if not value:
        return None
    if not _is_http_url(value):
        from src.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(environ: Optional[Dict[str, str]] = None) -> Config:
    """
    Load and validate configuration from environment variables.

    Args:
        environ: Mapping to read from; defaults to os.environ.

    Returns:
        Validated Config object.

    Raises:
        ConfigValidationError: If any required key is missing or invalid.
            Missing keys are all reported together.
    """
    env = os.environ if environ is None else environ

    missing = [key for key in REQUIRED_KEYS if not env.get(key)]
    if missing:
        raise ConfigValidationError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )

    webhook_url = env["WEBHOOK_URL"]
    if not _is_http_url(webhook_url):
        raise ConfigValidationError(f"Invalid URL for WEBHOOK_URL: {webhook_url}")

    return Config(
        platform_token=env["PLATFORM_TOKEN"],
        monitored_channel_id=_parse_int(env["MONITORED_CHANNEL_ID"], "MONITORED_CHANNEL_ID"),
        webhook_url=webhook_url,
        default_role_id=_parse_int(env["DEFAULT_ROLE_ID"], "DEFAULT_ROLE_ID"),
        cooldown_seconds=_parse_int_with_default(
            env.get("COOLDOWN_SECONDS"), COOLDOWN_WINDOW_MS // MS_PER_SECOND, "COOLDOWN_SECONDS",
            min_val=0, max_val=300,
        ),
        delivery_timeout=_parse_int_with_default(
            env.get("DELIVERY_TIMEOUT"), DELIVERY_TIMEOUT, "DELIVERY_TIMEOUT", min_val=1, max_val=60
        ),
        fetch_timeout=_parse_int_with_default(
            env.get("FETCH_TIMEOUT"), FETCH_TIMEOUT, "FETCH_TIMEOUT", min_val=1, max_val=60
        ),
        role_grant_timeout=_parse_int_with_default(
            env.get("ROLE_GRANT_TIMEOUT"), ROLE_GRANT_TIMEOUT, "ROLE_GRANT_TIMEOUT", min_val=1, max_val=60
        ),
        error_webhook_url=_validate_optional_url(env.get("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Singleton Access
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration, loading it on first access.

    Raises:
        ConfigValidationError: If configuration is invalid on first load.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """Load configuration and log a masked summary."""
    from src.core.logger import logger

    config = get_config()
    logger.tree("Configuration Loaded", [
        ("Token", f"{'*' * 8}{config.platform_token[-4:]}"),
        ("Monitored Channel", str(config.monitored_channel_id)),
        ("Webhook", config.webhook_url.split("?")[0]),
        ("Default Role", str(config.default_role_id)),
        ("Cooldown", f"{config.cooldown_seconds}s"),
        ("Error Alerts", "Enabled" if config.error_webhook_url else "Disabled"),
    ], emoji="⚙️")
    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "REQUIRED_KEYS",
    "get_config",
    "load_config",
    "validate_and_log_config",
]
