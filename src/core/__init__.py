"""
Invite Relay - Core Package
===========================

Configuration, logging, data models and error types shared by every
other package.

DESIGN:
    Core modules are singletons or global instances so every module sees
    the same state:
    - get_config() returns the same Config instance
    - logger is a global TreeLogger instance

Author: Invite Relay maintainers
Project: invite-relay
"""

# =============================================================================
# Core Imports
# =============================================================================

from .config import Config, ConfigValidationError, get_config, load_config
from .errors import (
    DeliveryRejected,
    DeliveryTransportFailure,
    FetchError,
    MalformedEventError,
    RelayError,
    RoleGrantFailure,
)
from .logger import logger, TreeLogger


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    # Errors
    "RelayError",
    "FetchError",
    "MalformedEventError",
    "DeliveryRejected",
    "DeliveryTransportFailure",
    "RoleGrantFailure",
    # Logger
    "logger",
    "TreeLogger",
]
