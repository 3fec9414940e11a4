"""
Invite Relay - Error Handler
============================

Categorised error logging with context and recovery hints.

Features:
- Error categorization (platform, sink, event, config, network)
- Recovery hints tailored to the relay's failure modes
- Critical error context saved as JSON for later analysis
- Safe execution decorator for fire-and-forget coroutines

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
import functools
import json
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Tuple

import discord

from src.core.config import ConfigValidationError
from src.core.constants import LOG_TRUNCATE_SHORT
from src.core.errors import (
    DeliveryRejected,
    DeliveryTransportFailure,
    FetchError,
    MalformedEventError,
    RoleGrantFailure,
)
from src.core.logger import logger


class ErrorContext:
    """Captures and formats detailed error context"""

    @staticmethod
    def get_full_context(e: BaseException, location: str, **kwargs) -> Dict[str, Any]:
        """
        Get comprehensive error context.

        Args:
            e: The exception
            location: Where the error occurred
            **kwargs: Additional context (event, community, user, ...)

        Returns:
            Dictionary with full error context
        """
        return {
            'timestamp': datetime.now().isoformat(),
            'location': location,
            'error_type': type(e).__name__,
            'error_message': str(e),
            'traceback': ''.join(traceback.format_exception(type(e), e, e.__traceback__)),
            'python_version': sys.version,
            'additional_context': {k: str(v) for k, v in kwargs.items()},
        }


class ErrorHandler:
    """Error handling with categories, hints and context"""

    ERROR_CATEGORIES = {
        'platform': (FetchError, RoleGrantFailure, discord.HTTPException),
        'sink': (DeliveryRejected, DeliveryTransportFailure),
        'event': (MalformedEventError,),
        'config': (ConfigValidationError,),
        'network': (ConnectionError, TimeoutError, asyncio.TimeoutError, OSError),
    }

    RECOVERY_SUGGESTIONS = {
        FetchError: "Invite listing unavailable - join relayed without attribution, check Manage Server permission",
        RoleGrantFailure: "Default role not granted - check Manage Roles permission and role position",
        DeliveryRejected: "Webhook rejected the payload - check the automation workflow is active",
        DeliveryTransportFailure: "Webhook unreachable - check WEBHOOK_URL and network",
        MalformedEventError: "Event dropped - it lacks data the payload requires",
        ConfigValidationError: "Fix the environment (.env) and restart",
        discord.Forbidden: "Check bot permissions in server settings",
        discord.HTTPException: "Discord API issue - event handled without this step",
        asyncio.TimeoutError: "Request timed out - event handled without this step",
        ConnectionError: "Network connection issue - check internet connection",
    }

    @classmethod
    def categorize_error(cls, e: BaseException) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return 'general'

    @classmethod
    def get_recovery_suggestion(cls, e: BaseException) -> str:
        for error_type, suggestion in cls.RECOVERY_SUGGESTIONS.items():
            if isinstance(e, error_type):
                return suggestion
        return "Unexpected error - check logs for details"

    @classmethod
    def handle(cls, e: BaseException, location: str, critical: bool = False, **context) -> None:
        """
        Log an error with its category, a recovery hint and context.

        Args:
            e: The exception
            location: Where the error occurred
            critical: Whether this error stops the process
            **context: Additional context shown in the log tree
        """
        category = cls.categorize_error(e)
        suggestion = cls.get_recovery_suggestion(e)

        details: List[Tuple[str, str]] = [
            ("Location", location),
            ("Type", type(e).__name__),
            ("Error", str(e)[:LOG_TRUNCATE_SHORT]),
        ]
        details.extend((key.replace('_', ' ').title(), str(value)[:LOG_TRUNCATE_SHORT]) for key, value in context.items())
        details.append(("Recovery", suggestion))

        if critical:
            logger.error(f"CRITICAL [{category.upper()}]", details)
            full_context = ErrorContext.get_full_context(e, location, **context)
            logger.info(f"Traceback:\n{full_context['traceback']}")
            cls._store_critical_error(full_context)
        else:
            logger.warning(f"[{category.upper()}] {type(e).__name__}", details)

    @staticmethod
    def _store_critical_error(context: Dict[str, Any]) -> None:
        """Store critical error context under the log directory."""
        try:
            error_dir = logger.logs_dir / 'errors'
            error_dir.mkdir(exist_ok=True, parents=True)

            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            error_file: Path = error_dir / f"error_{timestamp}.json"

            with open(error_file, 'w') as f:
                json.dump(context, f, indent=2, default=str)

            logger.info(f"Critical error saved to {error_file}")
        except OSError as save_error:
            logger.info(f"Failed to save error details: {save_error}")


def safe_execute(location: str):
    """
    Decorator that contains any exception raised by a coroutine.

    Usage:
        @safe_execute("relay.handle_join")
        async def handle_join(...):
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                ErrorHandler.handle(e, location=location)
                return None
        return wrapper
    return decorator


__all__ = [
    "ErrorContext",
    "ErrorHandler",
    "safe_execute",
]
