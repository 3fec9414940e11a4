"""
Invite Relay - Utils Package
============================

Helpers with no relay state of their own.

Available Utilities:
    ErrorHandler: Categorised error logging with recovery hints
    safe_execute: Decorator that contains coroutine exceptions

Author: Invite Relay maintainers
Project: invite-relay
"""

from .error_handler import ErrorContext, ErrorHandler, safe_execute


__all__ = [
    "ErrorContext",
    "ErrorHandler",
    "safe_execute",
]
