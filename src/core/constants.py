"""
Invite Relay - Centralized Constants
====================================

Timing and size constants for the relay pipeline.
Import from this module instead of hardcoding values.

Author: Invite Relay maintainers
Project: invite-relay
"""

# =============================================================================
# Time Constants
# =============================================================================

SECONDS_PER_MINUTE = 60
MS_PER_SECOND = 1000

# =============================================================================
# Cooldown Constants (in milliseconds)
# =============================================================================

COOLDOWN_WINDOW_MS = 10 * MS_PER_SECOND          # Min gap between forwarded messages per author
COOLDOWN_RETENTION_MS = 5 * SECONDS_PER_MINUTE * MS_PER_SECOND  # Entries older than this are swept
COOLDOWN_SWEEP_INTERVAL_MS = SECONDS_PER_MINUTE * MS_PER_SECOND  # Sweep cadence

# =============================================================================
# Timeout Constants (in seconds)
# =============================================================================

DELIVERY_TIMEOUT = 10                 # Webhook POST timeout
FETCH_TIMEOUT = 10                    # Invite listing fetch timeout
ROLE_GRANT_TIMEOUT = 10               # Role add timeout
ATTRIBUTION_TIMEOUT = 30              # Invite lock wait plus listing fetch for one join
HANDLER_TIMEOUT = 45                  # Upper bound for message and invite handlers
SHUTDOWN_TIMEOUT = 10                 # Wait for in-flight handlers on shutdown

# =============================================================================
# Log Truncation
# =============================================================================

LOG_TRUNCATE_SHORT = 100
LOG_TRUNCATE_BODY = 500               # Max sink response body kept in outcomes

# =============================================================================
# Event Types
# =============================================================================

EVENT_MEMBER_JOIN = "member_join"
EVENT_MESSAGE_CREATE = "message_create"

HERE_MENTION = "@here"
"""Literal text whose presence marks a message as an @here mention."""


__all__ = [
    "SECONDS_PER_MINUTE",
    "MS_PER_SECOND",
    "COOLDOWN_WINDOW_MS",
    "COOLDOWN_RETENTION_MS",
    "COOLDOWN_SWEEP_INTERVAL_MS",
    "DELIVERY_TIMEOUT",
    "FETCH_TIMEOUT",
    "ROLE_GRANT_TIMEOUT",
    "ATTRIBUTION_TIMEOUT",
    "HANDLER_TIMEOUT",
    "SHUTDOWN_TIMEOUT",
    "LOG_TRUNCATE_SHORT",
    "LOG_TRUNCATE_BODY",
    "EVENT_MEMBER_JOIN",
    "EVENT_MESSAGE_CREATE",
    "HERE_MENTION",
]
