"""
Invite Relay - Events Package
=============================

Event handler Cogs that translate Discord gateway events into typed
relay events.

DESIGN:
    Each event file contains a Cog class with @commands.Cog.listener
    decorators. Cogs are loaded by the bot using load_extension().

    Event routing:
    - members.py: Member join, guild join/remove
    - messages.py: Message create in the monitored channel
    - invites.py: Invite create/delete

Author: Invite Relay maintainers
Project: invite-relay
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "src.events.members",
    "src.events.messages",
    "src.events.invites",
]
"""List of event cog module paths for dynamic loading."""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "EVENT_COGS",
]
