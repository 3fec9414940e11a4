"""
Invite Relay - Services Package
===============================

The relay pipeline, leaf-first:

    CooldownGovernor: per-author forwarding window with periodic sweep
    InviteAttributionCache: invite snapshots and join attribution
    normalizer: typed events -> canonical payloads
    DeliveryClient: one JSON POST per payload, classified outcome
    RelayOrchestrator: dispatch loop wiring the above together
    DiscordPlatform: invite listing and role grant on discord.py

Author: Invite Relay maintainers
Project: invite-relay
"""

from .cooldown import CooldownGovernor
from .delivery import DeliveryClient, Delivered, RejectedByServer, TransportFailure
from .invite_cache import InviteAttributionCache, diff_invites
from .normalizer import normalize_join, normalize_message
from .platform import DiscordPlatform, Platform
from .relay import RelayOrchestrator


__all__ = [
    "CooldownGovernor",
    "DeliveryClient",
    "Delivered",
    "RejectedByServer",
    "TransportFailure",
    "InviteAttributionCache",
    "diff_invites",
    "normalize_join",
    "normalize_message",
    "DiscordPlatform",
    "Platform",
    "RelayOrchestrator",
]
