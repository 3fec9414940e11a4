"""
Invite Relay - Platform Collaborator
====================================

The two Discord queries the relay core needs: list a community's invites
and add a role to a member.

DESIGN:
    The core depends on the Platform protocol only. DiscordPlatform is the
    production implementation on top of discord.py; tests supply fakes.
    Every call is bounded by a timeout and every failure is mapped into
    the relay's error taxonomy so callers never see discord.py exceptions.

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
from typing import TYPE_CHECKING, List, Protocol

import discord

from src.core.constants import FETCH_TIMEOUT, ROLE_GRANT_TIMEOUT
from src.core.errors import FetchError, RoleGrantFailure
from src.core.models import InviteRecord

if TYPE_CHECKING:
    from src.bot import RelayBot


# =============================================================================
# Protocol
# =============================================================================

class Platform(Protocol):
    """Chat-platform operations consumed by the relay core."""

    async def list_invites(self, community_id: int) -> List[InviteRecord]:
        """Return the community's invites in listing order. Raises FetchError."""
        ...

    async def grant_role(self, community_id: int, member_id: int, role_id: int) -> None:
        """Add a role to a member. Raises RoleGrantFailure."""
        ...

    def community_ids(self) -> List[int]:
        """IDs of every community the bot is currently a member of."""
        ...


# =============================================================================
# Discord Implementation
# =============================================================================

class DiscordPlatform:
    """Platform backed by a connected discord.py client."""

    def __init__(
        self,
        bot: "RelayBot",
        fetch_timeout: float = FETCH_TIMEOUT,
        role_grant_timeout: float = ROLE_GRANT_TIMEOUT,
    ) -> None:
        self.bot = bot
        self.fetch_timeout = fetch_timeout
        self.role_grant_timeout = role_grant_timeout

    def community_ids(self) -> List[int]:
        return [guild.id for guild in self.bot.guilds]

    async def list_invites(self, community_id: int) -> List[InviteRecord]:
        guild = self.bot.get_guild(community_id)
        if guild is None:
            raise FetchError(community_id, "guild not in client cache")

        try:
            invites = await asyncio.wait_for(guild.invites(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            raise FetchError(community_id, f"timed out after {self.fetch_timeout}s")
        except discord.Forbidden:
            raise FetchError(community_id, "missing Manage Server permission")
        except discord.HTTPException as e:
            raise FetchError(community_id, f"HTTP {e.status}: {e.text or e}")

        return [
            InviteRecord(
                code=invite.code,
                uses=invite.uses or 0,
                inviter_name=invite.inviter.name if invite.inviter else None,
            )
            for invite in invites
        ]

    async def grant_role(self, community_id: int, member_id: int, role_id: int) -> None:
        guild = self.bot.get_guild(community_id)
        if guild is None:
            raise RoleGrantFailure(member_id, role_id, "guild not in client cache")

        try:
            member = guild.get_member(member_id)
            if member is None:
                member = await asyncio.wait_for(
                    guild.fetch_member(member_id), timeout=self.role_grant_timeout
                )
            await asyncio.wait_for(
                member.add_roles(discord.Object(id=role_id), reason="Default role on join"),
                timeout=self.role_grant_timeout,
            )
        except asyncio.TimeoutError:
            raise RoleGrantFailure(member_id, role_id, f"timed out after {self.role_grant_timeout}s")
        except discord.NotFound:
            raise RoleGrantFailure(member_id, role_id, "member or role not found")
        except discord.Forbidden:
            raise RoleGrantFailure(member_id, role_id, "missing Manage Roles permission or role above bot")
        except discord.HTTPException as e:
            raise RoleGrantFailure(member_id, role_id, f"HTTP {e.status}: {e.text or e}")


__all__ = [
    "Platform",
    "DiscordPlatform",
]
