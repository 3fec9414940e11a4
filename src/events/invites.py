"""
Invite Relay - Invite Events
============================

Invite create/delete events trigger a snapshot refresh for their guild.

Author: Invite Relay maintainers
Project: invite-relay
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from src.core.logger import logger
from src.core.models import InviteCreated, InviteDeleted

if TYPE_CHECKING:
    from src.bot import RelayBot


class InviteEvents(commands.Cog):
    """Invite event handlers."""

    def __init__(self, bot: "RelayBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_invite_create(self, invite: discord.Invite) -> None:
        # Invites to group DMs have no guild
        if not isinstance(invite.guild, discord.Guild):
            return
        logger.debug(f"Invite {invite.code} created in {invite.guild.name}")
        self.bot.orchestrator.submit(InviteCreated(community_id=invite.guild.id))

    @commands.Cog.listener()
    async def on_invite_delete(self, invite: discord.Invite) -> None:
        if not isinstance(invite.guild, discord.Guild):
            return
        logger.debug(f"Invite {invite.code} deleted in {invite.guild.name}")
        self.bot.orchestrator.submit(InviteDeleted(community_id=invite.guild.id))


async def setup(bot: "RelayBot") -> None:
    """Add the invite events cog to the bot."""
    await bot.add_cog(InviteEvents(bot))
    logger.debug("Invite Events Loaded")
