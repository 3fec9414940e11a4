"""
Invite Relay - Member Events
============================

Turns member joins into MemberJoined events for the relay.

Author: Invite Relay maintainers
Project: invite-relay
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from src.core.logger import logger
from src.core.models import MemberJoined
from src.utils.error_handler import safe_execute

if TYPE_CHECKING:
    from src.bot import RelayBot


def member_joined_from(member: discord.Member) -> MemberJoined:
    """
    Build a MemberJoined event from a discord.py member.

    Users on Discord's unique-username system report discriminator "0";
    that is treated as no discriminator.
    """
    discriminator = member.discriminator if member.discriminator not in (None, "", "0") else None
    return MemberJoined(
        member_id=member.id,
        username=member.name,
        discriminator=discriminator,
        community_id=member.guild.id,
        community_name=member.guild.name,
        joined_at=member.joined_at or discord.utils.utcnow(),
    )


class MemberEvents(commands.Cog):
    """Member event handlers."""

    def __init__(self, bot: "RelayBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    @safe_execute("events.on_member_join")
    async def on_member_join(self, member: discord.Member) -> None:
        logger.tree("MEMBER JOINED", [
            ("User", f"{member} ({member.id})"),
            ("Guild", member.guild.name),
        ], emoji="📥")
        self.bot.orchestrator.submit(member_joined_from(member))

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        """Snapshot invites for a guild the bot was just added to."""
        logger.info(f"Joined guild {guild.name} ({guild.id})")
        await self.bot.orchestrator.cache.warm([guild.id])

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.info(f"Removed from guild {guild.name} ({guild.id})")
        self.bot.orchestrator.cache.forget(guild.id)


async def setup(bot: "RelayBot") -> None:
    """Add the member events cog to the bot."""
    await bot.add_cog(MemberEvents(bot))
    logger.debug("Member Events Loaded")
