"""
Invite Relay - Message Events
=============================

Turns gateway messages into MessageCreated events for the relay.

DESIGN:
    The cog forwards only messages from the monitored channel; bot and
    cooldown filtering happen in the orchestrator so they are covered by
    the same tests as the rest of the pipeline.

Author: Invite Relay maintainers
Project: invite-relay
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from src.core.models import (
    AttachmentInfo,
    AuthorInfo,
    ChannelInfo,
    CommunityInfo,
    MentionInfo,
    MessageCreated,
)
from src.core.logger import logger
from src.utils.error_handler import safe_execute

if TYPE_CHECKING:
    from src.bot import RelayBot


def message_created_from(message: discord.Message) -> MessageCreated:
    """Build a MessageCreated event from a discord.py message."""
    author = message.author
    channel_name = getattr(message.channel, "name", None) or "direct-message"
    community = CommunityInfo(id=message.guild.id, name=message.guild.name) if message.guild else None

    return MessageCreated(
        message_id=message.id,
        content=message.content,
        author=AuthorInfo(
            id=author.id,
            username=author.name,
            display_name=author.display_name,
            avatar_url=author.display_avatar.url,
            is_bot=author.bot,
        ),
        channel=ChannelInfo(id=message.channel.id, name=channel_name),
        community=community,
        created_at=message.created_at,
        url=message.jump_url,
        attachments=[
            AttachmentInfo(id=a.id, filename=a.filename, url=a.url, size=a.size)
            for a in message.attachments
        ],
        mentioned_users=[MentionInfo(id=u.id, username=u.name) for u in message.mentions],
        mentions_everyone=message.mention_everyone,
    )


class MessageEvents(commands.Cog):
    """Message event handlers."""

    def __init__(self, bot: "RelayBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    @safe_execute("events.on_message")
    async def on_message(self, message: discord.Message) -> None:
        if message.channel.id != self.bot.config.monitored_channel_id:
            return
        self.bot.orchestrator.submit(message_created_from(message))


async def setup(bot: "RelayBot") -> None:
    """Add the message events cog to the bot."""
    await bot.add_cog(MessageEvents(bot))
    logger.debug("Message Events Loaded")
