"""
Invite Relay - Event Normalizer
===============================

Pure mapping from typed platform events to canonical webhook payloads.

Author: Invite Relay maintainers
Project: invite-relay
"""

from src.core.constants import HERE_MENTION
from src.core.errors import MalformedEventError
from src.core.models import AttributionResult, MemberJoined, MessageCreated
from src.core.payloads import (
    AttachmentPayload,
    AuthorPayload,
    ChannelPayload,
    GuildPayload,
    JoinPayload,
    MentionsPayload,
    MessagePayload,
    UserMentionPayload,
)


def mentions_here(content: str) -> bool:
    """
    True when the literal text "@here" appears anywhere in content.

    Substring match on the raw text, not Discord's mention flags: any
    "@here" counts, including inside code blocks or longer words.
    """
    return HERE_MENTION in (content or "")


def normalize_join(event: MemberJoined, attribution: AttributionResult) -> JoinPayload:
    return JoinPayload(
        user_id=str(event.member_id),
        username=event.username,
        discriminator=event.discriminator or "",
        invite_code=attribution.code,
        inviter=attribution.inviter_name,
        joined_at=event.joined_at,
        guild_id=str(event.community_id),
        guild_name=event.community_name,
    )


def normalize_message(event: MessageCreated) -> MessagePayload:
    """
    Build the message payload.

    Raises:
        MalformedEventError: The message has no owning community (e.g. a DM).
    """
    if event.community is None:
        raise MalformedEventError(
            f"Message {event.message_id} in channel {event.channel.id} has no owning community"
        )

    return MessagePayload(
        id=str(event.message_id),
        content=event.content,
        author=AuthorPayload(
            id=str(event.author.id),
            username=event.author.username,
            display_name=event.author.display_name,
            avatar=event.author.avatar_url,
        ),
        channel=ChannelPayload(id=str(event.channel.id), name=event.channel.name),
        guild=GuildPayload(id=str(event.community.id), name=event.community.name),
        timestamp=event.created_at,
        url=event.url,
        attachments=[
            AttachmentPayload(id=str(a.id), name=a.filename, url=a.url, size=a.size)
            for a in event.attachments
        ],
        mentions=MentionsPayload(
            users=[UserMentionPayload(id=str(u.id), username=u.username) for u in event.mentioned_users],
            everyone=event.mentions_everyone,
            here=mentions_here(event.content),
        ),
    )


__all__ = [
    "mentions_here",
    "normalize_join",
    "normalize_message",
]
