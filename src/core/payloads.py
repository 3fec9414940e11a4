"""
Invite Relay - Canonical Payload Models
=======================================

JSON bodies posted to the automation webhook.

DESIGN:
    Field names are snake_case in Python and camelCase on the wire via
    aliases; always serialize with to_json_dict(). IDs are strings because
    Discord snowflakes overflow JavaScript numbers on the n8n side.

Author: Invite Relay maintainers
Project: invite-relay
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.core.constants import EVENT_MEMBER_JOIN, EVENT_MESSAGE_CREATE


# =============================================================================
# Base
# =============================================================================

class CanonicalModel(BaseModel):
    """Base for wire models: immutable, populated by field name."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump with wire aliases and JSON-safe values (ISO-8601 datetimes)."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Join Payload
# =============================================================================

class JoinPayload(CanonicalModel):
    """Member join with invite attribution."""

    event: str = EVENT_MEMBER_JOIN
    user_id: str = Field(alias="userId")
    username: str
    discriminator: str = ""
    invite_code: Optional[str] = Field(default=None, alias="inviteCode")
    inviter: Optional[str] = None
    joined_at: datetime = Field(alias="joinedAt")
    guild_id: str = Field(alias="guildId")
    guild_name: str = Field(alias="guildName")


# =============================================================================
# Message Payload
# =============================================================================

class AuthorPayload(CanonicalModel):
    id: str
    username: str
    display_name: str = Field(alias="displayName")
    avatar: str


class ChannelPayload(CanonicalModel):
    id: str
    name: str


class GuildPayload(CanonicalModel):
    id: str
    name: str


class AttachmentPayload(CanonicalModel):
    id: str
    name: str
    url: str
    size: int


class UserMentionPayload(CanonicalModel):
    id: str
    username: str


class MentionsPayload(CanonicalModel):
    users: List[UserMentionPayload] = Field(default_factory=list)
    everyone: bool = False
    here: bool = False


class MessagePayload(CanonicalModel):
    """Message forwarded from the monitored channel."""

    event: str = EVENT_MESSAGE_CREATE
    id: str
    content: str
    author: AuthorPayload
    channel: ChannelPayload
    guild: GuildPayload
    timestamp: datetime
    url: str
    attachments: List[AttachmentPayload] = Field(default_factory=list)
    mentions: MentionsPayload = Field(default_factory=MentionsPayload)


CanonicalPayload = Union[JoinPayload, MessagePayload]


__all__ = [
    "CanonicalModel",
    "JoinPayload",
    "AuthorPayload",
    "ChannelPayload",
    "GuildPayload",
    "AttachmentPayload",
    "UserMentionPayload",
    "MentionsPayload",
    "MessagePayload",
    "CanonicalPayload",
]
