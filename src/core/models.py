"""
Invite Relay - Core Data Models
===============================

Typed platform events, invite listings and attribution results.

DESIGN:
    The Discord cogs translate gateway objects into these plain dataclasses
    before anything else sees them, so the cache, governor, normalizer and
    orchestrator never touch discord.py types and can be tested with
    hand-built events.

Author: Invite Relay maintainers
Project: invite-relay
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Union


# =============================================================================
# Invites
# =============================================================================

@dataclass(frozen=True)
class InviteRecord:
    """One invite from a community's listing."""
    code: str
    uses: int
    inviter_name: Optional[str] = None


InviteSnapshot = Mapping[str, int]
"""Read-only invite code -> use-count mapping for one community."""


def snapshot_from(invites: Iterable[InviteRecord]) -> InviteSnapshot:
    """Build a read-only snapshot from an invite listing."""
    return MappingProxyType({invite.code: max(invite.uses or 0, 0) for invite in invites})


# =============================================================================
# Attribution
# =============================================================================

@dataclass(frozen=True)
class Attributed:
    """The join was caused by this invite."""
    code: str
    inviter_name: Optional[str] = None


@dataclass(frozen=True)
class Unknown:
    """No invite could be identified for the join."""
    code: None = None
    inviter_name: None = None


UNKNOWN = Unknown()

AttributionResult = Union[Attributed, Unknown]


# =============================================================================
# Platform Events
# =============================================================================

@dataclass(frozen=True)
class MemberJoined:
    """A member joined a community."""
    member_id: int
    username: str
    community_id: int
    community_name: str
    joined_at: datetime
    discriminator: Optional[str] = None


@dataclass(frozen=True)
class AuthorInfo:
    id: int
    username: str
    display_name: str
    avatar_url: str
    is_bot: bool = False


@dataclass(frozen=True)
class ChannelInfo:
    id: int
    name: str


@dataclass(frozen=True)
class CommunityInfo:
    id: int
    name: str


@dataclass(frozen=True)
class AttachmentInfo:
    id: int
    filename: str
    url: str
    size: int


@dataclass(frozen=True)
class MentionInfo:
    id: int
    username: str


@dataclass(frozen=True)
class MessageCreated:
    """
    A message was posted.

    community is None for messages outside any community (direct messages);
    such events cannot be normalized.
    """
    message_id: int
    content: str
    author: AuthorInfo
    channel: ChannelInfo
    community: Optional[CommunityInfo]
    created_at: datetime
    url: str
    attachments: List[AttachmentInfo] = field(default_factory=list)
    mentioned_users: List[MentionInfo] = field(default_factory=list)
    mentions_everyone: bool = False


@dataclass(frozen=True)
class InviteCreated:
    community_id: int


@dataclass(frozen=True)
class InviteDeleted:
    community_id: int


PlatformEvent = Union[MemberJoined, MessageCreated, InviteCreated, InviteDeleted]


__all__ = [
    "InviteRecord",
    "InviteSnapshot",
    "snapshot_from",
    "Attributed",
    "Unknown",
    "UNKNOWN",
    "AttributionResult",
    "MemberJoined",
    "AuthorInfo",
    "ChannelInfo",
    "CommunityInfo",
    "AttachmentInfo",
    "MentionInfo",
    "MessageCreated",
    "InviteCreated",
    "InviteDeleted",
    "PlatformEvent",
]
