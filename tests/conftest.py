"""
Invite Relay - Test Fixtures
============================

Shared fixtures and fakes for all tests.
"""

import asyncio
import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Keep test log files out of the working tree
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="relay-test-logs-"))

from src.core.config import Config
from src.core.errors import FetchError, RoleGrantFailure
from src.core.models import (
    AttachmentInfo,
    AuthorInfo,
    ChannelInfo,
    CommunityInfo,
    InviteRecord,
    MemberJoined,
    MentionInfo,
    MessageCreated,
)
from src.services.delivery import Delivered


COMMUNITY_ID = 987654321
MONITORED_CHANNEL_ID = 555666777
DEFAULT_ROLE_ID = 111222333


# =============================================================================
# Fakes
# =============================================================================

class FakePlatform:
    """
    In-memory Platform.

    listings: community id -> queue of invite listings. Each list_invites()
    call pops the next listing; the last one is sticky.
    """

    def __init__(self) -> None:
        self.listings: Dict[int, List[List[InviteRecord]]] = {}
        self.fetch_delays: List[float] = []
        self.fail_fetch: bool = False
        self.fail_grant: bool = False
        self.fetch_calls: List[int] = []
        self.grants: List[tuple] = []
        self.communities: List[int] = [COMMUNITY_ID]

    def set_listing(self, community_id: int, *listings: List[InviteRecord]) -> None:
        self.listings[community_id] = [list(listing) for listing in listings]

    def community_ids(self) -> List[int]:
        return list(self.communities)

    async def list_invites(self, community_id: int) -> List[InviteRecord]:
        self.fetch_calls.append(community_id)
        delay = self.fetch_delays.pop(0) if self.fetch_delays else 0
        await asyncio.sleep(delay)
        if self.fail_fetch:
            raise FetchError(community_id, "missing Manage Server permission")
        queue = self.listings.get(community_id, [[]])
        return queue.pop(0) if len(queue) > 1 else list(queue[0])

    async def grant_role(self, community_id: int, member_id: int, role_id: int) -> None:
        if self.fail_grant:
            raise RoleGrantFailure(member_id, role_id, "missing Manage Roles permission")
        self.grants.append((community_id, member_id, role_id))


class FakeDelivery:
    """Records payloads instead of posting them."""

    def __init__(self, outcome=None) -> None:
        self.outcome = outcome or Delivered(200)
        self.payloads: List = []
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def deliver(self, payload):
        self.payloads.append(payload)
        return self.outcome


class ManualClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


# =============================================================================
# Builders
# =============================================================================

def make_join(member_id: int = 123456789, community_id: int = COMMUNITY_ID) -> MemberJoined:
    return MemberJoined(
        member_id=member_id,
        username="newcomer",
        discriminator=None,
        community_id=community_id,
        community_name="Test Server",
        joined_at=datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
    )


def make_message(
    message_id: int = 424242,
    author_id: int = 123456789,
    content: str = "hello world",
    channel_id: int = MONITORED_CHANNEL_ID,
    community: Optional[CommunityInfo] = CommunityInfo(id=COMMUNITY_ID, name="Test Server"),
    is_bot: bool = False,
) -> MessageCreated:
    return MessageCreated(
        message_id=message_id,
        content=content,
        author=AuthorInfo(
            id=author_id,
            username="testuser",
            display_name="Test User",
            avatar_url="https://example.com/avatar.png",
            is_bot=is_bot,
        ),
        channel=ChannelInfo(id=channel_id, name="announcements"),
        community=community,
        created_at=datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc),
        url=f"https://discord.com/channels/{COMMUNITY_ID}/{channel_id}/{message_id}",
        attachments=[
            AttachmentInfo(id=9001, filename="report.pdf", url="https://cdn.example.com/report.pdf", size=2048),
        ],
        mentioned_users=[MentionInfo(id=222, username="friend")],
        mentions_everyone=False,
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config():
    """Relay config pointing at a fake sink."""
    return Config(
        platform_token="test-token-abcd",
        monitored_channel_id=MONITORED_CHANNEL_ID,
        webhook_url="http://sink.test/webhook",
        default_role_id=DEFAULT_ROLE_ID,
    )


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def orchestrator(config, platform, delivery, clock):
    """Orchestrator wired to fakes (not started)."""
    from src.services.relay import RelayOrchestrator
    return RelayOrchestrator(config, platform, delivery=delivery, clock=clock)
