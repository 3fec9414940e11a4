"""
Invite Relay - Invite Attribution Cache
=======================================

Per-community invite use-count snapshots and join attribution by diffing.

DESIGN:
    Discord does not say which invite a new member used, so the relay keeps
    the last known use-count of every invite and, on join, compares it with
    a fresh listing. The first invite (in listing order) whose count went
    up is the one that was used.

    - Snapshots are replaced wholesale, never merged, so deleted invites
      drop out on the next refresh.
    - Each community has its own asyncio.Lock. attribute_join() captures the
      prior snapshot, fetches once, diffs and installs the new snapshot
      while holding it, so a concurrent refresh can never slip between the
      capture and the replace.
    - A failed fetch leaves the stored snapshot untouched and raises
      FetchError; the caller proceeds with Unknown attribution.

    Known limitation: a single-use invite is deleted by Discord the moment
    it is consumed, so it is gone from the post-join listing and the join
    comes back Unknown. Nothing here tries to guess it.

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence

from src.core.errors import FetchError
from src.core.logger import logger
from src.core.models import (
    UNKNOWN,
    Attributed,
    AttributionResult,
    InviteRecord,
    InviteSnapshot,
    Unknown,
    snapshot_from,
)
from src.services.platform import Platform


# =============================================================================
# Diffing
# =============================================================================

def diff_invites(prior: Optional[InviteSnapshot], current: Sequence[InviteRecord]) -> AttributionResult:
    """
    Attribute a join by comparing a prior snapshot with the current listing.

    Only codes present in both are compared; the first one (in listing
    order) whose use-count strictly increased wins, whatever the size of
    the increase.

    Args:
        prior: Snapshot taken before the join, or None if there was none.
        current: Invite listing fetched after the join.

    Returns:
        Attributed(code, inviter_name) or UNKNOWN.
    """
    if prior is None:
        return UNKNOWN

    for invite in current:
        old_uses = prior.get(invite.code)
        if old_uses is None:
            continue
        if (invite.uses or 0) - old_uses > 0:
            return Attributed(code=invite.code, inviter_name=invite.inviter_name)

    return UNKNOWN


# =============================================================================
# Invite Attribution Cache
# =============================================================================

class InviteAttributionCache:
    """
    Memory-only store of invite snapshots keyed by community id.

    Attributes:
        platform: Collaborator that lists invites.
    """

    def __init__(self, platform: Platform) -> None:
        self.platform = platform
        self._snapshots: Dict[int, InviteSnapshot] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    # =========================================================================
    # Snapshot Access
    # =========================================================================

    def _lock_for(self, community_id: int) -> asyncio.Lock:
        lock = self._locks.get(community_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[community_id] = lock
        return lock

    def snapshot(self, community_id: int) -> Optional[InviteSnapshot]:
        """Current snapshot for a community, or None if never refreshed."""
        return self._snapshots.get(community_id)

    def has_snapshot(self, community_id: int) -> bool:
        return community_id in self._snapshots

    def forget(self, community_id: int) -> None:
        """Drop everything held for a community the bot has left."""
        self._snapshots.pop(community_id, None)
        self._locks.pop(community_id, None)

    async def _fetch(self, community_id: int) -> List[InviteRecord]:
        try:
            return list(await self.platform.list_invites(community_id))
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(community_id, f"{type(e).__name__}: {e}") from e

    # =========================================================================
    # Refresh
    # =========================================================================

    async def refresh(self, community_id: int) -> InviteSnapshot:
        """
        Replace a community's snapshot with a fresh listing.

        Raises:
            FetchError: Listing unavailable; the old snapshot is kept.
        """
        async with self._lock_for(community_id):
            invites = await self._fetch(community_id)
            snapshot = snapshot_from(invites)
            self._snapshots[community_id] = snapshot

        logger.debug(f"Invite snapshot refreshed for {community_id} ({len(snapshot)} invites)")
        return snapshot

    async def warm(self, community_ids: Iterable[int]) -> int:
        """
        Refresh every given community, logging failures without stopping.

        Returns:
            Number of communities successfully cached.
        """
        cached = 0
        total_invites = 0
        failed: List[str] = []

        for community_id in community_ids:
            try:
                snapshot = await self.refresh(community_id)
            except FetchError as e:
                failed.append(str(community_id))
                logger.warning("Invite Cache Warm Failed", [
                    ("Community", str(community_id)),
                    ("Reason", e.reason),
                ])
                continue
            cached += 1
            total_invites += len(snapshot)

        logger.tree("Invite Cache Warmed", [
            ("Communities", str(cached)),
            ("Invites Cached", str(total_invites)),
            ("Failed", ", ".join(failed) if failed else "None"),
        ], emoji="🔗")
        return cached

    # =========================================================================
    # Attribution
    # =========================================================================

    async def attribute(self, community_id: int, prior: Optional[InviteSnapshot]) -> AttributionResult:
        """
        Fetch the current listing and diff it against a caller-held snapshot.

        Does not touch the stored snapshot.

        Raises:
            FetchError: Listing unavailable.
        """
        current = await self._fetch(community_id)
        return diff_invites(prior, current)

    async def attribute_join(self, community_id: int, use_prior: bool = True) -> AttributionResult:
        """
        Attribute a join and refresh the snapshot in one locked step.

        Args:
            community_id: Community the member joined.
            use_prior: False when the community had no snapshot at the time
                the join was received; the result is then Unknown but the
                snapshot is still refreshed.

        Raises:
            FetchError: Listing unavailable; the stored snapshot is kept.
        """
        async with self._lock_for(community_id):
            prior = self._snapshots.get(community_id) if use_prior else None
            current = await self._fetch(community_id)
            self._snapshots[community_id] = snapshot_from(current)

        result = diff_invites(prior, current)

        if prior is not None and isinstance(result, Unknown):
            live_codes = {invite.code for invite in current}
            vanished = [code for code in prior if code not in live_codes]
            if vanished:
                logger.debug(
                    f"Join in {community_id} unattributed; invites gone since last snapshot: "
                    f"{', '.join(vanished)}"
                )

        return result


__all__ = [
    "diff_invites",
    "InviteAttributionCache",
]
