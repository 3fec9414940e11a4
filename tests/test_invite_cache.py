"""
Invite Relay - Invite Attribution Cache Tests
=============================================

Diffing rules, snapshot replacement and last-known-good behaviour.
"""

import asyncio

import pytest

from conftest import COMMUNITY_ID, FakePlatform
from src.core.errors import FetchError
from src.core.models import UNKNOWN, Attributed, InviteRecord, snapshot_from
from src.services.invite_cache import InviteAttributionCache, diff_invites


def listing(**uses):
    return [InviteRecord(code=code, uses=count, inviter_name=f"{code}-owner") for code, count in uses.items()]


# =============================================================================
# diff_invites() Tests
# =============================================================================

class TestDiffInvites:
    """Tests for the pure diffing function."""

    @pytest.mark.parametrize("increment", [1, 2, 7, 1000])
    def test_single_increment_is_attributed_regardless_of_size(self, increment):
        prior = snapshot_from(listing(abc=5, xyz=2))
        current = listing(abc=5, xyz=2 + increment)
        assert diff_invites(prior, current) == Attributed("xyz", "xyz-owner")

    def test_no_increase_is_unknown(self):
        prior = snapshot_from(listing(abc=5, xyz=2))
        assert diff_invites(prior, listing(abc=5, xyz=2)) is UNKNOWN

    def test_decrease_is_not_attributed(self):
        prior = snapshot_from(listing(abc=5, xyz=2))
        assert diff_invites(prior, listing(abc=4, xyz=2)) is UNKNOWN

    def test_missing_prior_is_unknown(self):
        assert diff_invites(None, listing(abc=6)) is UNKNOWN

    def test_deleted_code_is_never_attributed(self):
        prior = snapshot_from(listing(abc=5, single=0))
        # "single" was consumed and deleted; nothing else moved
        assert diff_invites(prior, listing(abc=5)) is UNKNOWN

    def test_new_code_absent_from_prior_is_skipped(self):
        prior = snapshot_from(listing(abc=5))
        assert diff_invites(prior, listing(abc=5, fresh=1)) is UNKNOWN

    def test_first_match_in_listing_order_wins(self):
        prior = snapshot_from(listing(abc=5, xyz=2))
        # Both went up; xyz by more, but abc is listed first
        current = listing(abc=6, xyz=9)
        assert diff_invites(prior, current).code == "abc"

    def test_listing_order_not_snapshot_order(self):
        prior = snapshot_from(listing(abc=5, xyz=2))
        current = [
            InviteRecord("xyz", 3, "xyz-owner"),
            InviteRecord("abc", 6, "abc-owner"),
        ]
        assert diff_invites(prior, current).code == "xyz"

    def test_inviter_may_be_unknown(self):
        prior = snapshot_from([InviteRecord("vanity", 10)])
        result = diff_invites(prior, [InviteRecord("vanity", 11)])
        assert result == Attributed("vanity", None)


# =============================================================================
# InviteAttributionCache Tests
# =============================================================================

class TestRefresh:
    """Tests for snapshot refresh."""

    @pytest.mark.asyncio
    async def test_refresh_stores_snapshot(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5, xyz=2))
        cache = InviteAttributionCache(platform)

        await cache.refresh(COMMUNITY_ID)

        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 5, "xyz": 2}
        assert cache.has_snapshot(COMMUNITY_ID)

    @pytest.mark.asyncio
    async def test_refresh_replaces_instead_of_merging(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5, xyz=2), listing(abc=5))
        cache = InviteAttributionCache(platform)

        await cache.refresh(COMMUNITY_ID)
        await cache.refresh(COMMUNITY_ID)

        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 5}

    @pytest.mark.asyncio
    async def test_snapshot_is_read_only(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5))
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        with pytest.raises(TypeError):
            cache.snapshot(COMMUNITY_ID)["abc"] = 99

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_last_known_good(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5))
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        platform.fail_fetch = True
        with pytest.raises(FetchError):
            await cache.refresh(COMMUNITY_ID)

        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 5}

    @pytest.mark.asyncio
    async def test_unexpected_collaborator_error_becomes_fetch_error(self):
        class BrokenPlatform(FakePlatform):
            async def list_invites(self, community_id):
                raise RuntimeError("socket closed")

        cache = InviteAttributionCache(BrokenPlatform())
        with pytest.raises(FetchError) as exc_info:
            await cache.refresh(COMMUNITY_ID)
        assert exc_info.value.community_id == COMMUNITY_ID

    @pytest.mark.asyncio
    async def test_warm_continues_past_failures(self):
        class PartlyBroken(FakePlatform):
            async def list_invites(self, community_id):
                if community_id == 2:
                    raise FetchError(community_id, "forbidden")
                return listing(abc=1)

        cache = InviteAttributionCache(PartlyBroken())
        cached = await cache.warm([1, 2, 3])

        assert cached == 2
        assert cache.has_snapshot(1)
        assert not cache.has_snapshot(2)
        assert cache.has_snapshot(3)

    @pytest.mark.asyncio
    async def test_forget_drops_snapshot(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5))
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        cache.forget(COMMUNITY_ID)
        assert cache.snapshot(COMMUNITY_ID) is None


class TestAttribution:
    """Tests for attribute() and attribute_join()."""

    @pytest.mark.asyncio
    async def test_attribute_uses_caller_snapshot_and_leaves_store_alone(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5, xyz=3))
        cache = InviteAttributionCache(platform)

        prior = snapshot_from(listing(abc=5, xyz=2))
        result = await cache.attribute(COMMUNITY_ID, prior)

        assert result == Attributed("xyz", "xyz-owner")
        assert cache.snapshot(COMMUNITY_ID) is None

    @pytest.mark.asyncio
    async def test_attribute_join_diffs_then_refreshes(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5, xyz=2), listing(abc=5, xyz=3))
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        result = await cache.attribute_join(COMMUNITY_ID)

        assert result == Attributed("xyz", "xyz-owner")
        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 5, "xyz": 3}
        assert len(platform.fetch_calls) == 2

    @pytest.mark.asyncio
    async def test_attribute_join_without_prior_is_unknown_but_refreshes(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=6))
        cache = InviteAttributionCache(platform)

        assert await cache.attribute_join(COMMUNITY_ID) is UNKNOWN
        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 6}

    @pytest.mark.asyncio
    async def test_attribute_join_ignores_prior_when_told_to(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5), listing(abc=6))
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        assert await cache.attribute_join(COMMUNITY_ID, use_prior=False) is UNKNOWN
        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 6}

    @pytest.mark.asyncio
    async def test_attribute_join_fetch_failure_keeps_snapshot(self):
        platform = FakePlatform()
        platform.set_listing(COMMUNITY_ID, listing(abc=5))
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        platform.fail_fetch = True
        with pytest.raises(FetchError):
            await cache.attribute_join(COMMUNITY_ID)
        assert dict(cache.snapshot(COMMUNITY_ID)) == {"abc": 5}

    @pytest.mark.asyncio
    async def test_concurrent_refresh_cannot_split_capture_and_replace(self):
        """A refresh started during a join waits for the join to finish."""
        platform = FakePlatform()
        platform.set_listing(
            COMMUNITY_ID,
            listing(abc=5, xyz=2),   # initial refresh
            listing(abc=5, xyz=3),   # join's fetch
            listing(abc=5, xyz=3),   # concurrent refresh
        )
        cache = InviteAttributionCache(platform)
        await cache.refresh(COMMUNITY_ID)

        platform.fetch_delays = [0.05, 0]
        join = asyncio.create_task(cache.attribute_join(COMMUNITY_ID))
        refresh = asyncio.create_task(cache.refresh(COMMUNITY_ID))

        result, _ = await asyncio.gather(join, refresh)

        assert result == Attributed("xyz", "xyz-owner")
