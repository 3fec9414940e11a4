"""
Invite Relay - Relay Orchestrator
=================================

Routes typed platform events through attribution, cooldown, normalization
and delivery.

DESIGN:
    Events arrive on a single asyncio.Queue and are dispatched in arrival
    order, one task per event, so a slow webhook or invite fetch never
    stalls the next event.

    Per event type:
    - MemberJoined: attribute (Unknown on FetchError or cold cache)
      -> normalize -> deliver -> grant default role. The role grant runs
      whatever the delivery outcome was.
    - MessageCreated: monitored channel + human author only -> cooldown
      admit (dropped messages stop here) -> normalize -> deliver.
    - InviteCreated / InviteDeleted: refresh the community snapshot. No
      payload is sent.

    Ordering: join and invite handlers take the community lock as their
    first await. Tasks start in creation order and asyncio.Lock wakes
    waiters FIFO, so snapshot refreshes for one community are applied in
    the order their events arrived.

    Failure containment: every handler runs inside a guard that logs and
    swallows anything it raises. Nothing is retried. Message and invite
    handlers are bounded by HANDLER_TIMEOUT as a whole. Join handlers are
    not: attribution (invite lock wait included) is bounded by
    ATTRIBUTION_TIMEOUT and degrades to Unknown, and delivery and the role
    grant carry their own timeouts, so a burst of joins queued behind one
    community lock is still relayed and still gets the role.

    Shutdown: events already accepted but still queued are dispatched by
    stop() and fall under the same SHUTDOWN_TIMEOUT as in-flight handlers.

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
from collections import Counter
from typing import Any, Awaitable, List, Optional, Set, Tuple, Union

from src.core.config import Config
from src.core.constants import ATTRIBUTION_TIMEOUT, HANDLER_TIMEOUT, SHUTDOWN_TIMEOUT
from src.core.errors import FetchError, MalformedEventError, RoleGrantFailure
from src.core.logger import logger
from src.core.models import (
    UNKNOWN,
    AttributionResult,
    InviteCreated,
    InviteDeleted,
    MemberJoined,
    MessageCreated,
    PlatformEvent,
)
from src.services.cooldown import Clock, CooldownGovernor, wall_clock_ms
from src.services.delivery import (
    Delivered,
    DeliveryClient,
    DeliveryOutcome,
    RejectedByServer,
)
from src.services.invite_cache import InviteAttributionCache
from src.services.normalizer import normalize_join, normalize_message
from src.services.platform import Platform
from src.utils.error_handler import ErrorHandler


# =============================================================================
# Relay Orchestrator
# =============================================================================

class RelayOrchestrator:
    """
    Owns the relay's state and the event dispatch loop.

    Attributes:
        config: Relay configuration.
        platform: Discord collaborator (invite listing, role grant).
        cache: Invite attribution cache.
        governor: Per-author cooldown governor.
        delivery: Webhook delivery client.
        stats: Running counters for the shutdown summary.
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(
        self,
        config: Config,
        platform: Platform,
        cache: Optional[InviteAttributionCache] = None,
        governor: Optional[CooldownGovernor] = None,
        delivery: Optional[DeliveryClient] = None,
        clock: Clock = wall_clock_ms,
        handler_timeout: float = HANDLER_TIMEOUT,
        attribution_timeout: float = ATTRIBUTION_TIMEOUT,
    ) -> None:
        self.config = config
        self.platform = platform
        self.cache = cache or InviteAttributionCache(platform)
        self.governor = governor or CooldownGovernor(window_ms=config.cooldown_window_ms)
        self.delivery = delivery or DeliveryClient(config.webhook_url, timeout=config.delivery_timeout)
        self.clock = clock
        self.handler_timeout = handler_timeout
        self.attribution_timeout = attribution_timeout

        self.stats: Counter = Counter()
        self.accepting: bool = True

        self._queue: "asyncio.Queue[PlatformEvent]" = asyncio.Queue()
        self._inflight: Set[asyncio.Task] = set()
        self._dispatcher: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the delivery session, the cooldown sweep and the dispatcher."""
        self.accepting = True
        await self.delivery.start()
        self.governor.start(self.clock)
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.create_task(self.run())

        logger.tree("Relay Started", [
            ("Monitored Channel", str(self.config.monitored_channel_id)),
            ("Default Role", str(self.config.default_role_id)),
            ("Handler Timeout", f"{self.handler_timeout}s"),
            ("Attribution Timeout", f"{self.attribution_timeout}s"),
        ], emoji="🚀")

    async def warm(self) -> int:
        """Snapshot invites for every community the bot is in."""
        return await self.cache.warm(self.platform.community_ids())

    async def stop(self) -> None:
        """
        Stop accepting events, let in-flight handlers finish, release resources.

        Handlers still running after SHUTDOWN_TIMEOUT are cancelled.
        """
        self.accepting = False

        if self._dispatcher and not self._dispatcher.done():
            self._dispatcher.cancel()
            try:
                await self._dispatcher
            except asyncio.CancelledError:
                pass

        flushed = self._flush_queue()
        if flushed:
            logger.info(f"Dispatched {flushed} queued events on shutdown")

        if self._inflight:
            done, pending = await asyncio.wait(set(self._inflight), timeout=SHUTDOWN_TIMEOUT)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                self.stats["cancelled_on_shutdown"] += len(pending)
                logger.warning(f"Cancelled {len(pending)} in-flight handlers on shutdown")

        await self.governor.stop()
        await self.delivery.close()

        logger.tree("Relay Stopped", [
            (key.replace("_", " ").title(), str(value)) for key, value in sorted(self.stats.items())
        ] or [("Events", "0")], emoji="🛑")

    # =========================================================================
    # Dispatch
    # =========================================================================

    def submit(self, event: PlatformEvent) -> bool:
        """
        Queue an event for handling. Never blocks.

        Returns:
            False if the relay is shutting down and the event was refused.
        """
        if not self.accepting:
            return False
        self._queue.put_nowait(event)
        return True

    async def run(self) -> None:
        """Dispatch loop: one handler task per event, in arrival order."""
        while True:
            event = await self._queue.get()
            try:
                self.dispatch(event)
            finally:
                self._queue.task_done()

    def _flush_queue(self) -> int:
        """Dispatch events accepted before stop() that the loop never picked up."""
        flushed = 0
        while not self._queue.empty():
            event = self._queue.get_nowait()
            try:
                self.dispatch(event)
            finally:
                self._queue.task_done()
            flushed += 1
        if flushed:
            self.stats["flushed_on_shutdown"] += flushed
        return flushed

    def dispatch(self, event: PlatformEvent) -> Optional[asyncio.Task]:
        """Start the handler task for one event and track it."""
        self.stats["received"] += 1
        timeout: Optional[float] = self.handler_timeout

        if isinstance(event, MemberJoined):
            # Readiness is judged when the join is received, not when its
            # handler gets the lock.
            coro = self.handle_join(event, use_prior=self.cache.has_snapshot(event.community_id))
            timeout = None
        elif isinstance(event, MessageCreated):
            coro = self.handle_message(event)
        elif isinstance(event, (InviteCreated, InviteDeleted)):
            coro = self.handle_invite_change(event)
        else:
            logger.warning(f"Ignoring unsupported event type: {type(event).__name__}")
            return None

        task = asyncio.create_task(self._guarded(coro, type(event).__name__, timeout))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def drain(self) -> None:
        """Wait until every queued and in-flight event has been handled."""
        await self._queue.join()
        while self._inflight:
            await asyncio.gather(*set(self._inflight), return_exceptions=True)

    async def _guarded(self, coro: Awaitable[Any], event_name: str, timeout: Optional[float]) -> Any:
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as e:
            self.stats["timed_out"] += 1
            ErrorHandler.handle(e, location=f"relay.{event_name}", timeout=f"{timeout}s")
        except Exception as e:
            self.stats["handler_errors"] += 1
            ErrorHandler.handle(e, location=f"relay.{event_name}")
        return None

    # =========================================================================
    # Join Handling
    # =========================================================================

    async def handle_join(self, event: MemberJoined, use_prior: bool = True) -> DeliveryOutcome:
        """
        Attribute, relay and grant the default role for a new member.

        Returns:
            The delivery outcome of the join payload.
        """
        attribution = await self._attribute(event, use_prior)
        payload = normalize_join(event, attribution)

        outcome = await self.delivery.deliver(payload)
        self._record_outcome(outcome, "Join", [
            ("User", f"{event.username} ({event.member_id})"),
            ("Community", event.community_name),
            ("Invite", attribution.code or "Unknown"),
            ("Inviter", attribution.inviter_name or "Unknown"),
        ])

        await self._grant_default_role(event)
        return outcome

    async def _attribute(self, event: MemberJoined, use_prior: bool) -> AttributionResult:
        try:
            return await asyncio.wait_for(
                self.cache.attribute_join(event.community_id, use_prior=use_prior),
                timeout=self.attribution_timeout,
            )
        except asyncio.TimeoutError as e:
            self.stats["attribution_timed_out"] += 1
            ErrorHandler.handle(
                e,
                location="relay.join.attribute",
                community=event.community_id,
                member=event.member_id,
                timeout=f"{self.attribution_timeout}s",
            )
            return UNKNOWN
        except FetchError as e:
            self.stats["attribution_failed"] += 1
            ErrorHandler.handle(
                e,
                location="relay.join.attribute",
                community=event.community_id,
                member=event.member_id,
            )
            return UNKNOWN

    async def _grant_default_role(self, event: MemberJoined) -> bool:
        role_id = self.config.default_role_id
        try:
            await asyncio.wait_for(
                self.platform.grant_role(event.community_id, event.member_id, role_id),
                timeout=self.config.role_grant_timeout,
            )
        except asyncio.TimeoutError:
            self.stats["role_grant_failed"] += 1
            ErrorHandler.handle(
                RoleGrantFailure(event.member_id, role_id, f"timed out after {self.config.role_grant_timeout}s"),
                location="relay.join.grant_role",
            )
            return False
        except RoleGrantFailure as e:
            self.stats["role_grant_failed"] += 1
            ErrorHandler.handle(e, location="relay.join.grant_role", member=event.username)
            return False

        self.stats["roles_granted"] += 1
        logger.debug(f"Default role {role_id} granted to {event.username} ({event.member_id})")
        return True

    # =========================================================================
    # Message Handling
    # =========================================================================

    def is_forwardable(self, event: MessageCreated) -> bool:
        """Only human messages in the monitored channel are relayed."""
        return event.channel.id == self.config.monitored_channel_id and not event.author.is_bot

    async def handle_message(self, event: MessageCreated) -> Optional[DeliveryOutcome]:
        """
        Relay a message if its author is outside the cooldown window.

        Returns:
            The delivery outcome, or None when the message was ignored,
            dropped by the cooldown, or malformed.
        """
        if not self.is_forwardable(event):
            return None

        if not self.governor.admit(event.author.id, self.clock()):
            self.stats["dropped_cooldown"] += 1
            logger.debug(f"Cooldown drop: message {event.message_id} from {event.author.username}")
            return None

        try:
            payload = normalize_message(event)
        except MalformedEventError as e:
            self.stats["malformed"] += 1
            ErrorHandler.handle(e, location="relay.message.normalize", message=event.message_id)
            return None

        outcome = await self.delivery.deliver(payload)
        self._record_outcome(outcome, "Message", [
            ("Author", f"{event.author.username} ({event.author.id})"),
            ("Channel", f"#{event.channel.name}"),
            ("Attachments", str(len(event.attachments))),
        ])
        return outcome

    # =========================================================================
    # Invite Handling
    # =========================================================================

    async def handle_invite_change(self, event: Union[InviteCreated, InviteDeleted]) -> bool:
        """Refresh the community snapshot after an invite was created or deleted."""
        try:
            await self.cache.refresh(event.community_id)
        except FetchError as e:
            self.stats["refresh_failed"] += 1
            ErrorHandler.handle(e, location=f"relay.{type(event).__name__}", community=event.community_id)
            return False
        self.stats["refreshed"] += 1
        return True

    # =========================================================================
    # Outcome Logging
    # =========================================================================

    def _record_outcome(self, outcome: DeliveryOutcome, kind: str, items: List[Tuple[str, str]]) -> None:
        if isinstance(outcome, Delivered):
            self.stats["delivered"] += 1
            logger.tree(f"{kind} Relayed", list(items) + [("Status", str(outcome.status))], emoji="📡")
            return

        if isinstance(outcome, RejectedByServer):
            self.stats["rejected"] += 1
            ErrorHandler.handle(
                outcome.as_error(),
                location=f"relay.{kind.lower()}.deliver",
                status=outcome.status,
                body=outcome.body,
            )
        else:
            self.stats["transport_failed"] += 1
            ErrorHandler.handle(outcome.as_error(), location=f"relay.{kind.lower()}.deliver")


__all__ = ["RelayOrchestrator"]
