"""
Invite Relay - Cooldown Governor
================================

Per-author throttle for message forwarding.

DESIGN:
    One entry per author: the time (ms) of their last forwarded message.
    A message is admitted when the author has no entry or the gap since
    that entry is at least the cooldown window. Dropped messages leave the
    entry untouched, so a chatty author is not locked out indefinitely.

    admit() and sweep() never await, so under asyncio they cannot
    interleave with each other and hold the event loop only for a dict
    operation or one pass over the entries.

    Time is always passed in, never read here, so tests drive the governor
    with plain integers. A clock that jumps backwards yields a negative
    elapsed time, which is simply "still inside the window".

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
import time
from typing import Callable, Dict, Optional

from src.core.constants import (
    COOLDOWN_RETENTION_MS,
    COOLDOWN_SWEEP_INTERVAL_MS,
    COOLDOWN_WINDOW_MS,
    MS_PER_SECOND,
)
from src.core.logger import logger


Clock = Callable[[], int]
"""Returns the current time in milliseconds."""


def wall_clock_ms() -> int:
    return int(time.time() * MS_PER_SECOND)


# =============================================================================
# Cooldown Governor
# =============================================================================

class CooldownGovernor:
    """
    Tracks last-forwarded timestamps and decides admit/drop.

    Attributes:
        window_ms: Minimum gap between two forwarded messages per author.
        retention_ms: Entries idle longer than this are swept.
        sweep_interval_ms: Cadence of the background sweep.
    """

    def __init__(
        self,
        window_ms: int = COOLDOWN_WINDOW_MS,
        retention_ms: int = COOLDOWN_RETENTION_MS,
        sweep_interval_ms: int = COOLDOWN_SWEEP_INTERVAL_MS,
    ) -> None:
        self.window_ms = window_ms
        self.retention_ms = retention_ms
        self.sweep_interval_ms = sweep_interval_ms
        self._entries: Dict[int, int] = {}
        self.task: Optional[asyncio.Task] = None
        self.running: bool = False

    def __len__(self) -> int:
        return len(self._entries)

    def last_forwarded(self, user_id: int) -> Optional[int]:
        return self._entries.get(user_id)

    # =========================================================================
    # Admission
    # =========================================================================

    def admit(self, user_id: int, now_ms: int) -> bool:
        """
        Decide whether a message from user_id may be forwarded at now_ms.

        Returns:
            True (and records now_ms) when admitted, False otherwise.
        """
        last = self._entries.get(user_id)
        if last is not None and now_ms - last < self.window_ms:
            return False

        self._entries[user_id] = now_ms
        return True

    def sweep(self, now_ms: int) -> int:
        """
        Evict entries last touched more than retention_ms before now_ms.

        Returns:
            Number of entries removed.
        """
        stale = [
            user_id for user_id, last in self._entries.items()
            if now_ms - last > self.retention_ms
        ]
        for user_id in stale:
            del self._entries[user_id]
        return len(stale)

    # =========================================================================
    # Sweep Loop
    # =========================================================================

    def start(self, clock: Clock = wall_clock_ms) -> None:
        """Start the background sweep task (restarts it if already running)."""
        if self.task and not self.task.done():
            self.task.cancel()

        self.running = True
        self.task = asyncio.create_task(self._sweep_loop(clock))

        logger.tree("Cooldown Governor Started", [
            ("Window", f"{self.window_ms // MS_PER_SECOND}s"),
            ("Retention", f"{self.retention_ms // MS_PER_SECOND}s"),
            ("Sweep Interval", f"{self.sweep_interval_ms // MS_PER_SECOND}s"),
        ], emoji="⏱️")

    async def stop(self) -> None:
        self.running = False

        if self.task and not self.task.done():
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass

        logger.info("Cooldown Governor Stopped")

    async def _sweep_loop(self, clock: Clock) -> None:
        while self.running:
            try:
                await asyncio.sleep(self.sweep_interval_ms / MS_PER_SECOND)
                removed = self.sweep(clock())
                if removed:
                    logger.debug(f"Cooldown sweep removed {removed} entries ({len(self)} left)")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Cooldown Sweep Error", [
                    ("Error", str(e)[:100]),
                ])


__all__ = [
    "Clock",
    "wall_clock_ms",
    "CooldownGovernor",
]
