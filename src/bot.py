"""
Invite Relay - Main Bot Class
=============================

Discord client that feeds gateway events into the relay orchestrator.

Features:
- Invite attribution for new members
- Default role grant on join
- Monitored-channel message forwarding with per-author cooldown
- JSON delivery to an automation webhook

Author: Invite Relay maintainers
Project: invite-relay
"""

from datetime import datetime

import discord
from discord.ext import commands

from src.core.config import Config
from src.core.logger import logger
from src.services.platform import DiscordPlatform
from src.services.relay import RelayOrchestrator


# =============================================================================
# RelayBot Class
# =============================================================================

class RelayBot(commands.Bot):
    """
    Discord client for the invite relay.

    DESIGN: Thin shell around RelayOrchestrator:
    - Event cogs translate gateway objects into typed events
    - The orchestrator owns the invite cache, cooldowns and delivery
    - Lifecycle (start, warm-up, shutdown) is driven from here

    STARTUP ORDER:
    1. setup_hook (before on_ready):
       - Event cog loading
       - Orchestrator start (dispatcher, cooldown sweep, HTTP session)

    2. on_ready:
       - Invite snapshot for every joined guild
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self, config: Config) -> None:
        self.config = config

        intents = discord.Intents.default()
        intents.members = True
        intents.invites = True
        intents.guild_messages = True
        intents.message_content = True

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.start_time: datetime = datetime.now()
        self.platform = DiscordPlatform(
            self,
            fetch_timeout=config.fetch_timeout,
            role_grant_timeout=config.role_grant_timeout,
        )
        self.orchestrator = RelayOrchestrator(config, self.platform)

        # Ready state guard
        self._ready_initialized: bool = False
        self._closing: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load event cogs and start the relay before on_ready."""
        from src.events import EVENT_COGS
        for cog in EVENT_COGS:
            await self.load_extension(cog)
            logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")

        await self.orchestrator.start()

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        """Snapshot invites once the guild list is known."""
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
        ], emoji="🚀")

        await self.orchestrator.warm()

        logger.tree("RELAY READY", [
            ("Invite Snapshots", str(len([g for g in self.guilds if self.orchestrator.cache.has_snapshot(g.id)]))),
            ("Monitored Channel", str(self.config.monitored_channel_id)),
            ("Webhook", self.config.webhook_url.split("?")[0]),
        ], emoji="🔥")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Stop the relay, then release the gateway connection."""
        if self._closing:
            return
        self._closing = True

        logger.info("Initiating Graceful Shutdown")
        await self.orchestrator.stop()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["RelayBot"]
