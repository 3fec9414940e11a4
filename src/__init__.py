"""
Invite Relay - Source Package
=============================

Discord -> automation webhook relay with invite attribution.

Package Structure:
- bot.py: Discord client that feeds the relay
- core/: Configuration, logging, models, payloads and errors
- events/: Gateway event cogs producing typed relay events
- services/: Invite cache, cooldown governor, normalizer, delivery, orchestrator
- utils/: Error handling helpers

Author: Invite Relay maintainers
Project: invite-relay
Version: v1.0.0
"""
