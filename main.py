#!/usr/bin/env python3
"""
Invite Relay - Entry Point
==========================

Discord -> automation webhook relay.

Features:
- Invite attribution on member join
- Default role grant on member join
- Monitored-channel message forwarding with per-author cooldown
- Graceful shutdown on SIGINT/SIGTERM

Author: Invite Relay maintainers
Project: invite-relay
"""

import asyncio
import signal
import sys
from typing import Any, Dict

from dotenv import load_dotenv

from src.core.config import ConfigValidationError, validate_and_log_config
from src.core.logger import logger
from src.utils.error_handler import ErrorHandler


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Event loop exception handler: log async errors nobody awaited."""
    exc = context.get("exception")
    if exc is not None:
        ErrorHandler.handle(exc, location="asyncio.unhandled", message=context.get("message", ""))
    else:
        logger.error("Unhandled Async Error", [("Message", str(context.get("message")))])


async def main() -> int:
    """
    Run the relay until a shutdown signal or a fatal error.

    Returns:
        Process exit code.
    """
    load_dotenv()

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [
            ("Error", str(e)),
            ("Missing", ", ".join(e.missing) if e.missing else "None"),
        ])
        return 1

    if config.error_webhook_url:
        logger.set_webhook(config.error_webhook_url)

    from src.bot import RelayBot
    bot = RelayBot(config)

    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_log_unhandled)

    def _request_shutdown(sig: signal.Signals) -> None:
        logger.info(f"🛑 Received {sig.name}, shutting down")
        loop.create_task(bot.close())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown, sig)
        except NotImplementedError:
            pass  # Windows: KeyboardInterrupt handles Ctrl+C

    try:
        await bot.start(config.platform_token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        await bot.close()
        return 1

    return 0


def run() -> None:
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Relay stopped by user (Ctrl+C)")
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
