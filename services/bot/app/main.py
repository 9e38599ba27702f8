"""Process bootstrap: keep-alive server plus Discord bot on one event loop.

Startup rules:
- ``DISCORD_BOT_TOKEN`` missing: fatal, nothing is started (exit status 1).
- ``GEMINI_API_KEY`` missing: warning only; the bot starts and every
  ``!loot`` replies with a configuration error.

The keep-alive server defines the process lifetime. The Discord client runs
next to it; if the client stops (bad token, gateway failure) the server keeps
answering ``/ping``.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from shared.settings import Settings
from shared.tracing import configure_logging

from services.keepalive.app.main import KeepAliveServer
from services.synthesizer.app.main import ReportSynthesizer

from .client import DiscordService
from .commands import LootCommandHandler

logger = logging.getLogger(__name__)


class MissingBotTokenError(RuntimeError):
    """Raised at startup when no Discord bot token is configured."""


def check_startup_config(settings: Settings) -> None:
    """Validate secrets before anything is started."""
    if not settings.discord_bot_token:
        raise MissingBotTokenError(
            "DISCORD_BOT_TOKEN is missing. Check your .env file or environment variables."
        )
    if not settings.gemini_api_key:
        logger.warning(
            "GEMINI_API_KEY is missing. Loot reports will fail. Check your .env file."
        )


def _log_task_end(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Discord client stopped with an error", exc_info=exc)


async def run(settings: Settings) -> None:
    """Run the keep-alive server and the Discord bot until shutdown."""
    check_startup_config(settings)

    synthesizer = ReportSynthesizer(settings)
    handler = LootCommandHandler(synthesizer, prefix=settings.command_prefix)
    server = KeepAliveServer(settings.host, settings.port)
    bot = DiscordService(settings.discord_bot_token or "", handler)

    bot_task = asyncio.create_task(bot.start(), name="discord-bot")
    bot_task.add_done_callback(_log_task_end)
    try:
        await server.start()
    finally:
        server.stop()
        await bot.stop()
        if not bot_task.done():
            bot_task.cancel()
        await asyncio.gather(bot_task, return_exceptions=True)


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)
    try:
        asyncio.run(run(settings))
    except MissingBotTokenError as e:
        logger.critical("CRITICAL ERROR: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
