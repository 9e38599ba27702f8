"""discord.py wiring for the loot bot.

``LootBot`` is a thin ``discord.Client`` that forwards every message to a
:class:`LootCommandHandler`. ``DiscordService`` owns the client's lifecycle
(``start``/``stop``) so the bootstrap can run it next to the keep-alive
server and shut both down together.
"""

from __future__ import annotations

import logging

import discord

from .commands import LootCommandHandler

logger = logging.getLogger(__name__)


def build_intents() -> discord.Intents:
    """Guild + guild message events, plus message content for ``!`` commands."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


class LootBot(discord.Client):
    def __init__(
        self, handler: LootCommandHandler, *, intents: discord.Intents | None = None
    ) -> None:
        super().__init__(intents=intents or build_intents())
        self.handler = handler

    async def on_ready(self) -> None:
        logger.info("Discord bot logged in as: %s", self.user)

    async def on_message(self, message: discord.Message) -> None:
        await self.handler.handle_message(message)


class DiscordService:
    """Start/stop wrapper around :class:`LootBot`."""

    def __init__(self, token: str, handler: LootCommandHandler) -> None:
        self._token = token
        self.client = LootBot(handler)

    async def start(self) -> None:
        """Log in and run until :meth:`stop` is called.

        A rejected token is logged and swallowed so the keep-alive server
        stays up and the host does not crash-loop the container.
        """
        try:
            await self.client.start(self._token)
        except discord.LoginFailure as e:
            logger.error(
                "DISCORD LOGIN FAILED: check DISCORD_BOT_TOKEN and the bot "
                "intents/permissions. Error: %s",
                e,
            )

    async def stop(self) -> None:
        if not self.client.is_closed():
            await self.client.close()
