"""Chat command parsing and the ``!loot`` handler.

The handler is transport-agnostic: it needs an object with an async
``send`` (a ``discord.abc.Messageable`` in production, a fake in tests) and a
synthesizer. Failures from the pipeline arrive as values and are turned into
error messages; anything unexpected is caught here, logged, and reported
with a generic message so one bad command never takes the bot down.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional, Protocol

import discord
from pydantic import BaseModel, Field

from shared.models import Failure, LootReport
from shared.tracing import log_event, span

from .render import (
    UNEXPECTED_ERROR_MESSAGE,
    acknowledgement_message,
    build_report_embed,
    error_message,
)

logger = logging.getLogger(__name__)

LOOT_COMMAND = "loot"


class ParsedCommand(BaseModel):
    """A prefixed chat message split into a command name and arguments."""

    name: str
    args: List[str] = Field(default_factory=list)


class Messageable(Protocol):
    async def send(self, content: Optional[str] = None, **kwargs: Any) -> Any: ...


class Synthesizer(Protocol):
    source_url: str

    async def synthesize_report(self) -> LootReport | Failure: ...


def parse_command(content: str, prefix: str = "!") -> Optional[ParsedCommand]:
    """Split ``!name arg1 arg2`` into a :class:`ParsedCommand`.

    Returns None when the text does not start with ``prefix`` or carries no
    command name. The name is lower-cased; arguments are kept verbatim.
    """
    if not content or not content.startswith(prefix):
        return None
    parts = content[len(prefix) :].split()
    if not parts:
        return None
    return ParsedCommand(name=parts[0].lower(), args=parts[1:])


class LootCommandHandler:
    """Dispatch incoming chat messages to the ``loot`` command."""

    def __init__(self, synthesizer: Synthesizer, prefix: str = "!") -> None:
        self._synthesizer = synthesizer
        self._prefix = prefix

    async def handle_message(self, message: Any) -> bool:
        """Handle one incoming message; return True when a command ran."""
        author = getattr(message, "author", None)
        if author is None or getattr(author, "bot", False):
            return False
        command = parse_command(getattr(message, "content", "") or "", self._prefix)
        if command is None or command.name != LOOT_COMMAND:
            return False
        await self.handle_loot(message.channel, requested_by=str(author))
        return True

    async def handle_loot(self, channel: Messageable, *, requested_by: str) -> None:
        """Run one synthesis and post the outcome to ``channel``."""
        corr = uuid.uuid4().hex[:12]
        log_event("LootRequested", {"requested_by": requested_by}, correlation_id=corr)
        try:
            with span("bot.loot", corr=corr):
                await channel.send(acknowledgement_message(self._synthesizer.source_url))
                result = await self._synthesizer.synthesize_report()

                if isinstance(result, Failure):
                    log_event(
                        "LootFailed",
                        {"kind": result.kind.value, "reason": result.reason},
                        correlation_id=corr,
                    )
                    await channel.send(error_message(result.reason))
                    return

                embed = build_report_embed(
                    result,
                    requested_by=requested_by,
                    source_url=self._synthesizer.source_url,
                )
                await channel.send(embed=embed)
                log_event(
                    "LootDelivered",
                    {"hot_zone": result.hot_zone_map_name},
                    correlation_id=corr,
                )
        except Exception:
            logger.exception("Unhandled error in !loot command handler")
            try:
                await channel.send(UNEXPECTED_ERROR_MESSAGE)
            except discord.DiscordException:
                logger.exception("Could not deliver the unexpected-error message")
