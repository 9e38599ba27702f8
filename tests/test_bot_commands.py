import asyncio
from types import SimpleNamespace
from typing import Any, List

import discord
import pytest

from services.bot.app.client import build_intents
from services.bot.app.commands import LootCommandHandler, parse_command
from services.bot.app.render import UNEXPECTED_ERROR_MESSAGE
from shared.models import Failure, FailureKind, LootReport, MapEntry


class FakeChannel:
    def __init__(self) -> None:
        self.sent: List[dict] = []

    async def send(self, content: Any = None, **kwargs: Any) -> None:
        self.sent.append({"content": content, **kwargs})


class StubSynthesizer:
    source_url = "https://arcraidersmap.app/"

    def __init__(self, result=None, exc: Exception | None = None) -> None:
        self.result = result
        self.exc = exc
        self.calls = 0

    async def synthesize_report(self):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.result


class FakeAuthor:
    def __init__(self, bot: bool = False) -> None:
        self.bot = bot

    def __str__(self) -> str:
        return "raider#0001"


def _message(content: str, *, bot: bool = False):
    return SimpleNamespace(content=content, author=FakeAuthor(bot), channel=FakeChannel())


def _report() -> LootReport:
    return LootReport(
        hot_zone_map_name="Spaceport",
        hot_zone_event="Surge",
        other_maps=[
            MapEntry(map_name="Buried City", loot_tier="Tier I", event_name="Quiet"),
            MapEntry(map_name="Dam Battlegrounds", loot_tier="Tier III", event_name="Patrol"),
        ],
    )


@pytest.mark.parametrize(
    "content, expected",
    [
        ("!loot", ("loot", [])),
        ("!LOOT now please", ("loot", ["now", "please"])),
        ("!   loot   ", ("loot", [])),
        ("!help", ("help", [])),
    ],
)
def test_parse_command(content: str, expected) -> None:
    cmd = parse_command(content)
    assert cmd is not None
    assert (cmd.name, cmd.args) == expected


@pytest.mark.parametrize("content", ["loot", "", "!", "!   ", "?loot"])
def test_parse_command_ignores_unprefixed(content: str) -> None:
    assert parse_command(content) is None


def test_parse_command_custom_prefix() -> None:
    cmd = parse_command("$$loot", prefix="$$")
    assert cmd is not None and cmd.name == "loot"


def test_loot_success_sends_ack_then_embed() -> None:
    synth = StubSynthesizer(result=_report())
    handler = LootCommandHandler(synth)
    msg = _message("!loot")
    handled = asyncio.run(handler.handle_message(msg))

    assert handled is True
    sent = msg.channel.sent
    assert len(sent) == 2
    assert "arcraidersmap.app" in sent[0]["content"]
    embed = sent[1]["embed"]
    assert isinstance(embed, discord.Embed)
    assert "raider#0001" in embed.footer.text
    assert "Tier III" in embed.fields[1].name


def test_loot_failure_reports_reason() -> None:
    synth = StubSynthesizer(
        result=Failure(kind=FailureKind.CONFIG, reason="GEMINI_API_KEY is not set")
    )
    msg = _message("!loot")
    asyncio.run(LootCommandHandler(synth).handle_message(msg))
    sent = msg.channel.sent
    assert len(sent) == 2
    assert sent[1]["content"].startswith("🚨 Error")
    assert "GEMINI_API_KEY is not set" in sent[1]["content"]


def test_unexpected_exception_is_reported_not_raised() -> None:
    synth = StubSynthesizer(exc=RuntimeError("kaboom"))
    msg = _message("!loot")
    asyncio.run(LootCommandHandler(synth).handle_message(msg))
    assert msg.channel.sent[-1]["content"] == UNEXPECTED_ERROR_MESSAGE


@pytest.mark.parametrize(
    "content, bot",
    [("!loot", True), ("!help", False), ("hello", False), ("loot", False)],
)
def test_messages_that_are_not_loot_commands_are_ignored(content: str, bot: bool) -> None:
    synth = StubSynthesizer(result=_report())
    msg = _message(content, bot=bot)
    handled = asyncio.run(LootCommandHandler(synth).handle_message(msg))
    assert handled is False
    assert synth.calls == 0
    assert msg.channel.sent == []


def test_intents_include_message_content() -> None:
    intents = build_intents()
    assert intents.message_content
    assert intents.guilds
    assert intents.guild_messages
