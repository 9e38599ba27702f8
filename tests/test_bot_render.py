import discord

from services.bot.app.render import (
    DEFAULT_HOT_ZONE_DESCRIPTION,
    DEFAULT_HOT_ZONE_EVENT,
    DEFAULT_MAP_EVENT,
    DEFAULT_MAP_NAME,
    MESSAGE_LIMIT,
    REPORT_COLOR,
    build_report_embed,
    error_message,
    sort_other_maps,
)
from shared.models import LootReport, MapEntry


def _report(tiers) -> LootReport:
    return LootReport(
        hot_zone_map_name="Spaceport",
        hot_zone_event="Surge",
        hot_zone_loot_description="desc",
        other_maps=[
            MapEntry(map_name=f"Map {i}", loot_tier=t, event_name=f"Event {i}")
            for i, t in enumerate(tiers)
        ],
    )


def test_higher_tier_renders_first() -> None:
    embed = build_report_embed(
        _report(["Tier I", "Tier III"]), requested_by="raider#0001", source_url="https://s/"
    )
    names = [f.name for f in embed.fields]
    assert names[0].startswith("🥇 Spaceport")
    assert "Tier III" in names[1] and names[1].startswith("🥉")
    assert "Tier I" in names[2] and names[2].startswith("⚪")


def test_unranked_tiers_sort_last() -> None:
    maps = [
        MapEntry(map_name="a", loot_tier="Tier ?"),
        MapEntry(map_name="b", loot_tier="Tier II"),
        MapEntry(map_name="c", loot_tier=None),
        MapEntry(map_name="d", loot_tier="Tier III"),
    ]
    assert [m.map_name for m in sort_other_maps(maps)] == ["d", "b", "a", "c"]


def test_embed_layout() -> None:
    embed = build_report_embed(
        _report(["Tier II", "Tier I"]),
        requested_by="raider#0001",
        source_url="https://arcraidersmap.app/",
        cycle=321,
    )
    assert isinstance(embed, discord.Embed)
    assert embed.title == "🔥 Loot Intelligence Report - Cycle #321"
    assert "**Spaceport**" in embed.description
    assert embed.colour.value == REPORT_COLOR
    assert embed.thumbnail.url
    assert "raider#0001" in embed.footer.text
    assert "https://arcraidersmap.app/" in embed.footer.text
    assert len(embed.fields) == 3
    assert embed.fields[0].inline is False
    assert embed.fields[0].value == "**Event:** Surge\n*desc*"
    assert all(f.inline for f in embed.fields[1:])


def test_cycle_number_comes_from_rng() -> None:
    embed = build_report_embed(
        _report(["Tier I", "Tier I"]),
        requested_by="u",
        source_url="s",
        rng=lambda lo, hi: hi,
    )
    assert embed.title.endswith("#999")


def test_missing_optional_fields_use_defaults() -> None:
    report = LootReport(hot_zone_map_name="Buried City", other_maps=[MapEntry(), MapEntry()])
    embed = build_report_embed(report, requested_by="u", source_url="s", cycle=100)
    hot = embed.fields[0]
    assert DEFAULT_HOT_ZONE_EVENT in hot.value
    assert DEFAULT_HOT_ZONE_DESCRIPTION in hot.value
    for field in embed.fields[1:]:
        assert field.name == f"⚪ {DEFAULT_MAP_NAME} - Tier I"
        assert field.value == f"**Event:** {DEFAULT_MAP_EVENT}"


def test_error_message_escapes_and_truncates_reason() -> None:
    msg = error_message("bad `json` " + "x" * 5000)
    assert len(msg) < MESSAGE_LIMIT
    assert "`json`" not in msg
    assert "bad 'json'" in msg
