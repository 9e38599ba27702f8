"""Discord message formatting for loot reports.

Pure formatting: no retries, no failure handling of its own. The only
obligation is to never crash on a missing optional field, so every field
read from the report falls back to a named default.
"""

from __future__ import annotations

import random
from typing import Callable, Dict, Iterable, List, Optional

import discord

from shared.models import LootReport, MapEntry

REPORT_COLOR = 0x4169E1  # royal blue
THUMBNAIL_URL = "https://placehold.co/100x100/4169E1/fff?text=Intel"

DEFAULT_HOT_ZONE = "Unknown Hot Zone"
DEFAULT_HOT_ZONE_EVENT = "Critical Anomaly Detected"
DEFAULT_HOT_ZONE_DESCRIPTION = "High value items are circulating, exact details unknown."
DEFAULT_MAP_NAME = "Unknown Map"
DEFAULT_TIER = "Tier I"
DEFAULT_MAP_EVENT = "Routine Patrol"

TIER_RANK: Dict[str, int] = {"Tier I": 1, "Tier II": 2, "Tier III": 3}
TIER_ICONS: Dict[str, str] = {"Tier III": "🥉", "Tier II": "🥈"}
DEFAULT_TIER_ICON = "⚪"

# Discord rejects messages longer than 2000 characters.
MESSAGE_LIMIT = 2000
_MAX_REASON_CHARS = 1500

UNEXPECTED_ERROR_MESSAGE = (
    "⚠️ An unexpected error occurred while processing the loot report. "
    "Check the console for details."
)


def tier_rank(tier: Optional[str]) -> int:
    """Ordinal rank of a tier label; unknown labels rank 0."""
    return TIER_RANK.get(tier or "", 0)


def sort_other_maps(maps: Iterable[MapEntry]) -> List[MapEntry]:
    """Order maps by tier, highest first. Unranked tiers sort last."""
    return sorted(maps, key=lambda m: tier_rank(m.loot_tier), reverse=True)


def acknowledgement_message(source_url: str) -> str:
    return f"🌐 Analyzing map guides from {source_url}... synthesizing Hot Zone report."


def escape_reason(reason: str, limit: int = _MAX_REASON_CHARS) -> str:
    """Make a failure reason safe to put inside an inline code span."""
    text = (reason or "unknown error").replace("`", "'")
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def error_message(reason: str) -> str:
    return (
        "🚨 Error: Could not generate dynamic loot report. "
        f"Details: `{escape_reason(reason)}`\n\n"
        "*If this error persists, the model may be outputting invalid JSON. "
        "Please check the server console for the raw output.*"
    )


def build_report_embed(
    report: LootReport,
    *,
    requested_by: str,
    source_url: str,
    cycle: int | None = None,
    rng: Callable[[int, int], int] = random.randint,
) -> discord.Embed:
    """Render a loot report as a Discord embed.

    Args:
        report: The validated report.
        requested_by: Display tag of the user who ran the command.
        source_url: Site the model was asked to analyse (credited in the footer).
        cycle: Cycle number shown in the title; random 100-999 when omitted.
        rng: ``randint``-compatible callable used for the cycle number.
    """
    hot_zone = report.hot_zone_map_name or DEFAULT_HOT_ZONE
    event = report.hot_zone_event or DEFAULT_HOT_ZONE_EVENT
    description = report.hot_zone_loot_description or DEFAULT_HOT_ZONE_DESCRIPTION
    if cycle is None:
        cycle = rng(100, 999)

    embed = discord.Embed(
        title=f"🔥 Loot Intelligence Report - Cycle #{cycle}",
        description=(
            f"The primary target zone, based on current intelligence, is **{hot_zone}**!"
        ),
        color=REPORT_COLOR,
    )
    embed.set_thumbnail(url=THUMBNAIL_URL)
    embed.set_footer(
        text=(
            f"Report requested by {requested_by} | "
            f"Data synthesized by analyzing {source_url}."
        )
    )
    embed.add_field(
        name=f"🥇 {hot_zone} - TIER IV ALERT",
        value=f"**Event:** {event}\n*{description}*",
        inline=False,
    )

    for entry in sort_other_maps(report.other_maps):
        tier = entry.loot_tier or DEFAULT_TIER
        icon = TIER_ICONS.get(tier, DEFAULT_TIER_ICON)
        embed.add_field(
            name=f"{icon} {entry.map_name or DEFAULT_MAP_NAME} - {tier}",
            value=f"**Event:** {entry.event_name or DEFAULT_MAP_EVENT}",
            inline=True,
        )
    return embed
