"""
Prompt templates and request payload for the loot report call.

Structured output (``responseSchema``) cannot be combined with the Google
Search grounding tool, so the JSON contract is enforced through the prompts
instead: the system prompt demands one clean JSON object, and the user
prompt restates every top-level field with its type. ``LOOT_REPORT_SCHEMA``
is the documented shape both prompts are written against.
"""

from __future__ import annotations

from typing import Any, Dict

HOT_ZONE_MAPS = ("Dam Battlegrounds", "Spaceport", "Buried City")

LOOT_REPORT_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "description": "The loot report summarizing the current hot zone.",
    "properties": {
        "hotZoneMapName": {
            "type": "STRING",
            "description": "The name of the map currently considered the 'Hot Zone'.",
        },
        "hotZoneEvent": {
            "type": "STRING",
            "description": "An exciting event name or description for the hot zone.",
        },
        "hotZoneLootDescription": {
            "type": "STRING",
            "description": (
                "What high-value gear/materials are expected there, referencing "
                "the analysed site's guides."
            ),
        },
        "otherMaps": {
            "type": "ARRAY",
            "description": "The other two maps and their lower tier status.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "mapName": {"type": "STRING"},
                    "lootTier": {
                        "type": "STRING",
                        "description": "'Tier I', 'Tier II' or 'Tier III'. Never Tier IV.",
                    },
                    "eventName": {
                        "type": "STRING",
                        "description": "A brief, low-key event name for the map.",
                    },
                },
                "required": ["mapName", "lootTier", "eventName"],
            },
        },
    },
    "required": ["hotZoneMapName", "hotZoneEvent", "hotZoneLootDescription", "otherMaps"],
}

_MAP_CHOICES = ", ".join(f"'{m}'" for m in HOT_ZONE_MAPS)

# ===============================  SYSTEM  ================================= #

SYSTEM_PROMPT = (
    "ROLE: You are the Strategic Operations Analyst for a looter game.\n"
    "TASK: Use the Google Search grounding tool to analyze external web resources, "
    "specifically guides and map layouts, then generate a fictional but highly "
    "engaging real-time 'Loot Report'.\n\n"
    "OUTPUT (CRITICAL):\n"
    "• Return a single, clean JSON object that strictly follows the requested flat "
    "structure.\n"
    "• NO extra text, markdown, or commentary outside the JSON object.\n"
    f"• The maps you must choose from are: {_MAP_CHOICES}.\n"
)

# ================================  USER  ================================== #


def _field_lines() -> str:
    props = LOOT_REPORT_SCHEMA["properties"]
    lines = [
        "1. 'hotZoneMapName' (string, the Hot Zone map name).",
        "2. 'hotZoneEvent' (string, an exciting event name for the hot zone).",
        "3. 'hotZoneLootDescription' (string, describing the high-value loot based on the site's content).",
        "4. 'otherMaps' (array of exactly two objects, detailing the two lower-tier maps, "
        "each with "
        + ", ".join(f"'{k}'" for k in props["otherMaps"]["items"]["required"])
        + ").",
    ]
    return " ".join(lines)


def build_user_prompt(source_url: str) -> str:
    """Return the user instruction naming every required field and its type."""
    return (
        f"Analyze the guides and map layouts found on the website {source_url} "
        f"to determine which of the three main maps ({_MAP_CHOICES}) is currently "
        'the "Hot Zone" (Tier IV equivalent). '
        "The report MUST strictly use the following fields at the top level: "
        f"{_field_lines()} "
        "Generate the full JSON report now based on this exact structure."
    )


def build_request_payload(source_url: str) -> Dict[str, Any]:
    """Build the ``generateContent`` body with Google Search grounding enabled."""
    return {
        "contents": [{"parts": [{"text": build_user_prompt(source_url)}]}],
        "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
        "tools": [{"google_search": {}}],
    }
