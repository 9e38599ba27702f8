"""Turn a Gemini ``generateContent`` envelope into a validated LootReport.

The model's answer is untrusted input. It is extracted from the envelope,
unwrapped from an optional markdown code fence, parsed as JSON, checked
against the loot report contract and only then converted to the domain
model. Each stage raises a ``ValueError`` subclass so the synthesizer can
tell "could not parse" (:class:`ReportParseError`) apart from "parsed but
wrong shape" (:class:`ReportShapeError`).
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ValidationError

from shared.models import LootReport

_FENCE_OPEN_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE_RE = re.compile(r"\r?\n?[ \t]*```$")

_MALFORMED_HINT = "The model returned a nested or malformed structure."


class ReportParseError(ValueError):
    """The envelope or its text payload could not be parsed."""


class ReportShapeError(ValueError):
    """The payload parsed but does not match the loot report contract."""


def extract_payload_text(envelope: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` from a response envelope."""
    if isinstance(envelope, dict) and isinstance(envelope.get("error"), dict):
        message = envelope["error"].get("message") or "unknown error"
        raise ReportParseError(f"Upstream returned an error document: {message}")
    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise ReportParseError(
            "Response is missing candidates[0].content.parts[0].text"
        ) from None
    if not isinstance(text, str) or not text.strip():
        raise ReportParseError("Response text payload is empty")
    return text


def strip_code_fence(text: str) -> str:
    """Trim ``text`` and drop surrounding ```` ``` ```` / ```` ```json ```` fences.

    Nested fences are peeled until the text no longer starts with one, so
    applying it twice gives the same result as applying it once.
    """
    stripped = (text or "").strip()
    while stripped.startswith("```"):
        stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
        stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1).strip()
    return stripped


def parse_report_json(text: str) -> Any:
    """Parse the normalised payload text as JSON."""
    try:
        return json.loads(strip_code_fence(text))
    except (json.JSONDecodeError, RecursionError) as e:
        raise ReportParseError(str(e)) from e


def validate_report_shape(data: Any) -> LootReport:
    """Check the loot report contract and convert to :class:`LootReport`.

    Only the hot zone name and the other-maps count are structural
    requirements; every other field is optional and defaulted at render time.
    """
    if not isinstance(data, dict):
        raise ReportShapeError(
            f"Generated JSON is not an object (got {type(data).__name__}). "
            f"{_MALFORMED_HINT}"
        )
    if not data.get("hotZoneMapName"):
        raise ReportShapeError(
            f"Generated JSON is missing the hotZoneMapName field. {_MALFORMED_HINT}"
        )
    other_maps = data.get("otherMaps")
    if other_maps is None:
        raise ReportShapeError(
            f"Generated JSON is missing the otherMaps field. {_MALFORMED_HINT}"
        )
    if not isinstance(other_maps, list) or len(other_maps) != 2:
        count = len(other_maps) if isinstance(other_maps, list) else "a non-list"
        raise ReportShapeError(
            f"Generated JSON must contain exactly two otherMaps, got {count}. "
            f"{_MALFORMED_HINT}"
        )
    try:
        return LootReport.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        raise ReportShapeError(
            f"Generated JSON does not match the loot report contract at "
            f"{where or '<root>'}: {first.get('msg')}"
        ) from e


def parse_report_text(text: str) -> LootReport:
    """Fence stripping, JSON parsing and validation of the payload text."""
    return validate_report_shape(parse_report_json(text))
