"""Pydantic data models shared across services.

These models define the core data structures used by the loot bot. By
centralising them in a shared module the fetcher, the synthesizer and the
Discord renderer agree on the shape of the data they hand to each other.

Everything here is transient: a fetch outcome and a loot report are built
for one ``!loot`` invocation and discarded once the reply is sent.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Bounded exponential backoff for the upstream call.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Scale of the exponential envelope in seconds. The wait
            after failed attempt ``k`` is ``2**k * base_delay`` plus jitter.
        jitter: Upper bound (exclusive) of the random addend in seconds.
        timeout_seconds: Timeout applied to every single attempt.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(5, ge=1)
    base_delay: float = Field(1.0, gt=0)
    jitter: float = Field(1.0, ge=0)
    timeout_seconds: float = Field(30.0, gt=0)

    def delay_for(self, attempt: int, rand: float) -> float:
        """Return the wait that follows failed attempt ``attempt`` (0-indexed)."""
        return (2**attempt) * self.base_delay + rand * self.jitter


class FailureKind(str, Enum):
    """Coarse classification of a pipeline failure."""

    CONFIG = "config"
    UPSTREAM = "upstream"
    PARSE = "parse"
    SHAPE = "shape"
    TIMEOUT = "timeout"


class Failure(BaseModel):
    """A failed outcome carrying a human-readable reason."""

    ok: Literal[False] = False
    reason: str
    kind: FailureKind = FailureKind.UPSTREAM


class FetchSuccess(BaseModel):
    """A 200 response whose JSON body was decoded."""

    ok: Literal[True] = True
    body: Any = None


FetchOutcome = Union[FetchSuccess, Failure]


class MapEntry(BaseModel):
    """One of the two lower-tier maps in a loot report.

    Fields are optional because the renderer substitutes defaults for
    anything the model left out. ``loot_tier`` is expected to be one of
    ``Tier I``, ``Tier II`` or ``Tier III`` but is not enforced locally.
    """

    model_config = ConfigDict(populate_by_name=True)

    map_name: Optional[str] = Field(None, alias="mapName")
    loot_tier: Optional[str] = Field(None, alias="lootTier")
    event_name: Optional[str] = Field(None, alias="eventName")


class LootReport(BaseModel):
    """Validated loot report synthesized by the model.

    A report is valid iff the hot zone map name is non-empty and exactly two
    other maps are listed.
    """

    model_config = ConfigDict(populate_by_name=True)

    hot_zone_map_name: str = Field(..., min_length=1, alias="hotZoneMapName")
    hot_zone_event: Optional[str] = Field(None, alias="hotZoneEvent")
    hot_zone_loot_description: Optional[str] = Field(
        None, alias="hotZoneLootDescription"
    )
    other_maps: List[MapEntry] = Field(
        ..., min_length=2, max_length=2, alias="otherMaps"
    )
