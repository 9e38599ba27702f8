"""Loot report synthesizer (Gemini with Google Search grounding).

The synthesizer builds the ``generateContent`` request, sends it through the
retrying fetcher, and turns the model's text answer into a validated
``LootReport``. Every failure on the way is returned as a ``Failure`` value
with a human-readable reason; nothing raises past ``synthesize_report``.

Behavior:
- No API key configured: returns a ``config`` failure without touching the
  network.
- Fetcher failure: wrapped as ``Failed to synthesize report: <reason>``.
- Text that cannot be extracted or parsed: ``parse`` failure.
- JSON that parses but breaks the contract: ``shape`` failure.
- ``SYNTHESIS_DEADLINE_SECONDS`` set and exceeded: ``timeout`` failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from shared.models import Failure, FailureKind, FetchOutcome, LootReport
from shared.settings import Settings
from shared.tracing import log_event, span

from services.fetcher.app.retry import fetch

from .parsing import (
    ReportParseError,
    ReportShapeError,
    extract_payload_text,
    parse_report_text,
)
from .prompts import build_request_payload

logger = logging.getLogger(__name__)

Fetcher = Callable[..., Awaitable[FetchOutcome]]

_RAW_LOG_CHARS = 500
PARSE_ERROR_PREFIX = "Error parsing or validating response"


class ReportSynthesizer:
    """Produce one loot report per call.

    Args:
        settings: Application settings (API key, model, retry policy, deadline).
        fetcher: Coroutine with the :func:`services.fetcher.app.retry.fetch`
            signature. Tests pass a stub to count or script upstream calls.
    """

    def __init__(self, settings: Settings | None = None, fetcher: Fetcher = fetch):
        self._settings = settings or Settings()
        self._fetcher = fetcher

    @property
    def source_url(self) -> str:
        return self._settings.loot_source_url

    async def synthesize_report(self) -> LootReport | Failure:
        deadline = self._settings.synthesis_deadline_seconds
        if deadline is None:
            return await self._synthesize()
        try:
            return await asyncio.wait_for(self._synthesize(), timeout=deadline)
        except asyncio.TimeoutError:
            logger.error("Loot report synthesis exceeded %.1fs deadline", deadline)
            return Failure(
                kind=FailureKind.TIMEOUT,
                reason=f"Failed to synthesize report: no answer within {deadline:g}s",
            )

    async def _synthesize(self) -> LootReport | Failure:
        s = self._settings
        logger.info("Preparing Gemini request for site analysis of %s", s.loot_source_url)

        if not s.gemini_api_key:
            return Failure(
                kind=FailureKind.CONFIG,
                reason="GEMINI_API_KEY is not set in environment variables.",
            )

        payload = build_request_payload(s.loot_source_url)
        logger.info("Calling Gemini API (%s) to synthesize report using grounding", s.gemini_model)
        with span("synthesize.call", model=s.gemini_model):
            outcome = await self._fetcher(
                s.generate_url(),
                method="POST",
                headers={"Content-Type": "application/json"},
                body=payload,
                params={"key": s.gemini_api_key},
                policy=s.retry_policy(),
            )

        if isinstance(outcome, Failure):
            logger.error("Failed to synthesize report: %s", outcome.reason)
            log_event("SynthesisFailed", {"stage": "fetch", "reason": outcome.reason})
            return Failure(
                kind=FailureKind.UPSTREAM,
                reason=f"Failed to synthesize report: {outcome.reason}",
            )

        with span("synthesize.parse"):
            return self._parse(outcome.body)

    def _parse(self, envelope) -> LootReport | Failure:
        try:
            raw_text = extract_payload_text(envelope)
            logger.info(
                "Raw Gemini output: %s%s",
                raw_text[:_RAW_LOG_CHARS],
                "..." if len(raw_text) > _RAW_LOG_CHARS else "",
            )
            report = parse_report_text(raw_text)
        except ReportShapeError as e:
            logger.error("%s: %s", PARSE_ERROR_PREFIX, e)
            log_event("SynthesisFailed", {"stage": "validate", "reason": str(e)})
            return Failure(kind=FailureKind.SHAPE, reason=f"{PARSE_ERROR_PREFIX}: {e}")
        except ReportParseError as e:
            logger.error("%s: %s (envelope=%s)", PARSE_ERROR_PREFIX, e, str(envelope)[:_RAW_LOG_CHARS])
            log_event("SynthesisFailed", {"stage": "parse", "reason": str(e)})
            return Failure(kind=FailureKind.PARSE, reason=f"{PARSE_ERROR_PREFIX}: {e}")

        log_event("SynthesisSucceeded", {"hot_zone": report.hot_zone_map_name})
        return report


async def synthesize_report(
    settings: Settings | None = None, fetcher: Fetcher = fetch
) -> LootReport | Failure:
    """Convenience wrapper: one-shot synthesis with a fresh synthesizer."""
    return await ReportSynthesizer(settings, fetcher).synthesize_report()
