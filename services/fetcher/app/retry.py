"""Retrying HTTP fetcher for the upstream generation API.

One call to :func:`fetch` issues a request and keeps retrying it on the
transient failure classes (HTTP 429/500/503 and transport errors) with a
bounded exponential backoff. Whatever happens, the caller gets a value
back: ``FetchSuccess`` with the decoded JSON body, or ``Failure`` with a
reason string. Nothing is raised past this function for upstream problems.

The loop is an explicit state machine (attempt counter, classify, compute
delay, suspend). Suspension goes through the injected ``sleep`` coroutine so
tests can record the backoff schedule without waiting.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from shared.models import Failure, FetchOutcome, FetchSuccess, RetryPolicy
from shared.tracing import span

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = frozenset({429, 500, 503})
_LOG_BODY_CHARS = 100

Sleeper = Callable[[float], Awaitable[Any]]


def _truncate(text: str, limit: int = _LOG_BODY_CHARS) -> str:
    text = text or ""
    return text if len(text) <= limit else text[:limit] + "..."


async def fetch(
    url: str,
    *,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    body: Any = None,
    params: Optional[Dict[str, str]] = None,
    policy: RetryPolicy | None = None,
    client: httpx.AsyncClient | None = None,
    sleep: Sleeper = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> FetchOutcome:
    """Send one request with retry and return a tagged outcome.

    Args:
        url: Target URL.
        method: HTTP method.
        headers: Optional request headers.
        body: Optional JSON-serializable request body.
        params: Optional query parameters (kept out of log lines).
        policy: Retry policy; defaults to 5 attempts, 1s base, 1s jitter, 30s timeout.
        client: Optional ``httpx.AsyncClient`` to reuse. When omitted a client
            is created for this call and closed before returning.
        sleep: Coroutine used for backoff waits.
        rng: Source of jitter in ``[0, 1)``.

    Returns:
        ``FetchSuccess`` on HTTP 200, otherwise ``Failure``.
    """
    policy = policy or RetryPolicy()
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(policy.timeout_seconds))
    try:
        with span("fetch.request", method=method, max_attempts=policy.max_attempts):
            return await _fetch_with_retry(
                client,
                url,
                method=method,
                headers=headers,
                body=body,
                params=params,
                policy=policy,
                sleep=sleep,
                rng=rng,
            )
    finally:
        if owns_client:
            await client.aclose()


async def _fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    method: str,
    headers: Optional[Dict[str, str]],
    body: Any,
    params: Optional[Dict[str, str]],
    policy: RetryPolicy,
    sleep: Sleeper,
    rng: Callable[[], float],
) -> FetchOutcome:
    last_attempt = policy.max_attempts - 1
    for attempt in range(policy.max_attempts):
        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                json=body,
                params=params,
                timeout=policy.timeout_seconds,
            )
        except httpx.TransportError as e:
            message = str(e) or e.__class__.__name__
            if attempt < last_attempt:
                delay = policy.delay_for(attempt, rng())
                logger.warning(
                    "Network error: %s. Retrying in %.2fs (attempt %d/%d)...",
                    message,
                    delay,
                    attempt + 1,
                    policy.max_attempts,
                )
                await sleep(delay)
                continue
            logger.error(
                "Network error after %d attempts: %s", policy.max_attempts, message
            )
            return Failure(reason=f"Network error: {message}")

        status = response.status_code
        if status == 200:
            try:
                return FetchSuccess(body=response.json())
            except ValueError as e:
                logger.error(
                    "API call returned non-JSON body: %s", _truncate(response.text)
                )
                return Failure(reason=f"Invalid JSON in API response: {e}")

        if status in RETRYABLE_STATUSES and attempt < last_attempt:
            delay = policy.delay_for(attempt, rng())
            logger.warning(
                "API call failed (Status: %d). Retrying in %.2fs (attempt %d/%d)...",
                status,
                delay,
                attempt + 1,
                policy.max_attempts,
            )
            await sleep(delay)
            continue

        logger.error(
            "API call failed permanently (Status: %d, Response: %s)",
            status,
            _truncate(response.text),
        )
        return Failure(reason=f"API request failed with status {status}")

    # Unreachable with max_attempts >= 1; kept so the return type is total.
    return Failure(reason="Max retries exceeded")
