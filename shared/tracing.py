"""Logging and tracing utilities with optional Langfuse integration.

Log lines go through the standard ``logging`` module; ``configure_logging``
installs one timestamped handler on the root logger so every attempt,
retry and failure of the loot pipeline is visible in the host's console.

Tracing is a lightweight span context manager that does nothing by
default. If ``LANGFUSE_ENABLED=true`` and the ``langfuse`` SDK is installed
and configured via environment variables, spans are forwarded to Langfuse.
Errors in tracing never affect application logic; we fail-soft to a no-op.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from shared.settings import Settings

_settings = Settings()

try:
    from langfuse import Langfuse  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    Langfuse = None  # type: ignore

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

logger = logging.getLogger(__name__)


def configure_logging(level: str | int | None = None) -> None:
    """Install a single console handler on the root logger.

    Calling this more than once only updates the level.
    """
    root = logging.getLogger()
    resolved = level if level is not None else _settings.log_level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    root.setLevel(resolved)
    if not any(getattr(h, "_loot_bot", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        handler._loot_bot = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    # discord.py is chatty at INFO (gateway heartbeats, resumes)
    logging.getLogger("discord").setLevel(max(resolved, logging.WARNING))


def _now_ms() -> int:
    return int(time.time() * 1000)


class _Span:
    """A no-op span used when tracing is disabled."""

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name

    def __enter__(self) -> "_Span":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _LangfuseSpan(_Span):
    """Forward one span to a Langfuse client; failures are logged and ignored."""

    def __init__(self, client: Any, name: str, **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self._client = client
        self._kwargs = kwargs
        self._span = None
        self._start_ms = _now_ms()

    def __enter__(self) -> "_LangfuseSpan":
        try:
            self._span = self._client.span(name=self.name, input=self._kwargs)
        except Exception:
            logger.debug("Langfuse span %s could not be opened", self.name, exc_info=True)
            self._span = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._span is None:
            return None
        try:
            self._span.end(
                output={
                    "error": str(exc) if exc else None,
                    "duration_ms": max(1, _now_ms() - self._start_ms),
                }
            )
        except Exception:
            logger.debug("Langfuse span %s could not be closed", self.name, exc_info=True)
        return None


def _build_langfuse_client() -> Any | None:
    if not _settings.langfuse_enabled or Langfuse is None:
        return None
    if _settings.tracing_backend.lower() != "langfuse":
        return None
    if not (_settings.langfuse_public_key and _settings.langfuse_secret_key):
        return None
    try:
        return Langfuse(
            public_key=_settings.langfuse_public_key,
            secret_key=_settings.langfuse_secret_key,
            host=_settings.langfuse_host or None,
        )
    except Exception:
        logger.warning("Langfuse client could not be created; tracing disabled")
        return None


class Tracer:
    """Tracer facade: no-op spans, or Langfuse spans when a client is set."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    def start_span(self, name: str, **kwargs: Any) -> _Span:
        if self._client is None:
            return _Span(name, **kwargs)
        return _LangfuseSpan(self._client, name, **kwargs)


tracer = Tracer(_build_langfuse_client())


def install_fastapi_tracing(app, service_name: str = "keepalive") -> None:
    """Install middleware that wraps every HTTP request in a span."""

    @app.middleware("http")
    async def _trace_middleware(request, call_next: Callable):
        with span(
            "http.request",
            service=service_name,
            method=request.method,
            path=request.url.path,
        ):
            return await call_next(request)


@contextmanager
def span(name: str, **kwargs: Any) -> Iterator[_Span]:
    """Context manager wrapper around the tracer's start_span method.

    Usage:
        with span("fetch.request", method="POST"):
            # do work
    """
    s = tracer.start_span(name, **kwargs)
    s.__enter__()
    error: BaseException | None = None
    try:
        yield s
    except BaseException as exc:
        error = exc
        raise
    finally:
        s.__exit__(type(error) if error else None, error, None)


def log_event(
    name: str, payload: Optional[dict] = None, correlation_id: Optional[str] = None
) -> None:
    """Emit a short-lived structured event span for observability.

    Args:
        name: Logical event name, e.g. "LootRequested", "LootFailed".
        payload: Arbitrary JSON-serializable dict with event data.
        correlation_id: Optional ID to stitch events for one command.
    """
    meta = dict(payload or {})
    if correlation_id:
        meta["correlation_id"] = correlation_id
    logger.debug("event %s %s", name, meta)
    with span(f"event.{name}", **meta):
        pass
