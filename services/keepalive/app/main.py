"""Keep-alive HTTP service for the loot bot.

Free hosting tiers suspend idle containers; an external monitor polls
``GET /ping`` to keep the Discord bot process awake. The app is tiny and
has no dependency on the bot itself.

Endpoints:
- GET `/ping`: plain-text liveness confirmation.
- GET `/`: human-readable HTML status page.
- GET `/health`: JSON health probe.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from shared.settings import Settings
from shared.tracing import install_fastapi_tracing

logger = logging.getLogger(__name__)

PING_TEXT = "Bot Service is Alive."

_STATUS_PAGE = """
<div style="font-family: Inter, sans-serif; text-align: center; padding: 50px; background-color: #f3f4f6; border-radius: 12px; margin: 20px;">
    <h1 style="color: #4f46e5; font-weight: 700;">Loot Bot Service Status</h1>
    <p style="color: #374151;">Discord Bot is active and connected. Now analyzing map data.</p>
    <p>Use the Keep-Alive endpoint: <code style="background: #e5e7eb; padding: 4px 8px; border-radius: 4px;">GET /ping</code></p>
    <p style="color: #9ca3af; margin-top: 20px;">Server running on port {port}</p>
</div>
"""


def create_app(port: int) -> FastAPI:
    """Build the keep-alive app; ``port`` is only shown on the status page."""
    app = FastAPI(title="Loot Bot Keep-Alive", version="0.1.0")
    install_fastapi_tracing(app, service_name="keepalive")

    # ---------- Global safety net: never crash the worker ----------
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all for any unhandled exception; return structured JSON 500."""
        logger.exception("Unhandled error serving %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": f"An unexpected error occurred in keepalive: {exc}"},
        )

    @app.get("/ping", response_class=PlainTextResponse)
    def _ping():
        return PING_TEXT

    @app.get("/", response_class=HTMLResponse)
    def _root():
        return _STATUS_PAGE.format(port=port)

    @app.get("/health")
    def _health():
        return {"status": "ok"}

    return app


app = create_app(Settings().port)


class KeepAliveServer:
    """uvicorn server bound to ``host:port`` with an explicit lifecycle."""

    def __init__(self, host: str, port: int, app: FastAPI | None = None) -> None:
        self.host = host
        self.port = port
        self.app = app or create_app(port)
        self._server = uvicorn.Server(
            uvicorn.Config(self.app, host=host, port=port, log_level="warning")
        )

    async def start(self) -> None:
        """Serve until :meth:`stop` is called."""
        logger.info("Keep-alive server listening on port %d", self.port)
        await self._server.serve()

    def stop(self) -> None:
        self._server.should_exit = True
