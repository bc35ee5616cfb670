"""
FastAPI Application Entry Point.

Creates the speech control service. The lifespan handler builds one
SpeechOrchestrator per application, loads the on-device voice catalog
(with retry) before the first request is served, and optionally runs
the diagnostic language sweep in the background.

Usage:
    # Run with uvicorn
    uvicorn tts_fallback.main:app --host 127.0.0.1 --port 8000

    # Or through the CLI
    tts-fallback --serve --port 8000
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from tts_fallback import __version__
from tts_fallback.api.routes import router
from tts_fallback.core.config import Settings, load_settings
from tts_fallback.core.logging import configure_logging, get_logger, info, warn
from tts_fallback.services.orchestrator import SpeechOrchestrator, create_orchestrator
from tts_fallback.services.status import StatusBoard

_LOG = get_logger("tts-fallback.main")


def _load_settings_or_defaults() -> Settings:
    try:
        return load_settings()
    except FileNotFoundError as exc:
        warn(_LOG, "settings_missing", error=str(exc), fallback="defaults")
        return Settings(raw={})


def create_app(
    orchestrator: Optional[SpeechOrchestrator] = None,
    settings: Optional[Settings] = None,
    status_board: Optional[StatusBoard] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator (tests inject one with fake
            backends). Built from settings with the shipped backends
            when omitted.
        settings: Settings for the built orchestrator (loaded from
            config/settings.yaml when omitted).
        status_board: Status sink shown by GET /v1/status. Must be the
            injected orchestrator's sink to show its messages.

    Returns:
        FastAPI: Configured application instance.
    """
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        board = status_board if status_board is not None else StatusBoard()
        orch = orchestrator
        if orch is None:
            orch = create_orchestrator(settings or _load_settings_or_defaults(), status_sink=board)

        app.state.orchestrator = orch
        app.state.status_board = board
        app.state.background_tasks = set()

        await orch.initialize()
        sweep = None
        if orch.config.diagnostics.run_on_startup:
            sweep = asyncio.create_task(orch.startup_sweep())
        info(_LOG, "service_started", version=__version__)
        try:
            yield
        finally:
            pending = list(app.state.background_tasks)
            if sweep is not None:
                pending.append(sweep)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            await orch.aclose()
            info(_LOG, "service_stopped")

    app = FastAPI(title="tts-fallback", version=__version__, lifespan=lifespan)
    app.include_router(router)
    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
