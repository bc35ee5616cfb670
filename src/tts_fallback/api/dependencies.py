"""
FastAPI Dependency Providers.

The application owns exactly one SpeechOrchestrator, created in the
lifespan handler (main.py) and stored on ``app.state``. Route handlers
receive it through Depends() instead of a module-level singleton, so
several apps (or tests) in one process never share playback state.

Usage in Route Handlers:
    from fastapi import Depends
    from tts_fallback.api.dependencies import get_orchestrator

    @router.post("/v1/stop")
    def stop(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
        orchestrator.stop()
"""
from __future__ import annotations

from typing import Optional

from fastapi import Request

from tts_fallback.services.orchestrator import SpeechOrchestrator
from tts_fallback.services.status import StatusBoard


def get_orchestrator(request: Request) -> SpeechOrchestrator:
    return request.app.state.orchestrator


def get_status_board(request: Request) -> Optional[StatusBoard]:
    return getattr(request.app.state, "status_board", None)
