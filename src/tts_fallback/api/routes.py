"""
Speech Control API Routes.

Endpoints:
    POST  /v1/speak            - Speak text (local first, remote fallback)
    POST  /v1/stop             - Stop any playback
    POST  /v1/pause            - Pause on-device speech
    POST  /v1/resume           - Resume on-device speech
    PATCH /v1/settings         - Change default rate/pitch/volume/language/voice
    GET   /v1/status           - Player state plus recent status messages
    GET   /v1/languages        - Supported language table with local support
    POST  /v1/languages/test   - Serial diagnostic sweep (local + remote check)
    GET   /v1/voices           - On-device voice summary and list
    GET   /health              - Liveness and degraded-mode information
    GET   /metrics             - Prometheus metrics

Every handler touching the orchestrator is ``async def`` so it runs on
the event loop that owns the playback futures, never in FastAPI's thread
pool.

Error Handling:
    Errors use the standardized JSON format:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>",
        "details": {...}
    }

    HTTP status codes are mapped from SpeechError codes:
        - REMOTE_EXHAUSTED -> 502 Bad Gateway
        - UNSUPPORTED_LANGUAGE -> 422 Unprocessable Entity
        - INVALID_INPUT -> 400 Bad Request

Example Usage:
    curl -X POST http://localhost:8000/v1/speak \\
        -H "Content-Type: application/json" \\
        -d '{"text": "你好", "lang": "zh-TW"}'
"""
from __future__ import annotations

import asyncio
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from tts_fallback.api.dependencies import get_orchestrator, get_status_board
from tts_fallback.api.schemas import LanguageTestRequest, SettingsUpdate, SpeakAccepted, SpeakRequest
from tts_fallback.core.logging import error, get_logger, set_request_id, verbose
from tts_fallback.core.metrics import metrics
from tts_fallback.services.orchestrator import SpeechOrchestrator
from tts_fallback.services.status import StatusBoard
from tts_fallback.speech.errors import ErrorCode, SpeechError
from tts_fallback.speech.languages import SUPPORTED_LANGUAGES, remote_language_code

router = APIRouter()

_LOG = get_logger("tts-fallback.api")

_STATUS_MAP = {
    ErrorCode.REMOTE_EXHAUSTED: 502,
    ErrorCode.UNSUPPORTED_LANGUAGE: 422,
    ErrorCode.INVALID_INPUT: 400,
}


def _error_response(exc: SpeechError, request_id: Optional[str] = None) -> JSONResponse:
    """Standardized JSON error response for a SpeechError."""
    content = exc.to_dict()
    if request_id:
        content["request_id"] = request_id
    return JSONResponse(status_code=_STATUS_MAP.get(exc.code, 500), content=content)


def _settings_dict(orchestrator: SpeechOrchestrator) -> dict:
    settings = orchestrator.settings
    return {
        "rate": settings.rate,
        "pitch": settings.pitch,
        "volume": settings.volume,
        "lang": settings.language,
        "voice": settings.preferred_voice.name if settings.preferred_voice else None,
        "remote_enabled": orchestrator.remote_enabled,
    }


def _log_background_result(task: "asyncio.Task") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if isinstance(exc, SpeechError):
        verbose(_LOG, "background_speak_failed", code=exc.code)
    elif exc is not None:
        error(_LOG, "background_speak_crashed", error=repr(exc))


@router.post("/v1/speak")
async def speak(
    req: SpeakRequest,
    request: Request,
    orchestrator: SpeechOrchestrator = Depends(get_orchestrator),
):
    """
    Speak text on the service host.

    With ``wait`` (the default) the response is sent after playback
    ends and describes the route taken. Without it, playback is started
    in the background and 202 is returned immediately.

    Raises:
        400: A voice setting is out of range
        422: No route for the language (remote fallback disabled)
        502: Every remote mirror failed
    """
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)

    if not req.wait:
        task = asyncio.create_task(orchestrator.speak(req.text, req.options(), request_id=rid))
        tasks = request.app.state.background_tasks
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        task.add_done_callback(_log_background_result)
        return JSONResponse(status_code=202, content=SpeakAccepted(request_id=rid).model_dump())

    try:
        result = await orchestrator.speak(req.text, req.options(), request_id=rid)
    except SpeechError as exc:
        return _error_response(exc, rid)
    return result.to_dict()


@router.post("/v1/stop")
async def stop(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
    orchestrator.stop()
    return {"ok": True, "state": orchestrator.state.state.value}


@router.post("/v1/pause")
async def pause(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
    """Pause on-device speech; no-op (paused=false) unless speaking locally."""
    return {"ok": True, "paused": orchestrator.pause(), "state": orchestrator.state.state.value}


@router.post("/v1/resume")
async def resume(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
    return {"ok": True, "resumed": orchestrator.resume(), "state": orchestrator.state.state.value}


@router.patch("/v1/settings")
async def update_settings(
    req: SettingsUpdate,
    orchestrator: SpeechOrchestrator = Depends(get_orchestrator),
):
    """
    Change the default voice settings.

    Fields are applied in order rate, pitch, volume, lang, voice; the
    first invalid value aborts the update with 400 and leaves the later
    fields untouched.
    """
    try:
        if req.rate is not None:
            orchestrator.set_rate(req.rate)
        if req.pitch is not None:
            orchestrator.set_pitch(req.pitch)
        if req.volume is not None:
            orchestrator.set_volume(req.volume)
        if req.lang is not None:
            orchestrator.set_language(req.lang)
        if req.voice is not None:
            orchestrator.set_voice(req.voice or None)
    except SpeechError as exc:
        return _error_response(exc)
    if req.remote_enabled is not None:
        orchestrator.remote_enabled = req.remote_enabled
    return {"ok": True, "settings": _settings_dict(orchestrator)}


@router.get("/v1/status")
async def status(
    orchestrator: SpeechOrchestrator = Depends(get_orchestrator),
    board: Optional[StatusBoard] = Depends(get_status_board),
):
    return {
        **orchestrator.get_status().to_dict(),
        "state": orchestrator.state.state.value,
        "settings": _settings_dict(orchestrator),
        "messages": board.history() if board is not None else [],
    }


@router.get("/v1/languages")
async def languages(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
    return {
        "languages": [
            {
                "tag": tag,
                "name": name,
                "remote_code": remote_language_code(tag),
                "local": orchestrator.capability.is_supported(tag),
            }
            for tag, name in SUPPORTED_LANGUAGES.items()
        ]
    }


@router.post("/v1/languages/test")
async def test_languages(
    req: Optional[LanguageTestRequest] = None,
    orchestrator: SpeechOrchestrator = Depends(get_orchestrator),
):
    """
    Run the diagnostic sweep.

    Checks are serialized with a fixed delay between them, so a full
    sweep over the ten supported languages takes at least ten seconds
    plus the playback time of each check phrase.
    """
    tags = req.languages if req is not None else None
    results = await orchestrator.test_all_languages(tags)
    return {"ok": True, "results": {tag: check.to_dict() for tag, check in results.items()}}


@router.get("/v1/voices")
async def voices(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
    return {
        **orchestrator.voice_summary(),
        "voices": [
            {"name": v.name, "lang": v.language_tag, "id": str(v.native_handle)}
            for v in orchestrator.catalog.voices
        ],
    }


@router.get("/health")
async def health(orchestrator: SpeechOrchestrator = Depends(get_orchestrator)):
    """
    Health check.

    ``degraded`` is true when no on-device voice was found, in which case
    every request goes to the remote mirrors (or fails when remote
    fallback is disabled).
    """
    status_info = orchestrator.get_status()
    return {
        "ok": True,
        "degraded": not status_info.voices_loaded,
        "voices": status_info.voice_count,
        "remote_enabled": status_info.remote_fallback_enabled,
        "mirrors": len(orchestrator.config.remote.mirrors),
    }


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
