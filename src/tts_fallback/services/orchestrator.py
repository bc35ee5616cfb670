"""
SpeechOrchestrator - Local-first Speech with Remote Fallback.

This module provides the SpeechOrchestrator class, the single entry
point for speaking text. Both host surfaces (the HTTP service and the
CLI) construct one orchestrator and call into it.

Decision Flow (speak):
    blank text?               -> warning status, return "skipped"
    merge per-call options over the stored voice settings
    stop any playback in flight
    language has a local voice?
        local engine          -> success: return
                              -> LocalSynthesisError: log, fall through
    remote fallback enabled?
        remote mirrors        -> success: "playing" status, return
                              -> RemoteExhaustedError: "error" status, raise
    else                      -> raise UnsupportedLanguageError

A stop() while speak() is suspended makes it return "cancelled" without
falling back.

Ownership:
    The orchestrator owns the voice settings, the shared PlayerState and
    the audio registry, and hands them by reference to the local engine
    and the remote client. Nothing lives at module level.

Example:
    >>> from tts_fallback.core.config import load_settings
    >>> from tts_fallback.services import create_orchestrator
    >>>
    >>> orchestrator = create_orchestrator(load_settings())
    >>> await orchestrator.initialize()
    >>> result = await orchestrator.speak("日本語テスト", {"lang": "ja-JP"})
    >>> result.route
    'remote'
"""
from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from tts_fallback.core.config import Settings, SpeechServiceConfig
from tts_fallback.core.logging import (
    debug,
    fail,
    get_logger,
    info,
    set_request_id,
    success,
    verbose,
    warn,
)
from tts_fallback.core.metrics import metrics
from tts_fallback.services.status import Severity, StatusSink
from tts_fallback.speech.errors import (
    ErrorCode,
    InvalidSettingError,
    LocalSynthesisError,
    RemoteExhaustedError,
    UnsupportedLanguageError,
)
from tts_fallback.speech.languages import (
    SUPPORTED_LANGUAGES,
    language_name,
    sample_phrase,
    remote_language_code,
)
from tts_fallback.speech.local import LocalSpeechEngine
from tts_fallback.speech.playback import ActiveAudio, PlayerState, SpeechOutcome
from tts_fallback.speech.platform import AudioBackend, SynthesisPlatform
from tts_fallback.speech.remote import RemoteSpeechClient
from tts_fallback.speech.retry import SleepFn
from tts_fallback.speech.settings import (
    SpeakOptions,
    VoiceSettings,
    validate_language,
    validate_pitch,
    validate_rate,
    validate_volume,
)
from tts_fallback.speech.voices import LanguageCapability, VoiceCatalog

_LOG = get_logger("tts-fallback.orchestrator")

# Languages whose unavailability is called out after the startup sweep
KEY_LANGUAGES = ("zh-CN", "ja-JP")


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class SpeakResult:
    """
    Result of one speak() call that did not raise.

    Attributes:
        status: "completed", "cancelled" or "skipped" (blank text).
        route: "local", "remote", or None when nothing was played.
        language: Effective language tag.
        remote_lang: Remote service code, when the remote route was used.
        local_error: Platform error code when local synthesis failed first.
        seconds: Wall-clock duration of the call.
        request_id: Correlation id shared by this call's log lines.
    """
    status: str
    route: Optional[str]
    language: str
    remote_lang: Optional[str] = None
    local_error: Optional[str] = None
    seconds: float = 0.0
    request_id: str = ""

    @property
    def ok(self) -> bool:
        return self.status == SpeechOutcome.COMPLETED.value

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, **asdict(self)}


@dataclass(frozen=True)
class SpeechStatus:
    """Point-in-time snapshot returned by get_status()."""
    is_playing: bool
    is_paused: bool
    voices_loaded: bool
    voice_count: int
    current_language: str
    remote_fallback_enabled: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LanguageCheck:
    """Per-language result of the diagnostic sweep."""
    language: str
    name: str
    local: bool
    remote: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# SpeechOrchestrator
# =============================================================================

class SpeechOrchestrator:
    """
    Chooses between on-device and remote speech and sequences the fallback.

    Args:
        platform: On-device synthesis primitive.
        audio_backend: Factory for remote audio elements.
        config: Validated service configuration.
        status_sink: Optional (message, severity) callable; None is a no-op.
        sleep: Awaitable sleep used for retry and sweep delays.
    """

    def __init__(
        self,
        platform: SynthesisPlatform,
        audio_backend: AudioBackend,
        config: Optional[SpeechServiceConfig] = None,
        status_sink: Optional[StatusSink] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._config = config or SpeechServiceConfig()
        self._platform = platform
        self._audio_backend = audio_backend
        self._status_sink = status_sink
        self._sleep = sleep

        self._settings = VoiceSettings.from_config(self._config.speech)
        self._remote_enabled = self._config.remote.enabled
        self._text_preview_chars = self._config.logging.text_preview_chars

        self._state = PlayerState()
        self._audio = ActiveAudio()
        self._catalog = VoiceCatalog(
            platform,
            retry_delay_s=self._config.voices.retry_delay_s,
            changed_timeout_s=self._config.voices.changed_timeout_s,
            sleep=sleep,
        )
        self._capability = LanguageCapability(self._catalog)
        self._local = LocalSpeechEngine(platform, self._capability, self._state, self._audio)
        self._remote = RemoteSpeechClient(
            audio_backend,
            mirrors=self._config.remote.mirrors,
            client_id=self._config.remote.client_id,
            state=self._state,
            audio=self._audio,
            start_timeout_s=self._config.remote.start_timeout_s,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> VoiceSettings:
        """Current default voice settings."""
        return self._settings

    @property
    def config(self) -> SpeechServiceConfig:
        return self._config

    @property
    def catalog(self) -> VoiceCatalog:
        return self._catalog

    @property
    def capability(self) -> LanguageCapability:
        return self._capability

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def remote_enabled(self) -> bool:
        return self._remote_enabled

    @remote_enabled.setter
    def remote_enabled(self, value: bool) -> None:
        self._remote_enabled = bool(value)
        info(_LOG, "remote_fallback", enabled=self._remote_enabled)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> bool:
        """
        Load the voice catalog with bounded retry.

        Returns:
            Whether any on-device voice was found. False is a supported
            degraded mode in which every request goes remote.
        """
        loaded = await self._catalog.load_with_retry(self._config.voices.max_attempts)
        info(
            _LOG, "orchestrator_ready",
            voices=len(self._catalog),
            language=self._settings.language,
            remote=self._remote_enabled,
        )
        return loaded

    async def aclose(self) -> None:
        """Stop playback and release backend resources."""
        self.stop()
        close = getattr(self._platform, "close", None)
        if callable(close):
            close()
        await self._audio_backend.aclose()

    def _report(self, message: str, severity: str) -> None:
        if self._status_sink is not None:
            self._status_sink(message, severity)

    # -------------------------------------------------------------------------
    # Speaking
    # -------------------------------------------------------------------------

    async def speak(
        self,
        text: str,
        options: Union[SpeakOptions, Mapping[str, Any], None] = None,
        request_id: Optional[str] = None,
    ) -> SpeakResult:
        """
        Speak text, on-device when possible and remotely otherwise.

        Args:
            text: Text to speak.
            options: Per-call overrides (rate, pitch, volume, lang); not persisted.
            request_id: Correlation id (generated when omitted).

        Returns:
            SpeakResult describing the route taken.

        Raises:
            RemoteExhaustedError: Every remote mirror failed.
            UnsupportedLanguageError: No usable route and remote fallback disabled.
            InvalidSettingError: An option value is out of range.
        """
        rid = request_id or str(uuid.uuid4())[:12]
        set_request_id(rid)
        started = time.perf_counter()

        def elapsed() -> float:
            return time.perf_counter() - started

        if not text or not text.strip():
            warn(_LOG, "speak_skipped", reason=ErrorCode.EMPTY_INPUT)
            self._report("Please provide text to speak", Severity.WARNING)
            metrics.record_speak(route="none", status="skipped", duration=elapsed())
            return SpeakResult(status="skipped", route=None, language=self._settings.language, request_id=rid)

        effective = self._settings.merged(SpeakOptions.coerce(options))
        lang = effective.language
        name = language_name(lang)

        preview = text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "speak", chars=len(text), lang=lang, text_preview=preview)
        debug(_LOG, "speak_settings", rate=effective.rate, pitch=effective.pitch, volume=effective.volume)

        self.stop()

        local_error: Optional[str] = None
        self._catalog.refresh_if_empty()
        if self._capability.is_supported(lang):
            verbose(_LOG, "local_attempt", lang=lang)
            self._report(f"Local speech: {name}", Severity.PLAYING)
            try:
                outcome = await self._local.speak(text, effective)
            except LocalSynthesisError as exc:
                local_error = exc.error_code
                warn(_LOG, "local_failed", route="local", code=exc.error_code, fallback=self._remote_enabled)
            else:
                seconds = elapsed()
                if outcome is SpeechOutcome.COMPLETED:
                    self._report(f"Local speech finished: {name}", Severity.PLAYING)
                success(_LOG, "speak_done", route="local", outcome=outcome.value, seconds=round(seconds, 3))
                metrics.record_speak(route="local", status=outcome.value, duration=seconds)
                return SpeakResult(
                    status=outcome.value, route="local", language=lang, seconds=seconds, request_id=rid,
                )
        else:
            verbose(_LOG, "local_unsupported", lang=lang, voices=len(self._catalog))

        if not self._remote_enabled:
            fail(_LOG, "speak_failed", lang=lang, reason=ErrorCode.UNSUPPORTED_LANGUAGE)
            self._report(f"Unsupported language: {name}", Severity.ERROR)
            metrics.record_speak(route="none", status="unsupported", duration=elapsed())
            raise UnsupportedLanguageError(lang)

        remote_lang = remote_language_code(lang)
        if local_error is not None:
            self._report(f"Local speech failed, using remote speech: {name}", Severity.WARNING)
        else:
            self._report(f"No local voice, using remote speech: {name}", Severity.WARNING)
        try:
            outcome = await self._remote.speak(text, remote_lang)
        except RemoteExhaustedError as exc:
            fail(_LOG, "speak_failed", route="remote", attempts=exc.attempts, remote_lang=remote_lang)
            self._report(f"Remote speech failed: {exc.message}", Severity.ERROR)
            metrics.record_speak(route="remote", status="exhausted", duration=elapsed())
            raise

        seconds = elapsed()
        if outcome is SpeechOutcome.COMPLETED:
            self._report(f"Remote speech: {name}", Severity.PLAYING)
        success(_LOG, "speak_done", route="remote", outcome=outcome.value, seconds=round(seconds, 3))
        metrics.record_speak(route="remote", status=outcome.value, duration=seconds)
        return SpeakResult(
            status=outcome.value,
            route="remote",
            language=lang,
            remote_lang=remote_lang,
            local_error=local_error,
            seconds=seconds,
            request_id=rid,
        )

    # -------------------------------------------------------------------------
    # Playback controls
    # -------------------------------------------------------------------------

    def stop(self) -> None:
        """Stop whatever is playing; always safe, leaves the player IDLE."""
        self._remote.stop()
        self._local.stop()

    def pause(self) -> bool:
        return self._local.pause()

    def resume(self) -> bool:
        return self._local.resume()

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def set_rate(self, rate: float) -> None:
        self._settings = replace(self._settings, rate=validate_rate(rate))

    def set_pitch(self, pitch: float) -> None:
        self._settings = replace(self._settings, pitch=validate_pitch(pitch))

    def set_volume(self, volume: float) -> None:
        self._settings = replace(self._settings, volume=validate_volume(volume))

    def set_language(self, tag: str) -> None:
        """Set the default language; a previously chosen voice is dropped."""
        tag = validate_language(tag)
        self._settings = replace(self._settings, language=tag, preferred_voice=None)
        info(_LOG, "language_set", lang=tag, name=language_name(tag))

    def set_voice(self, name_or_handle: Optional[str]) -> None:
        """
        Prefer a specific catalog voice for local speech (None clears it).

        Raises:
            InvalidSettingError: No catalog voice has that name or handle.
        """
        if name_or_handle is None:
            self._settings = replace(self._settings, preferred_voice=None)
            return
        voice = self._catalog.find(name_or_handle)
        if voice is None:
            raise InvalidSettingError(f"unknown voice: {name_or_handle}", {"field": "voice"})
        self._settings = replace(self._settings, preferred_voice=voice)
        info(_LOG, "voice_set", voice=voice.name, lang=voice.language_tag)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_status(self) -> SpeechStatus:
        return SpeechStatus(
            is_playing=self._state.is_playing,
            is_paused=self._state.is_paused,
            voices_loaded=self._catalog.loaded,
            voice_count=len(self._catalog),
            current_language=self._settings.language,
            remote_fallback_enabled=self._remote_enabled,
        )

    def voice_summary(self) -> Dict[str, Any]:
        """Voice counts (total and per primary subtag) plus the catalog state."""
        return {"loaded": self._catalog.loaded, **self._catalog.summary()}

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    async def check_language(self, tag: str) -> LanguageCheck:
        """
        Check one language: local support, and a real remote playback of a
        short canned phrase.
        """
        local = self._capability.is_supported(tag)
        remote = False
        if self._remote_enabled:
            self.stop()
            try:
                outcome = await self._remote.speak(sample_phrase(tag), remote_language_code(tag))
            except RemoteExhaustedError as exc:
                verbose(_LOG, "check_remote_failed", lang=tag, attempts=exc.attempts)
            else:
                remote = outcome is SpeechOutcome.COMPLETED
        info(_LOG, "language_check", lang=tag, local=local, remote=remote)
        return LanguageCheck(language=tag, name=language_name(tag), local=local, remote=remote)

    async def test_all_languages(self, tags: Optional[Iterable[str]] = None) -> Dict[str, LanguageCheck]:
        """
        Check every supported language, one after another.

        The remote service throttles bursts, so checks never overlap and a
        fixed delay (diagnostics.delay_s) separates consecutive checks.
        """
        results: Dict[str, LanguageCheck] = {}
        for index, tag in enumerate(tags if tags is not None else SUPPORTED_LANGUAGES):
            if index:
                await self._sleep(self._config.diagnostics.delay_s)
            results[tag] = await self.check_language(tag)
        supported = sum(1 for p in results.values() if p.local or p.remote)
        info(_LOG, "language_sweep", languages=len(results), usable=supported)
        return results

    async def startup_sweep(self) -> Dict[str, LanguageCheck]:
        """Run the full sweep and warn about key languages no route can speak."""
        results = await self.test_all_languages()
        for tag in KEY_LANGUAGES:
            check = results.get(tag)
            if check is not None and not (check.local or check.remote):
                warn(_LOG, "language_unavailable", lang=tag, name=language_name(tag))
                self._report(f"{language_name(tag)} speech may be unavailable", Severity.WARNING)
        return results


# =============================================================================
# Factory
# =============================================================================

def create_orchestrator(
    settings: Settings,
    status_sink: Optional[StatusSink] = None,
) -> SpeechOrchestrator:
    """
    Build an orchestrator with the shipped backends (pyttsx3 + httpx).

    Args:
        settings: Raw settings; validated here.
        status_sink: Optional status callable.

    Raises:
        ConfigValidationError: Settings fail validation.
    """
    from tts_fallback.speech.backends import HttpAudioBackend, Pyttsx3Platform

    config = settings.get_service_config()
    platform = Pyttsx3Platform(driver=config.local.driver, base_rate_wpm=config.local.base_rate_wpm)
    backend = HttpAudioBackend(
        player_command=config.remote.player_command,
        user_agent=config.remote.user_agent,
        timeout=config.remote.start_timeout_s,
    )
    return SpeechOrchestrator(platform, backend, config=config, status_sink=status_sink)
