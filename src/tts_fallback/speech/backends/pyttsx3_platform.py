"""
pyttsx3 Synthesis Platform.

Offline, on-device synthesis through the operating system's speech
engine (SAPI5 on Windows, NSSpeechSynthesizer on macOS, eSpeak on Linux).

Threading:
    pyttsx3 blocks in runAndWait() and some drivers require the engine to
    be created and driven from one thread, so every engine call runs on a
    single dedicated worker thread. Callbacks (utterance start/end/error,
    voices changed) are marshalled back onto the asyncio loop that first
    queried the platform.

Voice discovery:
    The engine is initialized lazily on the first get_voices() call,
    which returns an empty list until the worker has finished; a "voices
    changed" notification follows. This is the same late-availability
    behavior the voice catalog already retries around.

Limitations:
    - pyttsx3 has no pitch control; pitch is ignored.
    - pyttsx3 has no pause/resume; pause() reports False so the
      utterance is still considered playing.
    - If the engine cannot be initialized (no driver, no audio device)
      the platform reports no voices and fails every utterance with
      "engine-unavailable", which routes speech to the remote mirrors.

Installation:
    pip install pyttsx3
    # Linux additionally needs espeak-ng (apt install espeak-ng)
"""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from tts_fallback.core.logging import debug, get_logger, info, verbose, warn
from tts_fallback.speech.platform import Utterance, VoiceDescriptor, VoicesChangedListener

_LOG = get_logger("tts-fallback.pyttsx3")


def _language_of(voice: Any) -> str:
    """
    First usable language tag reported for a pyttsx3 voice.

    eSpeak reports languages as bytes with a leading priority byte
    (b"\\x05en-us"); other drivers report plain strings such as "en_US".
    """
    for lang in getattr(voice, "languages", None) or []:
        if isinstance(lang, bytes):
            lang = lang.decode("utf-8", errors="ignore")
        lang = "".join(ch for ch in str(lang) if ch.isprintable()).strip()
        if lang:
            return lang.replace("_", "-")
    return ""


def describe_voices(raw_voices: List[Any]) -> List[VoiceDescriptor]:
    """Convert pyttsx3 voices to descriptors, skipping voices without a language."""
    voices = []
    for voice in raw_voices or []:
        tag = _language_of(voice)
        if not tag:
            debug(_LOG, "voice_without_language", voice=getattr(voice, "id", None))
            continue
        voices.append(VoiceDescriptor(
            language_tag=tag,
            native_handle=voice.id,
            name=str(getattr(voice, "name", "") or voice.id),
        ))
    return voices


class Pyttsx3Platform:
    """
    SynthesisPlatform backed by pyttsx3.

    Args:
        driver: pyttsx3 driver name (None = platform default).
        base_rate_wpm: Words per minute at rate 1.0.
    """

    def __init__(self, driver: Optional[str] = None, base_rate_wpm: int = 200):
        self._driver = driver
        self._base_rate_wpm = base_rate_wpm
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tts-fallback-pyttsx3-")
        self._lock = threading.Lock()
        self._engine = None
        self._init_started = False
        self._voices: List[VoiceDescriptor] = []
        self._listeners: List[VoicesChangedListener] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._generation = 0
        self.unavailable_reason: Optional[str] = None

    # ------------------------------------------------------------------
    # Loop marshalling
    # ------------------------------------------------------------------

    def _capture_loop(self) -> None:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                self._loop = None

    def _emit(self, callback: Callable[..., None], *args: Any) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(callback, *args)
        else:
            callback(*args)

    # ------------------------------------------------------------------
    # Engine lifecycle (worker thread)
    # ------------------------------------------------------------------

    def _init_engine(self) -> None:
        try:
            import pyttsx3
            engine = pyttsx3.init(driverName=self._driver)
            raw_voices = engine.getProperty("voices")
        except (ImportError, RuntimeError, OSError) as exc:
            self.unavailable_reason = str(exc) or type(exc).__name__
            warn(_LOG, "engine_unavailable", driver=self._driver, reason=self.unavailable_reason)
        else:
            voices = describe_voices(raw_voices)
            with self._lock:
                self._engine = engine
                self._voices = voices
            info(_LOG, "engine_ready", driver=self._driver or "default", voices=len(voices))
        self._notify_voices_changed()

    def _notify_voices_changed(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            self._emit(listener)

    def _run_utterance(self, utterance: Utterance, generation: int) -> None:
        if generation != self._generation:
            return
        engine = self._engine
        if engine is None:
            self._emit(utterance.on_error, "engine-unavailable")
            return

        errors: List[BaseException] = []
        try:
            self._drive(engine, utterance, errors)
        except Exception as exc:
            errors.append(exc)

        # A cancel() arrived while speaking; the engine side already dropped it
        if generation != self._generation:
            return
        if errors:
            verbose(_LOG, "utterance_error", utterance=utterance.id, error=repr(errors[0]))
            self._emit(utterance.on_error, "synthesis-failed")
        else:
            self._emit(utterance.on_end)

    def _drive(self, engine: Any, utterance: Utterance, errors: List[BaseException]) -> None:
        """Configure the engine for one utterance and block until it is spoken."""
        engine.setProperty("rate", int(self._base_rate_wpm * utterance.rate))
        engine.setProperty("volume", utterance.volume)
        if utterance.voice is not None:
            engine.setProperty("voice", utterance.voice.native_handle)

        started = engine.connect("started-utterance", lambda name: self._emit(utterance.on_start))
        failed = engine.connect("error", lambda name, exception: errors.append(exception))
        try:
            engine.say(utterance.text, str(utterance.id))
            engine.runAndWait()
        finally:
            engine.disconnect(started)
            engine.disconnect(failed)

    # ------------------------------------------------------------------
    # SynthesisPlatform
    # ------------------------------------------------------------------

    def get_voices(self) -> List[VoiceDescriptor]:
        self._capture_loop()
        with self._lock:
            if not self._init_started:
                self._init_started = True
                self._executor.submit(self._init_engine)
            return list(self._voices)

    def add_voices_changed_listener(self, listener: VoicesChangedListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_voices_changed_listener(self, listener: VoicesChangedListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def speak(self, utterance: Utterance) -> None:
        self._capture_loop()
        self._executor.submit(self._run_utterance, utterance, self._generation)

    def cancel(self) -> None:
        self._generation += 1
        engine = self._engine
        if engine is not None:
            engine.stop()

    def pause(self) -> bool:
        verbose(_LOG, "pause_unsupported", driver=self._driver or "default")
        return False

    def resume(self) -> None:
        verbose(_LOG, "resume_unsupported", driver=self._driver or "default")

    def close(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False)
