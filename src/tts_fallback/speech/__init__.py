"""
Speech source selection and playback.

    - voices.py: VoiceCatalog (retrying voice discovery), LanguageCapability
    - local.py: LocalSpeechEngine (one on-device utterance at a time)
    - remote.py: RemoteSpeechClient (ordered mirror failover)
    - playback.py: shared PlayerState and single-settlement attempts
    - languages.py: language tables and the tag fallback rule
    - platform.py: collaborator protocols implemented by backends/
"""
from tts_fallback.speech.errors import (
    AudioStartError,
    ErrorCode,
    InvalidSettingError,
    LocalSynthesisError,
    RemoteExhaustedError,
    RemoteMirrorError,
    SpeechError,
    UnsupportedLanguageError,
)
from tts_fallback.speech.playback import PlaybackState, PlayerState, SpeechOutcome
from tts_fallback.speech.platform import Utterance, VoiceDescriptor
from tts_fallback.speech.settings import SpeakOptions, VoiceSettings

__all__ = [
    "AudioStartError",
    "ErrorCode",
    "InvalidSettingError",
    "LocalSynthesisError",
    "PlaybackState",
    "PlayerState",
    "RemoteExhaustedError",
    "RemoteMirrorError",
    "SpeakOptions",
    "SpeechError",
    "SpeechOutcome",
    "UnsupportedLanguageError",
    "Utterance",
    "VoiceDescriptor",
    "VoiceSettings",
]
