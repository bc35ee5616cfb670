"""
Tests for RemoteSpeechClient ordered mirror failover.

Tests cover:
- URL building (placeholders, percent-encoding, mirror order)
- Sequential failover on start failure, crash, playback error and start timeout
- RemoteExhaustedError after the last mirror
- stop() cancelling the walk without trying further mirrors
- Active element registry bookkeeping
"""
import asyncio

import pytest

from conftest import MIRRORS, FakeAudioBackend
from tts_fallback.speech.errors import RemoteExhaustedError
from tts_fallback.speech.playback import ActiveAudio, PlaybackState, PlayerState, SpeechOutcome
from tts_fallback.speech.remote import RemoteSpeechClient


def _client(behaviours=(), mirrors=MIRRORS, timeout=0.05):
    backend = FakeAudioBackend(behaviours)
    state = PlayerState()
    audio = ActiveAudio()
    client = RemoteSpeechClient(
        backend, mirrors=mirrors, client_id="tw-ob", state=state, audio=audio, start_timeout_s=timeout,
    )
    return client, backend, state, audio


class TestBuildUrls:

    def test_one_url_per_mirror_in_order(self):
        client, _, _, _ = _client()

        urls = client.build_urls("hello", "en")

        assert urls == [
            "https://m1.example/tts?tl=en&client=tw-ob&q=hello",
            "https://m2.example/tts?tl=en&client=tw-ob&q=hello",
            "https://m3.example/tts?tl=en&client=tw-ob&q=hello",
        ]

    def test_text_is_percent_encoded(self):
        client, _, _, _ = _client()

        url = client.build_urls("你好 & bye/now", "zh-TW")[0]

        assert url.endswith("q=%E4%BD%A0%E5%A5%BD%20%26%20bye%2Fnow")
        assert "tl=zh-TW&" in url

    def test_template_without_lang_placeholder(self):
        client, _, _, _ = _client(mirrors=["https://x.example/say?q={text}"])

        assert client.build_urls("hi", "en") == ["https://x.example/say?q=hi"]


class TestFailover:

    def test_first_mirror_success(self):
        client, backend, state, audio = _client(["ok"])

        outcome = asyncio.run(client.speak("hi", "en"))

        assert outcome is SpeechOutcome.COMPLETED
        assert len(backend.elements) == 1
        assert state.state is PlaybackState.IDLE
        assert len(audio) == 0

    @pytest.mark.parametrize("failure", ["start_fail", "crash", "error", "hang"])
    def test_each_failure_kind_moves_on(self, failure):
        client, backend, _, _ = _client([failure, "ok"])

        outcome = asyncio.run(client.speak("hi", "en"))

        assert outcome is SpeechOutcome.COMPLETED
        assert backend.urls == client.build_urls("hi", "en")[:2]

    def test_exhausted(self):
        client, backend, state, audio = _client(["start_fail", "start_fail", "error"])

        with pytest.raises(RemoteExhaustedError) as excinfo:
            asyncio.run(client.speak("hi", "ja"))

        assert excinfo.value.attempts == 3
        assert excinfo.value.details["remote_lang"] == "ja"
        assert excinfo.value.message == "all 3 remote speech mirrors failed"
        assert len(backend.elements) == 3
        assert state.state is PlaybackState.IDLE
        assert len(audio) == 0

    def test_mirrors_are_never_raced(self):
        """Mirror n+1 is only created after mirror n has failed."""
        client, backend, _, _ = _client(["hold", "ok"])

        async def scenario():
            task = asyncio.create_task(client.speak("hi", "en"))
            for _ in range(10):
                await asyncio.sleep(0)
            created = len(backend.elements)
            backend.elements[0].on_error("network")
            outcome = await task
            return created, outcome

        created, outcome = asyncio.run(scenario())

        assert created == 1
        assert outcome is SpeechOutcome.COMPLETED
        assert len(backend.elements) == 2

    def test_playing_remote_while_audio_plays(self):
        client, backend, state, audio = _client(["hold"])

        async def scenario():
            task = asyncio.create_task(client.speak("hi", "en"))
            for _ in range(10):
                await asyncio.sleep(0)
            snapshot = (state.state, len(audio))
            backend.elements[0].on_ended()
            await task
            return snapshot

        playing, registered = asyncio.run(scenario())

        assert playing is PlaybackState.PLAYING_REMOTE
        assert registered == 1
        assert state.state is PlaybackState.IDLE


class TestStop:

    def test_stop_cancels_walk(self):
        client, backend, state, _ = _client(["hold", "ok", "ok"])

        async def scenario():
            task = asyncio.create_task(client.speak("hi", "en"))
            for _ in range(10):
                await asyncio.sleep(0)
            client.stop()
            outcome = await task
            # Ended event arriving after the stop
            backend.elements[0].on_ended()
            return outcome

        outcome = asyncio.run(scenario())

        assert outcome is SpeechOutcome.CANCELLED
        assert len(backend.elements) == 1
        assert backend.elements[0].stop_calls >= 1
        assert state.state is PlaybackState.IDLE

    def test_stop_while_start_pending(self):
        """A stop during a slow start returns CANCELLED without the next mirror."""
        client, backend, _, _ = _client(["hang", "ok"], timeout=5.0)

        async def scenario():
            task = asyncio.create_task(client.speak("hi", "en"))
            for _ in range(10):
                await asyncio.sleep(0)
            client.stop()
            return await asyncio.wait_for(task, timeout=1.0)

        outcome = asyncio.run(scenario())

        assert outcome is SpeechOutcome.CANCELLED
        assert len(backend.elements) == 1
        assert backend.elements[0].stop_calls >= 1

    def test_stop_without_call_is_noop(self):
        client, _, state, _ = _client()

        client.stop()

        assert state.state is PlaybackState.IDLE

    def test_new_speak_stops_previous(self):
        client, backend, _, _ = _client(["hold", "ok"])

        async def scenario():
            first = asyncio.create_task(client.speak("one", "en"))
            for _ in range(10):
                await asyncio.sleep(0)
            second = await client.speak("two", "en")
            return await first, second

        first, second = asyncio.run(scenario())

        assert first is SpeechOutcome.CANCELLED
        assert second is SpeechOutcome.COMPLETED
        assert backend.urls[1].endswith("q=two")
