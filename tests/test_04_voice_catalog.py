"""
Tests for VoiceCatalog loading and LanguageCapability.

Tests cover:
- Immediate load when the platform already knows its voices
- Waiting for a voices-changed notification (bounded by a timeout)
- Listener cleanup after the notification or the timeout
- Loaded flag never reverting after a non-empty snapshot
- Loose language matching (exact tag or primary subtag)
"""
import asyncio
from unittest.mock import patch

from conftest import FakePlatform, SleepRecorder, voice
from tts_fallback.speech.voices import LanguageCapability, VoiceCatalog


def _catalog(platform, sleeps=None):
    return VoiceCatalog(platform, retry_delay_s=1.0, changed_timeout_s=0.01, sleep=sleeps or SleepRecorder())


class TestLoad:

    def test_voices_available_immediately(self):
        platform = FakePlatform([voice("en-US"), voice("ja-JP")])
        catalog = _catalog(platform)

        voices = asyncio.run(catalog.load())

        assert len(voices) == 2
        assert catalog.loaded is True
        assert platform.listeners == []

    def test_waits_for_voices_changed(self):
        """An empty first answer waits for the notification, then re-queries."""
        platform = FakePlatform()
        platform.announce_on_listen = [voice("zh-TW")]
        catalog = _catalog(platform)

        voices = asyncio.run(catalog.load())

        assert [v.language_tag for v in voices] == ["zh-TW"]
        assert platform.get_voices_calls == 2
        assert platform.listeners == []

    def test_timeout_removes_listener(self):
        platform = FakePlatform()
        catalog = _catalog(platform)

        voices = asyncio.run(catalog.load())

        assert voices == ()
        assert catalog.loaded is False
        assert platform.listeners == []

    def test_loaded_never_reverts(self):
        """A later empty answer keeps the previous snapshot."""
        platform = FakePlatform([voice("en-US")])
        catalog = _catalog(platform)

        async def scenario():
            await catalog.load()
            platform.voices = []
            await catalog.load()

        asyncio.run(scenario())

        assert catalog.loaded is True
        assert len(catalog) == 1

    def test_new_snapshot_replaces_wholesale(self):
        platform = FakePlatform([voice("en-US")])
        catalog = _catalog(platform)

        async def scenario():
            await catalog.load()
            platform.voices = [voice("ko-KR"), voice("fr-FR")]
            await catalog.load()

        asyncio.run(scenario())

        assert [v.language_tag for v in catalog] == ["ko-KR", "fr-FR"]


class TestLoadWithRetry:

    def test_stops_at_first_non_empty(self):
        platform = FakePlatform([voice("en-US")])
        sleeps = SleepRecorder()
        catalog = _catalog(platform, sleeps)

        assert asyncio.run(catalog.load_with_retry(3)) is True
        assert sleeps.calls == []

    def test_exhausted_attempts_degrade(self):
        sleeps = SleepRecorder()
        catalog = _catalog(FakePlatform(), sleeps)

        assert asyncio.run(catalog.load_with_retry(3)) is False
        assert sleeps.calls == [1.0, 1.0]

    def test_makes_exactly_max_attempts_loads(self):
        platform = FakePlatform()
        catalog = _catalog(platform)

        with patch.object(catalog, "load", wraps=catalog.load) as load:
            loaded = asyncio.run(catalog.load_with_retry(3))

        assert loaded is False
        assert load.await_count == 3
        assert platform.listeners == []

    def test_voices_on_second_attempt(self):
        platform = FakePlatform()
        delays = []

        async def voices_arrive_during_sleep(seconds):
            delays.append(seconds)
            platform.voices = [voice("ja-JP")]

        catalog = _catalog(platform, voices_arrive_during_sleep)
        with patch.object(catalog, "load", wraps=catalog.load) as load:
            loaded = asyncio.run(catalog.load_with_retry(3))

        assert loaded is True
        assert load.await_count == 2
        assert delays == [1.0]


class TestRefreshAndLookup:

    def test_refresh_if_empty(self):
        platform = FakePlatform()
        catalog = _catalog(platform)

        assert catalog.refresh_if_empty() is False
        platform.voices = [voice("en-US")]
        assert catalog.refresh_if_empty() is True
        assert catalog.loaded is True

    def test_refresh_skips_platform_when_loaded(self):
        platform = FakePlatform([voice("en-US")])
        catalog = _catalog(platform)
        asyncio.run(catalog.load())
        calls = platform.get_voices_calls

        assert catalog.refresh_if_empty() is True
        assert platform.get_voices_calls == calls

    def test_find_by_name_or_handle(self):
        platform = FakePlatform([voice("en-US", "Samantha"), voice("ja-JP", "Kyoko")])
        catalog = _catalog(platform)
        asyncio.run(catalog.load())

        assert catalog.find("Kyoko").language_tag == "ja-JP"
        assert catalog.find("id-Samantha").name == "Samantha"
        assert catalog.find("Nobody") is None

    def test_summary_groups_by_primary_subtag(self):
        platform = FakePlatform([voice("en-US"), voice("en_GB"), voice("zh-TW"), voice("zh-CN"), voice("ja-JP")])
        catalog = _catalog(platform)
        asyncio.run(catalog.load())

        assert catalog.summary() == {"total": 5, "by_language": {"en": 2, "ja": 1, "zh": 2}}


class TestLanguageCapability:

    def _capability(self, *tags):
        catalog = _catalog(FakePlatform([voice(tag) for tag in tags]))
        asyncio.run(catalog.load())
        return LanguageCapability(catalog)

    def test_exact_match(self):
        assert self._capability("ja-JP").is_supported("ja-JP") is True

    def test_primary_subtag_match(self):
        """A en-GB-only device is treated as able to speak en-US."""
        capability = self._capability("en-GB")
        assert capability.is_supported("en-US") is True
        assert capability.pick_voice("en-US").language_tag == "en-GB"

    def test_unsupported(self):
        assert self._capability("en-US").is_supported("ko-KR") is False

    def test_empty_catalog_supports_nothing(self):
        capability = LanguageCapability(_catalog(FakePlatform()))
        assert capability.is_supported("en-US") is False
        assert capability.pick_voice("en-US") is None

    def test_first_matching_voice_wins(self):
        catalog = _catalog(FakePlatform([voice("zh-CN", "A"), voice("zh-TW", "B")]))
        asyncio.run(catalog.load())

        assert LanguageCapability(catalog).pick_voice("zh-TW").name == "A"
