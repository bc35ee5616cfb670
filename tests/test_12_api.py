"""
Tests for the HTTP control API.

The app is created with an injected orchestrator wired to the fakes, so
the lifespan handler never builds the real pyttsx3/httpx backends.
"""
from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import FakePlatform, build_orchestrator, voice
from tts_fallback.main import create_app
from tts_fallback.services.status import StatusBoard


def _client(**kwargs):
    board = StatusBoard()
    orch, platform, backend, sleeps, _ = build_orchestrator(status_sink=board, **kwargs)
    app = create_app(orchestrator=orch, status_board=board)
    return app, orch, platform, backend, board


class TestSpeakEndpoint:

    def test_speak_local(self):
        app, _, platform, _, _ = _client(voices=[voice("zh-TW")])

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "你好"})

        assert r.status_code == 200
        j = r.json()
        assert j["ok"] is True
        assert j["route"] == "local"
        assert j["request_id"]
        assert platform.spoken[0].text == "你好"

    def test_speak_remote_with_overrides(self):
        app, orch, _, backend, _ = _client(voices=[voice("zh-TW")])

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "テスト", "lang": "ja-JP", "rate": 1.1})

        assert r.status_code == 200
        assert r.json()["route"] == "remote"
        assert r.json()["remote_lang"] == "ja"
        assert "tl=ja&" in backend.urls[0]
        assert orch.settings.language == "zh-TW"

    def test_exhausted_is_502(self):
        app, _, _, _, _ = _client(behaviours=["start_fail"] * 3)

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "hello", "lang": "en-US"})

        assert r.status_code == 502
        j = r.json()
        assert j["ok"] is False
        assert j["error"] == "REMOTE_EXHAUSTED"
        assert j["details"]["attempts"] == 3
        assert "request_id" in j

    def test_unsupported_is_422(self):
        app, _, _, _, _ = _client(remote_enabled=False)

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "hello", "lang": "en-US"})

        assert r.status_code == 422
        assert r.json()["error"] == "UNSUPPORTED_LANGUAGE"

    def test_invalid_rate_is_400(self):
        app, _, _, _, _ = _client()

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "hello", "rate": 0})

        assert r.status_code == 400
        assert r.json()["error"] == "INVALID_INPUT"

    def test_blank_text_is_skipped(self):
        app, _, _, _, board = _client()

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "  "})

        assert r.status_code == 200
        assert r.json()["status"] == "skipped"
        assert board.latest.severity == "warning"

    def test_text_too_long_is_rejected(self):
        app, _, _, _, _ = _client()

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "x" * 4001})

        assert r.status_code == 422

    def test_no_wait_returns_202(self):
        app, _, _, _, _ = _client(voices=[voice("zh-TW")])

        with TestClient(app) as c:
            r = c.post("/v1/speak", json={"text": "你好", "wait": False})

        assert r.status_code == 202
        j = r.json()
        assert j["status"] == "accepted"
        assert j["request_id"]


class TestControlEndpoints:

    def test_stop(self):
        app, _, _, _, _ = _client()

        with TestClient(app) as c:
            r = c.post("/v1/stop")

        assert r.json() == {"ok": True, "state": "idle"}

    def test_pause_resume_when_idle(self):
        app, _, _, _, _ = _client()

        with TestClient(app) as c:
            paused = c.post("/v1/pause").json()
            resumed = c.post("/v1/resume").json()

        assert paused["paused"] is False
        assert resumed["resumed"] is False

    def test_update_settings(self):
        app, orch, _, _, _ = _client(voices=[voice("ja-JP", "Kyoko")])

        with TestClient(app) as c:
            r = c.patch("/v1/settings", json={
                "rate": 1.2, "volume": 0.5, "lang": "ja-JP", "voice": "Kyoko", "remote_enabled": False,
            })

        assert r.status_code == 200
        settings = r.json()["settings"]
        assert settings == {
            "rate": 1.2, "pitch": 1.0, "volume": 0.5, "lang": "ja-JP", "voice": "Kyoko", "remote_enabled": False,
        }
        assert orch.remote_enabled is False

    def test_empty_voice_clears_preference(self):
        app, orch, _, _, _ = _client(voices=[voice("ja-JP", "Kyoko")])

        with TestClient(app) as c:
            c.patch("/v1/settings", json={"voice": "Kyoko"})
            r = c.patch("/v1/settings", json={"voice": ""})

        assert r.json()["settings"]["voice"] is None

    def test_invalid_settings_are_400(self):
        app, _, _, _, _ = _client()

        with TestClient(app) as c:
            bad_volume = c.patch("/v1/settings", json={"volume": 2})
            bad_voice = c.patch("/v1/settings", json={"voice": "Nobody"})

        assert bad_volume.status_code == 400
        assert bad_voice.status_code == 400
        assert bad_voice.json()["details"] == {"field": "voice"}


class TestInspectionEndpoints:

    def test_status_includes_messages(self):
        app, _, _, _, _ = _client(voices=[voice("zh-TW")])

        with TestClient(app) as c:
            c.post("/v1/speak", json={"text": "你好"})
            j = c.get("/v1/status").json()

        assert j["is_playing"] is False
        assert j["voices_loaded"] is True
        assert j["current_language"] == "zh-TW"
        assert j["state"] == "idle"
        assert j["messages"][-1]["message"].startswith("Local speech")
        assert j["messages"][-1]["severity"] == "playing"

    def test_languages(self):
        app, _, _, _, _ = _client(voices=[voice("en-GB")])

        with TestClient(app) as c:
            langs = c.get("/v1/languages").json()["languages"]

        by_tag = {entry["tag"]: entry for entry in langs}
        assert len(by_tag) == 10
        assert by_tag["en-US"]["local"] is True
        assert by_tag["ja-JP"]["local"] is False
        assert by_tag["zh-HK"]["remote_code"] == "zh-TW"

    def test_language_sweep_subset(self):
        app, _, _, backend, _ = _client()

        with TestClient(app) as c:
            r = c.post("/v1/languages/test", json={"languages": ["ja-JP", "ko-KR"]})

        results = r.json()["results"]
        assert set(results) == {"ja-JP", "ko-KR"}
        assert results["ja-JP"]["remote"] is True
        assert len(backend.elements) == 2

    def test_voices(self):
        app, _, _, _, _ = _client(voices=[voice("en-US", "Samantha"), voice("ja-JP", "Kyoko")])

        with TestClient(app) as c:
            j = c.get("/v1/voices").json()

        assert j["loaded"] is True
        assert j["total"] == 2
        assert {"name": "Kyoko", "lang": "ja-JP", "id": "id-Kyoko"} in j["voices"]

    def test_health_degraded_without_voices(self):
        app, _, _, _, _ = _client()

        with TestClient(app) as c:
            j = c.get("/health").json()

        assert j["ok"] is True
        assert j["degraded"] is True
        assert j["voices"] == 0
        assert j["remote_enabled"] is True
        assert j["mirrors"] == 3

    def test_health_with_voices(self):
        app, _, _, _, _ = _client(voices=[voice("zh-TW")])

        with TestClient(app) as c:
            j = c.get("/health").json()

        assert j["degraded"] is False
        assert j["voices"] == 1

    def test_metrics_endpoint(self):
        app, _, _, _, _ = _client(voices=[voice("zh-TW")])

        with TestClient(app) as c:
            c.post("/v1/speak", json={"text": "你好"})
            r = c.get("/metrics")

        assert r.status_code == 200
        assert "text/plain" in r.headers["content-type"]
        assert "tts_fallback_speak_total" in r.text


class TestLifespan:

    def test_shutdown_closes_backends(self):
        app, _, _, backend, _ = _client()

        with TestClient(app):
            pass

        assert backend.closed is True

    def test_startup_sweep_runs_in_background(self):
        platform = FakePlatform([voice("en-US")])
        app, _, _, _, board = _client(platform=platform, remote_enabled=False,
                                      diagnostics={"run_on_startup": True})

        with TestClient(app) as c:
            c.get("/health")
            c.get("/health")

        warnings = [m["message"] for m in board.history() if m["severity"] == "warning"]
        assert "日本語 speech may be unavailable" in warnings
