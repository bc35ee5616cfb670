"""
HTTP Audio Backend.

Plays remote speech by fetching the mirror URL with httpx and piping the
response body into an external player process. Nothing is decoded
in-process; the player (ffplay by default) reads the audio from stdin.

Start semantics (what counts as "playback started"):
    - HTTP 200 with a non-empty body, and
    - the player process was spawned.
Anything else (HTTP status, network error, a URL httpx refuses such as
one that is too long, a missing player) raises AudioStartError, which the
remote client treats as "this mirror is unavailable".

After a successful start:
    - player exits with 0        -> on_ended()
    - player exits with non-zero -> on_error("player-exit-<code>")
    - stop() kills the player; no callback fires afterwards.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional, Sequence

import httpx

from tts_fallback.core.logging import debug, get_logger, verbose
from tts_fallback.speech.errors import AudioStartError

_LOG = get_logger("tts-fallback.audio")


class HttpAudioElement:
    """One fetch-and-play slot. Elements are not reused across mirrors."""

    def __init__(self, client: httpx.AsyncClient, player_command: Sequence[str]):
        self.src = ""
        self.on_ended: Callable[[], None] = lambda: None
        self.on_error: Callable[[str], None] = lambda code: None
        self._client = client
        self._command = tuple(player_command)
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watcher: Optional[asyncio.Task] = None
        self._stopped = False

    async def play(self) -> None:
        if not self.src:
            raise AudioStartError("no audio source assigned")
        try:
            response = await self._client.get(self.src)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AudioStartError(f"request failed: {exc}", {"error": type(exc).__name__}) from exc

        if response.status_code != 200:
            raise AudioStartError(f"HTTP {response.status_code}", {"status": response.status_code})
        audio = response.content
        if not audio:
            raise AudioStartError("empty audio response", {"status": response.status_code})
        if self._stopped:
            return

        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise AudioStartError(f"player failed to start: {exc}", {"player": self._command[0]}) from exc

        debug(_LOG, "player_started", player=self._command[0], bytes=len(audio))
        self._watcher = asyncio.create_task(self._feed_and_wait(self._process, audio))

    async def _feed_and_wait(self, process: asyncio.subprocess.Process, audio: bytes) -> None:
        try:
            await process.communicate(audio)
        except OSError as exc:
            if not self._stopped:
                verbose(_LOG, "player_io_failed", error=repr(exc))
                self.on_error("player-io-error")
            return
        if self._stopped:
            return
        if process.returncode == 0:
            self.on_ended()
        else:
            verbose(_LOG, "player_failed", returncode=process.returncode)
            self.on_error(f"player-exit-{process.returncode}")

    def stop(self) -> None:
        self._stopped = True
        process = self._process
        if process is not None and process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                debug(_LOG, "player_already_exited")


class HttpAudioBackend:
    """
    AudioBackend sharing one httpx.AsyncClient across all elements.

    Args:
        player_command: Command that plays audio read from stdin.
        user_agent: User-Agent header sent to the mirrors.
        timeout: httpx request timeout in seconds.
        client: Pre-built client (tests pass one with a mock transport).
    """

    def __init__(
        self,
        player_command: Sequence[str],
        user_agent: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._player_command = tuple(player_command)
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            follow_redirects=True,
        )

    def new_element(self) -> HttpAudioElement:
        return HttpAudioElement(self._client, self._player_command)

    async def aclose(self) -> None:
        await self._client.aclose()
