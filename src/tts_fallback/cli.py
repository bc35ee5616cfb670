"""
Command-Line Interface for tts-fallback.

Speaks text on this machine without running the HTTP service, inspects
the on-device voices, runs the language sweep, or starts the service.

Usage Examples:
    # Speak with the configured default language
    tts-fallback "你好，世界"

    # Per-call overrides
    tts-fallback --text "Hello there" --lang en-US --rate 1.2

    # On-device voices only, no remote fallback
    tts-fallback "Bonjour" --lang fr-FR --no-remote

    # Voice information / status / diagnostic sweep
    tts-fallback --voices
    tts-fallback --status --json
    tts-fallback --test-languages

    # Run the HTTP control service
    tts-fallback --serve --host 0.0.0.0 --port 8000

Environment Variables:
    TTS_FALLBACK_SETTINGS: Settings file (default config/settings.yaml)
    TTS_FALLBACK_LANGUAGE: Default language override
    TTS_FALLBACK_REMOTE_ENABLED: 0 disables the remote fallback
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, List, Optional

from tts_fallback.core.config import ConfigValidationError, Settings, load_settings
from tts_fallback.core.logging import colorize, configure_logging, get_logger, severity_color, warn
from tts_fallback.services.orchestrator import SpeechOrchestrator, create_orchestrator
from tts_fallback.speech.errors import SpeechError

_LOG = get_logger("tts-fallback.cli")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: Optional list of arguments (defaults to sys.argv).

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(description="tts-fallback CLI (local speech with remote fallback)")

    parser.add_argument("text_pos", nargs="?", help="Text to speak (positional)")
    parser.add_argument("--text", help="Text to speak")

    # Per-call voice overrides
    parser.add_argument("--lang", help="Language tag for this call (e.g. ja-JP)")
    parser.add_argument("--rate", type=float, help="Speaking rate multiplier")
    parser.add_argument("--pitch", type=float, help="Pitch multiplier")
    parser.add_argument("--volume", type=float, help="Volume between 0 and 1")
    parser.add_argument("--no-remote", action="store_true", help="Disable the remote fallback")

    # Inspection and diagnostics
    parser.add_argument("--voices", action="store_true", help="Show on-device voice information")
    parser.add_argument("--status", action="store_true", help="Show player status")
    parser.add_argument("--test-languages", action="store_true",
                        help="Check every supported language (local and remote)")

    # Service
    parser.add_argument("--serve", action="store_true", help="Run the HTTP control service")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host for --serve")
    parser.add_argument("--port", type=int, default=8000, help="Bind port for --serve")

    parser.add_argument("--settings", help="Settings file path")
    parser.add_argument("--json", action="store_true", help="Print JSON output")

    return parser.parse_args(argv)


def _print_status(message: str, severity: str) -> None:
    print(colorize(f"[{severity}] {message}", severity_color(severity)), file=sys.stderr)


def _load(args: argparse.Namespace) -> Settings:
    try:
        return load_settings(args.settings)
    except FileNotFoundError as exc:
        if args.settings:
            raise SystemExit(str(exc))
        warn(_LOG, "settings_missing", fallback="defaults")
        return Settings(raw={})


def _speak_options(args: argparse.Namespace) -> Dict[str, Any]:
    fields = {"lang": args.lang, "rate": args.rate, "pitch": args.pitch, "volume": args.volume}
    return {k: v for k, v in fields.items() if v is not None}


async def _run(args: argparse.Namespace, orchestrator: SpeechOrchestrator, text: Optional[str]) -> Dict[str, Any]:
    """Initialize, run the requested action, and always release the backends."""
    try:
        await orchestrator.initialize()
        if args.voices:
            return {"ok": True, **orchestrator.voice_summary()}
        if args.status:
            return {"ok": True, **orchestrator.get_status().to_dict()}
        if args.test_languages:
            results = await orchestrator.test_all_languages()
            return {"ok": True, "results": {tag: p.to_dict() for tag, p in results.items()}}
        result = await orchestrator.speak(text or "", _speak_options(args))
        return result.to_dict()
    finally:
        await orchestrator.aclose()


def _print_human(payload: Dict[str, Any]) -> None:
    if "results" in payload:
        for tag, check in payload["results"].items():
            local = "yes" if check["local"] else "no"
            remote = "yes" if check["remote"] else "no"
            print(f"{tag:6} {check['name']}: local={local} remote={remote}")
    elif "by_language" in payload:
        print(f"voices: {payload['total']}")
        for lang, count in payload["by_language"].items():
            print(f"  {lang}: {count}")
    elif "route" in payload:
        route = payload["route"] or "-"
        print(f"{payload['status']} (route={route}, lang={payload['language']}, {payload['seconds']:.2f}s)")
    else:
        for key, value in payload.items():
            if key != "ok":
                print(f"{key}: {value}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Exit code (0 for success, 1 when speech failed, 2 for bad config).
    """
    args = _parse_args(argv)
    configure_logging()

    if args.serve:
        import uvicorn

        if args.settings:
            os.environ["TTS_FALLBACK_SETTINGS"] = args.settings
        uvicorn.run("tts_fallback.main:app", host=args.host, port=args.port)
        return 0

    text = args.text or args.text_pos
    if text is None and not (args.voices or args.status or args.test_languages):
        raise SystemExit("Provide --text or a positional text.")

    try:
        orchestrator = create_orchestrator(_load(args), status_sink=_print_status)
    except ConfigValidationError as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 2
    if args.no_remote:
        orchestrator.remote_enabled = False

    try:
        payload = asyncio.run(_run(args, orchestrator, text))
    except SpeechError as exc:
        payload = exc.to_dict()
        if args.json:
            print(json.dumps(payload, ensure_ascii=False))
        else:
            print(f"[{exc.code}] {exc.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        _print_human(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
