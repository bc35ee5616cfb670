"""Tests for pyproject.toml and package installation."""
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

try:
    import tomllib
except ModuleNotFoundError:  # Python 3.10
    tomllib = None

PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


class TestPackageInstallation:
    """Test that the package is properly installed."""

    def test_version_defined(self):
        """Package has a non-empty __version__ string."""
        import tts_fallback

        assert isinstance(tts_fallback.__version__, str)
        assert tts_fallback.__version__

    def test_core_modules_importable(self):
        """Modules without optional hardware dependencies import cleanly."""
        from tts_fallback import cli, main
        from tts_fallback.api import routes, schemas
        from tts_fallback.core import config, logging, metrics
        from tts_fallback.services import orchestrator, status
        from tts_fallback.speech import languages, local, remote, voices

        for module in (cli, main, routes, schemas, config, logging, metrics,
                       orchestrator, status, languages, local, remote, voices):
            assert module is not None


class TestCLIEntryPoint:

    def test_cli_help_exits_zero(self):
        """python -m tts_fallback.cli --help exits with code 0."""
        src = str(Path(__file__).parent.parent / "src")
        result = subprocess.run(
            [sys.executable, "-m", "tts_fallback.cli", "--help"],
            capture_output=True,
            text=True,
            env={**os.environ, "PYTHONPATH": src},
        )
        assert result.returncode == 0
        assert "tts-fallback CLI" in result.stdout


@pytest.mark.skipif(tomllib is None, reason="tomllib needs Python 3.11+")
class TestPyprojectToml:
    """Test pyproject.toml configuration."""

    def _data(self):
        return tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))

    def test_project_name(self):
        assert self._data()["project"]["name"] == "tts-fallback"

    def test_pyproject_has_dependencies(self):
        """Runtime stack is declared."""
        deps = self._data()["project"]["dependencies"]
        dep_names = [d.split(">=")[0].split("[")[0] for d in deps]
        for name in ("fastapi", "uvicorn", "pydantic", "httpx", "PyYAML", "prometheus-client", "pyttsx3"):
            assert name in dep_names

    def test_console_script(self):
        assert self._data()["project"]["scripts"]["tts-fallback"] == "tts_fallback.cli:main"

    def test_test_extra(self):
        extras = self._data()["project"]["optional-dependencies"]
        assert any(d.startswith("pytest") for d in extras["test"])
