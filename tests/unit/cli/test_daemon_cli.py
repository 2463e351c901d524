"""Unit tests — CLI daemon commands."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from coursegate.cli.main import app
from coursegate.config import Settings

runner = CliRunner()


@pytest.mark.unit
class TestServe:
    def test_serve_invokes_uvicorn_with_overrides(self) -> None:
        with patch("coursegate.config.Settings.load", return_value=Settings()), \
             patch("coursegate.api.server.create_app", return_value=MagicMock()) as mock_create, \
             patch("coursegate.cli.commands.daemon.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["serve", "--port", "8050", "--log-level", "debug"])

        assert result.exit_code == 0, result.output
        mock_create.assert_called_once()
        kwargs = mock_uvicorn.call_args[1]
        assert kwargs["port"] == 8050
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["log_level"] == "debug"

    def test_serve_uses_config_defaults(self) -> None:
        settings = Settings(server={"port": 9001})
        with patch("coursegate.config.Settings.load", return_value=settings), \
             patch("coursegate.api.server.create_app", return_value=MagicMock()), \
             patch("coursegate.cli.commands.daemon.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["serve"])

        assert result.exit_code == 0, result.output
        assert mock_uvicorn.call_args[1]["port"] == 9001


@pytest.mark.unit
class TestStatus:
    def test_status_prints_health(self) -> None:
        response = MagicMock()
        response.json.return_value = {"status": "ok", "version": "0.1.0"}
        with patch("httpx.get", return_value=response):
            result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "ok" in result.output

    def test_status_unreachable(self) -> None:
        with patch("httpx.get", side_effect=httpx.ConnectError("refused")):
            result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "unreachable" in result.output
