"""Tests for app wiring and logging setup."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import structlog

from safesave.app import build_session, configure_logging
from safesave.core.config import SafeSaveConfig
from safesave.core.session import SafeSaveSession
from safesave.vcs.models import ProviderKind
from tests.conftest import ScriptedRunner


class TestBuildSession:
    def test_returns_session(self, tmp_path):
        session = build_session(SafeSaveConfig(project_directory=tmp_path))
        assert isinstance(session, SafeSaveSession)
        assert session.config.project_directory == tmp_path.resolve()

    def test_probes_use_configured_executables(self, tmp_path):
        config = SafeSaveConfig(
            project_directory=tmp_path,
            git_executable="/opt/git/bin/git",
            plastic_executable="/opt/plastic/cm",
        )
        session = build_session(config)
        assert session.poller._git_probe.executable == "/opt/git/bin/git"
        assert session.poller._plastic_probe.executable == "/opt/plastic/cm"

    def test_auth_keywords_passed_to_plastic_probe(self, tmp_path):
        config = SafeSaveConfig(
            project_directory=tmp_path, auth_error_keywords=["anmelden"]
        )
        session = build_session(config)
        assert session.poller._plastic_probe._auth_keywords == ("anmelden",)

    def test_preference_from_config(self, tmp_path):
        config = SafeSaveConfig(
            project_directory=tmp_path,
            source_control_enabled=True,
            source_control_provider="Unity Version Control",
        )
        session = build_session(config)
        assert session.poller.preferred_provider() == ProviderKind.PLASTIC

    async def test_executor_refresh_wired_to_poller(self, tmp_path):
        session = build_session(
            SafeSaveConfig(project_directory=tmp_path), runner=ScriptedRunner()
        )
        task = session.executor.on_refresh()
        assert task is not None
        await task

    async def test_executor_liveness_follows_poller(self, tmp_path):
        session = build_session(SafeSaveConfig(project_directory=tmp_path))
        assert session.executor.is_alive() is True
        await session.close()
        assert session.executor.is_alive() is False

    def test_logging_set_up_on_request(self, tmp_path):
        with patch("safesave.app.configure_logging") as configure:
            build_session(
                SafeSaveConfig(project_directory=tmp_path, log_dir=tmp_path / "logs"),
                setup_logging=True,
            )
        configure.assert_called_once()
        assert configure.call_args.kwargs["log_dir"] == tmp_path / "logs"

    def test_relative_log_dir_resolved_against_project(self, tmp_path):
        with patch("safesave.app.configure_logging") as configure:
            build_session(
                SafeSaveConfig(project_directory=tmp_path, log_dir="logs"),
                setup_logging=True,
            )
        assert configure.call_args.kwargs["log_dir"] == tmp_path.resolve() / "logs"


class TestConfigureLogging:
    def test_writes_json_lines(self, tmp_path):
        config = SafeSaveConfig(project_directory=tmp_path, log_level="DEBUG")
        log_dir = tmp_path / "logs"
        try:
            configure_logging(config, log_dir=log_dir)
            structlog.get_logger("safesave.test").info("status_collected", provider="git")
            for handler in logging.getLogger().handlers:
                handler.flush()

            lines = (log_dir / "safesave.log").read_text().splitlines()
            record = json.loads(lines[-1])
            assert record["event"] == "status_collected"
            assert record["provider"] == "git"
            assert record["level"] == "info"
        finally:
            logging.getLogger().handlers.clear()
            structlog.reset_defaults()

    def test_console_only_without_log_dir(self, tmp_path):
        config = SafeSaveConfig(project_directory=tmp_path)
        try:
            configure_logging(config)
            assert len(logging.getLogger().handlers) == 1
        finally:
            logging.getLogger().handlers.clear()
            structlog.reset_defaults()
