"""Shared fixtures and a scripted process runner for testing."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from safesave.core.config import SafeSaveConfig
from safesave.core.events import EventBus
from safesave.vcs.models import ProcessResult


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Prevent .env file and shell env from leaking into tests."""
    monkeypatch.setitem(SafeSaveConfig.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("SAFESAVE_"):
            monkeypatch.delenv(key, raising=False)


NOT_LAUNCHED = ProcessResult(stderr="not found", exit_code=-1, launched=False)


def ok(stdout: str = "", stderr: str = "") -> ProcessResult:
    return ProcessResult(stdout=stdout, stderr=stderr, exit_code=0)


def fail(stderr: str = "", stdout: str = "", exit_code: int = 1) -> ProcessResult:
    return ProcessResult(stdout=stdout, stderr=stderr, exit_code=exit_code)


class ScriptedRunner:
    """In-memory ProcessRunner: answers by (executable, args), records calls.

    Unscripted commands answer as if the executable were missing.
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, tuple[str, ...]], ProcessResult] = {}
        self.calls: list[tuple[str, tuple[str, ...], str]] = []

    def script(self, executable: str, args: list[str], result: ProcessResult) -> None:
        self.responses[(executable, tuple(args))] = result

    async def run(self, executable, args, working_dir) -> ProcessResult:
        self.calls.append((executable, tuple(args), str(working_dir)))
        return self.responses.get((executable, tuple(args)), NOT_LAUNCHED)

    def calls_to(self, executable: str) -> list[tuple[str, ...]]:
        return [args for exe, args, _ in self.calls if exe == executable]


@pytest.fixture
def runner():
    return ScriptedRunner()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def project_dir(tmp_path) -> Path:
    return tmp_path


@pytest.fixture
def config(project_dir):
    return SafeSaveConfig(project_directory=project_dir)


class EventRecorder:
    """Collects every event of the given names emitted on a bus."""

    def __init__(self, bus: EventBus, *names: str) -> None:
        self.events: list = []
        for name in names:
            bus.subscribe(name, self._record)

    async def _record(self, event) -> None:
        self.events.append(event)

    def named(self, name: str) -> list:
        return [e for e in self.events if e.name == name]
