"""Runs mutating source control commands (fetch, pull, push, update)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from safesave.core.events import COMMAND_COMPLETED, Event, EventBus
from safesave.vcs.formatter import truncate_error
from safesave.vcs.models import CommandResult, ErrorKind, ProviderKind
from safesave.vcs.process import (
    DEFAULT_GIT_EXECUTABLE,
    DEFAULT_PLASTIC_EXECUTABLE,
    ProcessRunner,
)

logger = structlog.get_logger()

MAX_ERROR_LENGTH = 200


class CommandExecutor:
    """Launches a command off the polling path and reports how it went.

    Results are applied on the event loop once the process exits. When
    *is_alive* reports the owner as gone, the result is dropped without
    notifying or refreshing.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        event_bus: EventBus,
        *,
        git_executable: str = DEFAULT_GIT_EXECUTABLE,
        plastic_executable: str = DEFAULT_PLASTIC_EXECUTABLE,
        on_refresh: Callable[[], Any] | None = None,
        is_alive: Callable[[], bool] = lambda: True,
    ) -> None:
        self._runner = runner
        self._event_bus = event_bus
        self._executables = {
            ProviderKind.GIT: git_executable,
            ProviderKind.PLASTIC: plastic_executable,
        }
        self.on_refresh = on_refresh
        self.is_alive = is_alive
        self._tasks: set[asyncio.Task[CommandResult | None]] = set()

    async def run(
        self,
        provider: ProviderKind,
        args: list[str],
        working_dir: Path | str,
        *,
        success_message: str,
        failure_message: str,
        refresh_after: bool = True,
        silent_success: bool = False,
    ) -> CommandResult | None:
        """Run one command; returns None when the owner went away meanwhile."""
        executable = self._executables[provider]
        command = " ".join(args)
        logger.info("command_started", provider=provider.value, command=command)

        result = await self._runner.run(executable, args, working_dir)
        success = result.ok
        error_text = truncate_error(result.stderr, MAX_ERROR_LENGTH)

        if not self.is_alive():
            logger.debug("command_result_discarded", command=command)
            return None

        if success:
            logger.info("command_succeeded", command=command)
        else:
            logger.warning(
                "command_failed",
                command=command,
                error_kind=ErrorKind.COMMAND_FAILED.value,
                launched=result.launched,
                exit_code=result.exit_code,
                error=error_text,
            )

        if not (success and silent_success):
            await self._event_bus.notify(
                success_message if success else failure_message, success
            )
        if not success and error_text:
            await self._event_bus.notify(error_text, False)

        outcome = CommandResult(
            command=command,
            success=success,
            message=success_message if success else failure_message,
            details="" if success else error_text,
        )
        await self._event_bus.emit(
            Event(
                name=COMMAND_COMPLETED,
                data={"provider": provider.value, "result": outcome},
            )
        )

        if refresh_after and self.on_refresh is not None:
            self.on_refresh()
        return outcome

    def submit(
        self,
        provider: ProviderKind,
        args: list[str],
        working_dir: Path | str,
        **kwargs: Any,
    ) -> asyncio.Task[CommandResult | None]:
        """Fire-and-forget variant of :meth:`run`; the task stays referenced."""
        task = asyncio.create_task(self.run(provider, args, working_dir, **kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)
