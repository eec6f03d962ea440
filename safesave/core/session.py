"""Session facade owning the poller, the executor and the gated actions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from safesave.core.gate import evaluate_actions
from safesave.exceptions import SessionClosedError
from safesave.vcs.formatter import (
    auto_fetch_interval_label,
    build_status_summary,
    build_tooltip,
)
from safesave.vcs.git import FETCH_ARGS, PULL_ARGS, PUSH_ARGS
from safesave.vcs.models import (
    ActionAvailability,
    CommandResult,
    LocalWorkState,
    ProviderKind,
    SourceControlStatus,
)
from safesave.vcs.plastic import UPDATE_ARGS

if TYPE_CHECKING:
    from safesave.core.config import SafeSaveConfig
    from safesave.core.events import EventBus
    from safesave.core.executor import CommandExecutor
    from safesave.core.poller import StatusPoller

logger = structlog.get_logger()

ConfirmCallback = Callable[[str], Awaitable[bool]]

GIT_UNAVAILABLE = "Git is not available for this project."
PULL_DISABLED = "Pull is disabled until the working tree is clean and upstream is set."
PUSH_DISABLED = (
    "Push is disabled until the working tree is clean, ahead, and upstream is set."
)
UPDATE_DISABLED = (
    "Update is disabled until the workspace is clean and there are no unsaved assets."
)

CONFIRM_PULL = "Pull from upstream with rebase? This will update your working tree."
CONFIRM_PUSH = "Push local commits to upstream?"
CONFIRM_UPDATE = "Update workspace to the latest changeset?"


class SafeSaveSession:
    """Owns one poller and one executor for a project directory.

    Mutating actions re-check the gate against the latest snapshot, ask the
    *confirm* sink where the action rewrites the working tree, and then run.
    Without a *confirm* sink the caller is assumed to have asked already.
    """

    def __init__(
        self,
        config: SafeSaveConfig,
        event_bus: EventBus,
        poller: StatusPoller,
        executor: CommandExecutor,
        *,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus
        self.poller = poller
        self.executor = executor
        self._confirm = confirm

    @property
    def status(self) -> SourceControlStatus:
        return self.poller.status

    @property
    def local_work(self) -> LocalWorkState:
        return self.poller.local_work

    @property
    def closed(self) -> bool:
        return self.poller.closed

    def label(self) -> str:
        return self.poller.label

    def actions(self) -> ActionAvailability:
        return evaluate_actions(self.status, self.local_work.has_unsaved_assets)

    def tooltip(self) -> str:
        return build_tooltip(self.status, self.local_work)

    def status_summary(self) -> str:
        return build_status_summary(self.status, self.local_work)

    def auto_fetch_label(self) -> str:
        return auto_fetch_interval_label(
            self.poller.auto_fetch_enabled, self.config.auto_fetch_interval_seconds
        )

    def _working_dir(self) -> Path | str:
        return self.status.repo_root or self.config.project_directory

    def _ensure_open(self) -> None:
        if self.closed:
            raise SessionClosedError("SafeSave session is closed")

    async def start(self) -> None:
        self._ensure_open()
        await self.poller.start()

    async def close(self) -> None:
        await self.poller.close()

    async def refresh(self) -> None:
        self._ensure_open()
        await self.poller.refresh_local_work()
        self.poller.request_update()

    def toggle_auto_fetch(self) -> bool:
        self._ensure_open()
        self.poller.set_auto_fetch(not self.poller.auto_fetch_enabled)
        return self.poller.auto_fetch_enabled

    async def _confirmed(self, question: str) -> bool:
        if self._confirm is None:
            return True
        return await self._confirm(question)

    async def fetch(self) -> CommandResult | None:
        self._ensure_open()
        if not self.actions().can_fetch:
            await self.event_bus.notify(GIT_UNAVAILABLE, False)
            return None
        return await self.executor.run(
            ProviderKind.GIT,
            FETCH_ARGS,
            self._working_dir(),
            success_message="Fetch completed.",
            failure_message="Fetch failed.",
        )

    async def pull(self) -> CommandResult | None:
        self._ensure_open()
        if not self.actions().can_pull:
            await self.event_bus.notify(PULL_DISABLED, False)
            return None
        if not await self._confirmed(CONFIRM_PULL):
            logger.info("action_declined", action="pull")
            return None
        return await self.executor.run(
            ProviderKind.GIT,
            PULL_ARGS,
            self._working_dir(),
            success_message="Pull completed.",
            failure_message="Pull failed.",
        )

    async def push(self) -> CommandResult | None:
        self._ensure_open()
        if not self.actions().can_push:
            await self.event_bus.notify(PUSH_DISABLED, False)
            return None
        if not await self._confirmed(CONFIRM_PUSH):
            logger.info("action_declined", action="push")
            return None
        return await self.executor.run(
            ProviderKind.GIT,
            PUSH_ARGS,
            self._working_dir(),
            success_message="Push completed.",
            failure_message="Push failed.",
        )

    async def update(self) -> CommandResult | None:
        self._ensure_open()
        if not self.actions().can_update:
            await self.event_bus.notify(UPDATE_DISABLED, False)
            return None
        if not await self._confirmed(CONFIRM_UPDATE):
            logger.info("action_declined", action="update")
            return None
        return await self.executor.run(
            ProviderKind.PLASTIC,
            UPDATE_ARGS,
            self._working_dir(),
            success_message="Update completed.",
            failure_message="Update failed.",
        )
