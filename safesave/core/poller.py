"""Status poller: the only writer of the shared status snapshot."""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from safesave.core.events import (
    ACTIONS_CHANGED,
    POLLER_STARTED,
    POLLER_STOPPED,
    STATUS_LABEL_CHANGED,
    STATUS_UPDATED,
    Event,
)
from safesave.core.gate import evaluate_actions
from safesave.core.notifier import ChangeNotifier
from safesave.vcs.formatter import build_label
from safesave.vcs.git import FETCH_ARGS
from safesave.vcs.models import (
    LocalWorkState,
    ProbeResult,
    ProviderKind,
    SourceControlStatus,
)
from safesave.vcs.resolver import resolve_preferred_provider

if TYPE_CHECKING:
    from safesave.core.config import SafeSaveConfig
    from safesave.core.events import EventBus
    from safesave.core.executor import CommandExecutor
    from safesave.vcs.git import GitStatusProbe
    from safesave.vcs.plastic import PlasticStatusProbe

logger = structlog.get_logger()

LocalWorkSource = Callable[[], LocalWorkState]


def combine_probe_failures(
    git: ProbeResult, plastic: ProbeResult
) -> SourceControlStatus:
    """Status reported when neither provider found a repository."""
    errors: list[str] = []
    if git.error:
        errors.append(f"Git: {git.error}")
    if plastic.error:
        errors.append(f"Plastic SCM: {plastic.error}")
    return SourceControlStatus(
        provider=ProviderKind.NONE,
        client_available=git.status.client_available
        or plastic.status.client_available,
        is_repo=False,
        last_error="\n".join(errors),
    )


class StatusPoller:
    """Refreshes the status snapshot without ever overlapping itself.

    ``request_update`` is dropped, not queued, while a refresh is in flight;
    the next periodic tick retries. All state lives on the event loop, so the
    in-flight check-and-set needs no lock.
    """

    def __init__(
        self,
        config: SafeSaveConfig,
        event_bus: EventBus,
        *,
        git_probe: GitStatusProbe,
        plastic_probe: PlasticStatusProbe,
        executor: CommandExecutor | None = None,
        local_work: LocalWorkSource = LocalWorkState,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._event_bus = event_bus
        self._git_probe = git_probe
        self._plastic_probe = plastic_probe
        self._executor = executor
        self._local_work_source = local_work
        self._clock = clock

        self._status = SourceControlStatus()
        self._local_work = LocalWorkState()
        self._in_flight = False
        self._closed = False
        self._last_poll_at: float | None = None
        self._last_dirty_check_at: float | None = None
        self._last_auto_fetch_at = clock()
        self.auto_fetch_enabled = config.auto_fetch_enabled

        self.notifier = ChangeNotifier(
            enabled=config.toast_on_status_change,
            min_interval=config.status_toast_min_interval_seconds,
        )
        self._refresh_tasks: set[asyncio.Task[SourceControlStatus | None]] = set()
        self._loop_task: asyncio.Task[None] | None = None

    @property
    def status(self) -> SourceControlStatus:
        return self._status

    @property
    def local_work(self) -> LocalWorkState:
        return self._local_work

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def label(self) -> str:
        return build_label(self._status, self._local_work)

    def preferred_provider(self) -> ProviderKind:
        return resolve_preferred_provider(
            self.config.source_control_enabled, self.config.source_control_provider
        )

    def request_update(self) -> asyncio.Task[SourceControlStatus | None] | None:
        if self._closed or self._in_flight:
            return None
        self._in_flight = True
        task = asyncio.create_task(self._refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)
        return task

    async def _refresh(self) -> SourceControlStatus | None:
        try:
            snapshot = await self._collect()
        except Exception:
            logger.exception("status_refresh_failed")
            self._in_flight = False
            return None

        if self._closed:
            logger.debug("status_result_discarded")
            self._in_flight = False
            return None

        await self._apply(snapshot)
        return snapshot

    async def _collect(self) -> SourceControlStatus:
        project_dir = self.config.project_directory
        preferred = self.preferred_provider()

        if preferred == ProviderKind.PLASTIC:
            status = (await self._plastic_probe.probe(project_dir)).status
        elif preferred == ProviderKind.GIT:
            status = (await self._git_probe.probe(project_dir)).status
        else:
            git = await self._git_probe.probe(project_dir)
            if git.repo_found:
                status = git.status
            else:
                plastic = await self._plastic_probe.probe(project_dir)
                if plastic.repo_found:
                    status = plastic.status
                else:
                    status = combine_probe_failures(git, plastic)

        logger.debug(
            "status_collected",
            preferred=preferred.value,
            provider=status.provider.value,
            is_repo=status.is_repo,
        )
        return status.model_copy(update={"last_update_utc": datetime.now(UTC)})

    async def _apply(self, snapshot: SourceControlStatus) -> None:
        previous = self._status
        self._status = snapshot
        self._in_flight = False

        if previous.provider != snapshot.provider or previous.is_repo != snapshot.is_repo:
            logger.info(
                "status_provider_changed",
                provider=snapshot.provider.value,
                is_repo=snapshot.is_repo,
                error=snapshot.last_error,
            )

        await self._event_bus.emit(
            Event(name=STATUS_UPDATED, data={"status": snapshot})
        )
        await self._emit_view_changes()
        await self.maybe_notify()

    async def _emit_view_changes(self) -> None:
        """Publish the label and action availability for the current state."""
        await self._event_bus.emit(
            Event(name=STATUS_LABEL_CHANGED, data={"label": self.label})
        )
        await self._event_bus.emit(
            Event(
                name=ACTIONS_CHANGED,
                data={
                    "availability": evaluate_actions(
                        self._status, self._local_work.has_unsaved_assets
                    )
                },
            )
        )

    async def maybe_notify(self) -> None:
        # nothing to compare against until the first snapshot lands
        if self._status.last_update_utc is None:
            return
        announce = self.notifier.observe(self.label, self._clock())
        if announce is not None:
            await self._event_bus.notify(f"SafeSave: {announce}", True)

    async def refresh_local_work(self) -> None:
        previous = self._local_work
        try:
            self._local_work = self._local_work_source()
        except Exception:
            logger.exception("local_work_read_failed")
            return
        if self._local_work != previous:
            await self._emit_view_changes()
        await self.maybe_notify()

    def set_auto_fetch(self, enabled: bool) -> None:
        self.auto_fetch_enabled = enabled
        self._last_auto_fetch_at = self._clock()
        logger.info("auto_fetch_toggled", enabled=enabled)

    async def tick(self) -> None:
        """One scheduler step: dirty check, status poll, auto fetch."""
        if self._closed:
            return
        now = self._clock()

        if (
            self._last_dirty_check_at is None
            or now - self._last_dirty_check_at
            >= self.config.dirty_check_interval_seconds
        ):
            await self.refresh_local_work()
            self._last_dirty_check_at = now

        if (
            self._last_poll_at is None
            or now - self._last_poll_at >= self.config.status_poll_interval_seconds
        ):
            self.request_update()
            self._last_poll_at = now

        self._maybe_auto_fetch(now)

    def _maybe_auto_fetch(self, now: float) -> None:
        if not self.auto_fetch_enabled or self._executor is None:
            return
        status = self._status
        if (
            status.provider != ProviderKind.GIT
            or not status.client_available
            or not status.is_repo
            or self._in_flight
        ):
            return
        if now - self._last_auto_fetch_at < self.config.auto_fetch_interval_seconds:
            return

        logger.info("auto_fetch_started", repo_root=status.repo_root)
        self._executor.submit(
            ProviderKind.GIT,
            FETCH_ARGS,
            status.repo_root or self.config.project_directory,
            success_message="Auto fetch completed.",
            failure_message="Auto fetch failed.",
            refresh_after=True,
            silent_success=True,
        )
        self._last_auto_fetch_at = now

    async def _run_loop(self) -> None:
        while not self._closed:
            try:
                await self.tick()
            except Exception:
                logger.exception("poller_tick_failed")
            await asyncio.sleep(self.config.tick_interval_seconds)

    async def start(self) -> None:
        if self._loop_task is not None or self._closed:
            return
        self._loop_task = asyncio.create_task(self._run_loop())
        await self._event_bus.emit(Event(name=POLLER_STARTED))
        logger.info(
            "poller_started", project_directory=str(self.config.project_directory)
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None
        await self._event_bus.emit(Event(name=POLLER_STOPPED))
        logger.info("poller_stopped")
