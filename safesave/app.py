"""Bootstrap: wires all components together."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from safesave.core.config import SafeSaveConfig, build_config
from safesave.core.events import EventBus
from safesave.core.executor import CommandExecutor
from safesave.core.poller import StatusPoller
from safesave.core.session import SafeSaveSession
from safesave.vcs.git import GitStatusProbe
from safesave.vcs.models import LocalWorkState
from safesave.vcs.plastic import PlasticStatusProbe
from safesave.vcs.process import ProcessRunner

if TYPE_CHECKING:
    from safesave.core.poller import LocalWorkSource
    from safesave.core.session import ConfirmCallback

logger = structlog.get_logger()


def _resolve_against(path: Path, base: Path) -> Path:
    """Return *path* unchanged if absolute, otherwise resolve it against *base*."""
    return path if path.is_absolute() else base / path


def configure_logging(config: SafeSaveConfig, *, log_dir: Path | None = None) -> None:
    """Set up structlog with console output and optional rotating JSON file handler."""
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level)
    root_logger.handlers.clear()

    # Console handler, colored
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(),
        )
    )
    root_logger.addHandler(console_handler)

    # File handler, JSON lines
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "safesave.log",
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
            )
        )
        root_logger.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_session(
    config: SafeSaveConfig | None = None,
    *,
    local_work: LocalWorkSource = LocalWorkState,
    confirm: ConfirmCallback | None = None,
    runner: ProcessRunner | None = None,
    event_bus: EventBus | None = None,
    setup_logging: bool = False,
) -> SafeSaveSession:
    if config is None:
        config = build_config()

    if setup_logging:
        log_dir = (
            _resolve_against(config.log_dir, config.project_directory)
            if config.log_dir is not None
            else None
        )
        configure_logging(config, log_dir=log_dir)

    runner = runner or ProcessRunner()
    event_bus = event_bus or EventBus()

    executor = CommandExecutor(
        runner,
        event_bus,
        git_executable=config.git_executable,
        plastic_executable=config.plastic_executable,
    )
    poller = StatusPoller(
        config,
        event_bus,
        git_probe=GitStatusProbe(runner, config.git_executable),
        plastic_probe=PlasticStatusProbe(
            runner,
            config.plastic_executable,
            auth_keywords=config.auth_error_keywords,
        ),
        executor=executor,
        local_work=local_work,
    )
    executor.on_refresh = poller.request_update
    executor.is_alive = lambda: not poller.closed

    logger.info(
        "session_built",
        project_directory=str(config.project_directory),
        preferred_provider=poller.preferred_provider().value,
    )
    return SafeSaveSession(config, event_bus, poller, executor, confirm=confirm)
