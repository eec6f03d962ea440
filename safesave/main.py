"""CLI entry point for SafeSave."""

import asyncio
import signal
import sys

import structlog

from safesave.app import build_session
from safesave.core.config import build_config
from safesave.core.events import NOTIFY, STATUS_LABEL_CHANGED, Event
from safesave.core.session import SafeSaveSession
from safesave.exceptions import ConfigError

logger = structlog.get_logger()


async def _print_label(event: Event) -> None:
    print(event.data["label"])


async def _print_notification(event: Event) -> None:
    marker = "+" if event.data["success"] else "!"
    print(f"[{marker}] {event.data['message']}")


async def _run_status(session: SafeSaveSession) -> None:
    await session.poller.refresh_local_work()
    task = session.poller.request_update()
    if task is not None:
        await task
    print(session.label())
    print()
    print(session.status_summary())
    await session.close()


async def _run_watch(session: SafeSaveSession) -> None:
    session.event_bus.subscribe(STATUS_LABEL_CHANGED, _print_label)
    session.event_bus.subscribe(NOTIFY, _print_notification)
    await session.start()
    print(f"SafeSave watching {session.config.project_directory} (Ctrl+C to exit)")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("cli_shutting_down")
        await session.close()
        print("\nShutdown complete.")


async def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    command = args[0] if args else "watch"
    if command not in ("watch", "status"):
        print("Usage: safesave [watch|status]", file=sys.stderr)
        sys.exit(2)

    try:
        config = build_config()
    except (ConfigError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Set SAFESAVE_PROJECT_DIRECTORY or create a .env file.", file=sys.stderr)
        sys.exit(1)

    session = build_session(config, setup_logging=True)
    if command == "status":
        await _run_status(session)
    else:
        await _run_watch(session)


def run() -> None:
    asyncio.run(main())
