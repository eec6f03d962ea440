"""Lightweight event bus carrying status and notification updates to the UI."""

from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

logger = structlog.get_logger()

# Event name constants
STATUS_UPDATED = "status.updated"
STATUS_LABEL_CHANGED = "status.label_changed"
ACTIONS_CHANGED = "actions.changed"
NOTIFY = "notify"
COMMAND_COMPLETED = "command.completed"
POLLER_STARTED = "poller.started"
POLLER_STOPPED = "poller.stopped"


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


EventHandler = Callable[[Event], Coroutine[Any, Any, None]]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event_name, []).append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: Event) -> None:
        for handler in list(self._handlers.get(event.name, [])):
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "event_handler_error",
                    event_name=event.name,
                    handler_name=getattr(handler, "__name__", repr(handler)),
                )

    async def notify(self, message: str, success: bool) -> None:
        await self.emit(Event(name=NOTIFY, data={"message": message, "success": success}))
