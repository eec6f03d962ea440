"""Debounced status-change notifications."""

import structlog

logger = structlog.get_logger()

MIN_TOAST_INTERVAL_FLOOR = 0.5


class ChangeNotifier:
    """Decides when a label change is worth a toast.

    The first label seen is recorded silently. Later changes notify only when
    the minimum interval since the previous toast has elapsed; a suppressed
    change is left pending and compared again on the next observation, so a
    burst of changes collapses into one toast carrying the latest label.
    """

    def __init__(self, *, enabled: bool = True, min_interval: float = 4.0) -> None:
        self.enabled = enabled
        self.min_interval = max(MIN_TOAST_INTERVAL_FLOOR, min_interval)
        self._last_label: str | None = None
        self._last_toast_at: float | None = None

    @property
    def last_label(self) -> str | None:
        return self._last_label

    def observe(self, label: str, now: float) -> str | None:
        """Return the label to announce, or None."""
        if self._last_label is None or not self.enabled:
            self._last_label = label
            return None

        if label == self._last_label:
            return None

        if (
            self._last_toast_at is not None
            and now - self._last_toast_at < self.min_interval
        ):
            logger.debug(
                "status_toast_coalesced", label=label, previous=self._last_label
            )
            return None

        self._last_label = label
        self._last_toast_at = now
        return label
