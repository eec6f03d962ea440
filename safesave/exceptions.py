"""Shared exception types for SafeSave."""


class SafeSaveError(Exception):
    """Base exception for all SafeSave errors."""


class ConfigError(SafeSaveError):
    """Configuration is invalid or missing."""


class SessionClosedError(SafeSaveError):
    """An action was requested on a session that has been closed."""
