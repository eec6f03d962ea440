"""Unified configuration via pydantic-settings, with an optional YAML overlay."""

from pathlib import Path
from typing import Annotated, Any

import structlog
import yaml
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from safesave.exceptions import ConfigError
from safesave.vcs.plastic import DEFAULT_AUTH_KEYWORDS
from safesave.vcs.process import DEFAULT_GIT_EXECUTABLE, DEFAULT_PLASTIC_EXECUTABLE

logger = structlog.get_logger()

SETTINGS_DIR = ".safesave"

_FLOORS = {
    "dirty_check_interval_seconds": 0.1,
    "status_poll_interval_seconds": 1.0,
    "auto_fetch_interval_seconds": 10.0,
    "status_toast_min_interval_seconds": 0.5,
}


class SafeSaveConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SAFESAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    project_directory: Path = Path(".")

    # Polling
    dirty_check_interval_seconds: float = 1.0
    status_poll_interval_seconds: float = 5.0
    tick_interval_seconds: float = 0.5

    # Auto fetch (Git only)
    auto_fetch_enabled: bool = False
    auto_fetch_interval_seconds: float = 120.0

    # Notifications
    toast_on_status_change: bool = True
    status_toast_min_interval_seconds: float = 4.0

    # Host source control integration
    source_control_enabled: bool = False
    source_control_provider: str = ""

    # Executables
    git_executable: str = DEFAULT_GIT_EXECUTABLE
    plastic_executable: str = DEFAULT_PLASTIC_EXECUTABLE

    # Heuristic: substrings of Plastic CLI output that mean "please log in"
    auth_error_keywords: Annotated[list[str], NoDecode] = list(DEFAULT_AUTH_KEYWORDS)

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5

    @field_validator("project_directory")
    @classmethod
    def resolve_project_directory(cls, v: Path) -> Path:
        resolved = v.expanduser().resolve()
        if not resolved.is_dir():
            raise ValueError(f"project directory does not exist: {resolved}")
        return resolved

    @field_validator(*_FLOORS)
    @classmethod
    def clamp_intervals(cls, v: float, info: ValidationInfo) -> float:
        return max(_FLOORS[info.field_name], v)

    @field_validator("tick_interval_seconds")
    @classmethod
    def clamp_tick_interval(cls, v: float) -> float:
        return max(0.05, v)

    @field_validator("auth_error_keywords", mode="before")
    @classmethod
    def parse_auth_error_keywords(cls, v: list[str] | str) -> list[str]:
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v


def load_settings_file(project_dir: Path) -> dict[str, Any]:
    """Read `.safesave/settings.yaml` (or `.yml`) from the project directory.

    Returns an empty dict when the file is missing. Raises ConfigError when the
    file exists but cannot be used.
    """
    settings_dir = project_dir / SETTINGS_DIR
    for ext in ("yaml", "yml"):
        path = settings_dir / f"settings.{ext}"
        if path.is_file():
            break
    else:
        return {}

    try:
        raw = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("settings_yaml_read_failed", path=str(path), error=str(exc))
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")

    logger.info("settings_file_loaded", path=str(path), keys=sorted(raw))
    return raw


def build_config(
    project_dir: Path | None = None, **overrides: Any
) -> SafeSaveConfig:
    """Build a config from env/.env, the project settings file and *overrides*.

    Precedence, highest first: *overrides*, settings file, environment.
    """
    if project_dir is None:
        project_dir = SafeSaveConfig().project_directory
    file_values = load_settings_file(Path(project_dir))
    values = {**file_values, **overrides, "project_directory": project_dir}
    return SafeSaveConfig(**values)
