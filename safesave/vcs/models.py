"""Data models for source control probes and commands."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProviderKind(str, Enum):
    NONE = "none"
    GIT = "git"
    PLASTIC = "plastic"


class ErrorKind(str, Enum):
    CLIENT_MISSING = "client_missing"
    NOT_A_REPO = "not_a_repo"
    AUTH_REQUIRED = "auth_required"
    COMMAND_FAILED = "command_failed"
    PARSE_INCOMPLETE = "parse_incomplete"


class SourceControlStatus(BaseModel):
    """Normalized status snapshot, replaced wholesale on every poll.

    ``auth_required`` is only ever set by the Plastic probe. Git authentication
    failures surface as a plain ``last_error``.
    """

    model_config = ConfigDict(frozen=True)

    provider: ProviderKind = ProviderKind.NONE
    client_available: bool = False
    is_repo: bool = False
    auth_required: bool = False
    has_upstream: bool = False
    has_conflicts: bool = False
    ahead: int = Field(default=0, ge=0)
    behind: int = Field(default=0, ge=0)
    staged: int = Field(default=0, ge=0)
    unstaged: int = Field(default=0, ge=0)
    untracked: int = Field(default=0, ge=0)
    branch: str = ""
    repo_root: str = ""
    workspace_name: str = ""
    last_error: str = ""
    last_update_utc: datetime | None = None

    @property
    def pending_changes(self) -> int:
        return self.staged + self.unstaged + self.untracked

    @property
    def is_clean(self) -> bool:
        return self.pending_changes == 0

    @property
    def is_diverged(self) -> bool:
        return self.ahead > 0 and self.behind > 0


class LocalWorkState(BaseModel):
    """Unsaved editor work, supplied by the host."""

    model_config = ConfigDict(frozen=True)

    has_unsaved_assets: bool = False
    unsaved_count: int = Field(default=0, ge=0)
    sample_asset_name: str = ""


class ProcessResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    launched: bool = True

    @property
    def ok(self) -> bool:
        return self.launched and self.exit_code == 0


class ProbeResult(BaseModel):
    """Outcome of probing one provider for status."""

    model_config = ConfigDict(frozen=True)

    status: SourceControlStatus
    error: str = ""
    repo_found: bool = False


class ActionAvailability(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_fetch: bool = False
    can_pull: bool = False
    can_push: bool = False
    can_update: bool = False


class CommandResult(BaseModel):
    """Result from a mutating source control command."""

    model_config = ConfigDict(frozen=True)

    command: str
    success: bool
    message: str
    details: str = ""


def classify_status(status: SourceControlStatus) -> ErrorKind | None:
    """Map a snapshot onto the error taxonomy, or None when fully healthy."""
    if not status.client_available:
        return ErrorKind.CLIENT_MISSING
    if status.auth_required:
        return ErrorKind.AUTH_REQUIRED
    if not status.is_repo:
        return ErrorKind.NOT_A_REPO
    if status.last_error:
        return ErrorKind.PARSE_INCOMPLETE
    return None
