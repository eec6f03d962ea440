"""Pure functions to render status snapshots as labels, tooltips and summaries."""

from datetime import UTC, datetime
from enum import Enum

from safesave.vcs.models import LocalWorkState, ProviderKind, SourceControlStatus

_CLIENT_MISSING_TEXT = (
    "Git or Plastic SCM CLI not found. Install Git or Unity Version Control "
    "(Plastic SCM) CLI and restart the editor."
)
_LOGIN_REQUIRED_TEXT = (
    "Plastic SCM login required. Sign in via Source Control to continue."
)
_NOT_A_REPO_TEXT = "Project is not inside a Git repository or Plastic SCM workspace."


class StatusTone(str, Enum):
    """Badge severity, in the order a UI should check them."""

    WARNING = "warning"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    UNSAVED = "unsaved"
    BEHIND = "behind"
    PENDING = "pending"
    CLEAN = "clean"


def provider_label(provider: ProviderKind) -> str:
    return {
        ProviderKind.GIT: "Git",
        ProviderKind.PLASTIC: "Plastic SCM",
    }.get(provider, "Source Control")


def display_branch(status: SourceControlStatus) -> str:
    """Branch name, falling back to workspace, provider, then 'unknown'."""
    branch = status.branch or status.workspace_name
    if not branch and status.auth_required and status.provider == ProviderKind.PLASTIC:
        branch = "Plastic"
    if not branch:
        branch = "unknown"
    if status.provider == ProviderKind.GIT and "detached" in branch:
        branch = "detached"
    return branch


def state_text(status: SourceControlStatus, local: LocalWorkState) -> str:
    """Right half of the label; "Login Required" marks a partial Plastic probe."""
    if status.auth_required:
        return "Login Required"
    if status.has_conflicts:
        return "Conflicts"
    if local.has_unsaved_assets:
        return f"Unsaved {local.unsaved_count}"
    if status.is_diverged:
        return "Diverged"
    if status.behind > 0:
        return f"Behind {status.behind}"
    if status.pending_changes > 0:
        return "Changes"
    if status.ahead > 0:
        return f"Ahead {status.ahead}"
    return "Clean"


def build_label(status: SourceControlStatus, local: LocalWorkState) -> str:
    """Format the one-line badge text, e.g. ``main | Behind 2``."""
    if not status.client_available:
        return "SCM Missing"
    if status.auth_required and not status.is_repo:
        return "Login Required"
    if not status.is_repo:
        return "No SCM Repo"
    return f"{display_branch(status)} | {state_text(status, local)}"


def status_tone(status: SourceControlStatus, local: LocalWorkState) -> StatusTone:
    if status.auth_required:
        return StatusTone.WARNING
    if not status.client_available or not status.is_repo:
        return StatusTone.UNAVAILABLE
    if status.has_conflicts or status.is_diverged:
        return StatusTone.ERROR
    if local.has_unsaved_assets:
        return StatusTone.UNSAVED
    if status.behind > 0:
        return StatusTone.BEHIND
    if status.pending_changes > 0 or status.ahead > 0:
        return StatusTone.PENDING
    return StatusTone.CLEAN


def _problem_text(status: SourceControlStatus) -> str | None:
    if not status.client_available:
        return _CLIENT_MISSING_TEXT
    if status.auth_required:
        return _LOGIN_REQUIRED_TEXT
    if not status.is_repo:
        return _NOT_A_REPO_TEXT
    return None


def _detail_lines(status: SourceControlStatus, local: LocalWorkState) -> list[str]:
    lines = [f"Provider: {provider_label(status.provider)}"]
    if status.provider == ProviderKind.PLASTIC and status.workspace_name:
        lines.append(f"Workspace: {status.workspace_name}")
    lines.append(f"Root: {status.repo_root}")

    branch = status.branch or status.workspace_name
    if branch:
        lines.append(f"Branch: {branch}")

    if status.provider == ProviderKind.GIT:
        if status.has_upstream:
            lines.append(f"Ahead: {status.ahead}  Behind: {status.behind}")
        else:
            lines.append("Upstream: not set")
        lines.append(
            f"Staged: {status.staged}  Unstaged: {status.unstaged}  "
            f"Untracked: {status.untracked}"
        )
    elif status.provider == ProviderKind.PLASTIC:
        if status.behind > 0:
            lines.append(f"Updates available: {status.behind}")
        lines.append(f"Pending changes: {status.unstaged + status.untracked}")

    if local.has_unsaved_assets:
        lines.append(f"Unsaved assets: {local.unsaved_count}")
        if local.sample_asset_name:
            lines.append(f"Example: {local.sample_asset_name}")
    return lines


def build_tooltip(
    status: SourceControlStatus,
    local: LocalWorkState,
    *,
    now: datetime | None = None,
) -> str:
    problem = _problem_text(status)
    if problem is not None:
        return f"{problem}\n{status.last_error}" if status.last_error else problem

    lines = _detail_lines(status, local)
    if status.last_update_utc is not None:
        age = (now or datetime.now(UTC)) - status.last_update_utc
        lines.append(f"Updated: {int(age.total_seconds())}s ago")
    return "\n".join(lines)


def build_status_summary(status: SourceControlStatus, local: LocalWorkState) -> str:
    """Longer description shown by the 'Show Status Details' action."""
    problem = _problem_text(status)
    if problem is not None:
        if status.last_error:
            return f"{problem}\n\nDetails:\n{status.last_error}"
        return problem
    return "\n".join(_detail_lines(status, local))


def auto_fetch_interval_label(enabled: bool, interval_seconds: float) -> str:
    seconds = max(10, int(interval_seconds))
    if enabled:
        return f"Auto fetch interval: {seconds}s"
    return f"Auto fetch interval: {seconds}s (disabled)"


def truncate_error(text: str, max_length: int = 200) -> str:
    return text.strip()[:max_length]
