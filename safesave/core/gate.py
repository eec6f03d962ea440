"""Action gate: decides which sync actions are safe to offer.

Every mutating action requires a fully clean local state: no pending VCS
changes and no unsaved editor assets.
"""

from safesave.vcs.models import ActionAvailability, ProviderKind, SourceControlStatus


def can_fetch(status: SourceControlStatus) -> bool:
    return (
        status.provider == ProviderKind.GIT
        and status.client_available
        and status.is_repo
    )


def can_pull(status: SourceControlStatus, has_unsaved_assets: bool) -> bool:
    return (
        can_fetch(status)
        and status.has_upstream
        and status.behind > 0
        and status.is_clean
        and not has_unsaved_assets
    )


def can_push(status: SourceControlStatus, has_unsaved_assets: bool) -> bool:
    return (
        can_fetch(status)
        and status.has_upstream
        and status.ahead > 0
        and status.behind == 0
        and status.is_clean
        and not has_unsaved_assets
    )


def can_update(status: SourceControlStatus, has_unsaved_assets: bool) -> bool:
    return (
        status.provider == ProviderKind.PLASTIC
        and status.client_available
        and status.is_repo
        and status.is_clean
        and not has_unsaved_assets
    )


def evaluate_actions(
    status: SourceControlStatus, has_unsaved_assets: bool
) -> ActionAvailability:
    return ActionAvailability(
        can_fetch=can_fetch(status),
        can_pull=can_pull(status, has_unsaved_assets),
        can_push=can_push(status, has_unsaved_assets),
        can_update=can_update(status, has_unsaved_assets),
    )
