"""Tests for status label, tooltip and summary formatting."""

from datetime import UTC, datetime, timedelta

import pytest

from safesave.vcs.formatter import (
    StatusTone,
    auto_fetch_interval_label,
    build_label,
    build_status_summary,
    build_tooltip,
    display_branch,
    provider_label,
    status_tone,
    truncate_error,
)
from safesave.vcs.models import LocalWorkState, ProviderKind, SourceControlStatus

CLEAN = LocalWorkState()
UNSAVED = LocalWorkState(
    has_unsaved_assets=True, unsaved_count=3, sample_asset_name="/Game/Maps/Arena"
)


def _git(**kwargs) -> SourceControlStatus:
    defaults = {
        "provider": ProviderKind.GIT,
        "client_available": True,
        "is_repo": True,
        "has_upstream": True,
        "branch": "main",
        "repo_root": "/work/repo",
    }
    return SourceControlStatus(**{**defaults, **kwargs})


def _plastic(**kwargs) -> SourceControlStatus:
    defaults = {
        "provider": ProviderKind.PLASTIC,
        "client_available": True,
        "is_repo": True,
        "workspace_name": "ws-game",
        "repo_root": "/work/ws",
    }
    return SourceControlStatus(**{**defaults, **kwargs})


class TestBuildLabel:
    def test_client_missing(self):
        assert build_label(SourceControlStatus(), CLEAN) == "SCM Missing"

    def test_not_a_repo(self):
        status = SourceControlStatus(client_available=True)
        assert build_label(status, CLEAN) == "No SCM Repo"

    def test_login_required_without_workspace(self):
        status = SourceControlStatus(
            provider=ProviderKind.PLASTIC, client_available=True, auth_required=True
        )
        assert build_label(status, CLEAN) == "Login Required"

    def test_login_required_with_partial_workspace(self):
        status = _plastic(auth_required=True, workspace_name="")
        assert build_label(status, CLEAN) == "Plastic | Login Required"

    def test_clean(self):
        assert build_label(_git(), CLEAN) == "main | Clean"

    @pytest.mark.parametrize(
        ("kwargs", "local", "expected"),
        [
            ({"has_conflicts": True, "behind": 2}, UNSAVED, "main | Conflicts"),
            ({"ahead": 1, "behind": 1}, UNSAVED, "main | Unsaved 3"),
            ({"ahead": 1, "behind": 1, "unstaged": 4}, CLEAN, "main | Diverged"),
            ({"behind": 2, "unstaged": 4}, CLEAN, "main | Behind 2"),
            ({"ahead": 2, "untracked": 1}, CLEAN, "main | Changes"),
            ({"ahead": 2}, CLEAN, "main | Ahead 2"),
        ],
    )
    def test_state_precedence(self, kwargs, local, expected):
        assert build_label(_git(**kwargs), local) == expected

    def test_plastic_uses_workspace_when_no_branch(self):
        assert build_label(_plastic(behind=4), CLEAN) == "ws-game | Behind 4"


class TestDisplayBranch:
    def test_detached_git(self):
        assert display_branch(_git(branch="(detached)")) == "detached"

    def test_detached_only_for_git(self):
        assert display_branch(_plastic(branch="/main/detached")) == "/main/detached"

    def test_unknown(self):
        assert display_branch(_git(branch="")) == "unknown"


class TestStatusTone:
    def test_tones(self):
        assert status_tone(SourceControlStatus(), CLEAN) == StatusTone.UNAVAILABLE
        assert status_tone(_plastic(auth_required=True), CLEAN) == StatusTone.WARNING
        assert status_tone(_git(ahead=1, behind=1), CLEAN) == StatusTone.ERROR
        assert status_tone(_git(), UNSAVED) == StatusTone.UNSAVED
        assert status_tone(_git(behind=1), CLEAN) == StatusTone.BEHIND
        assert status_tone(_git(staged=1), CLEAN) == StatusTone.PENDING
        assert status_tone(_git(), CLEAN) == StatusTone.CLEAN


class TestTooltipAndSummary:
    def test_git_tooltip(self):
        now = datetime(2026, 1, 1, 12, 0, 30, tzinfo=UTC)
        status = _git(
            ahead=1,
            staged=2,
            last_update_utc=now - timedelta(seconds=12),
        )
        text = build_tooltip(status, UNSAVED, now=now)
        assert text.splitlines() == [
            "Provider: Git",
            "Root: /work/repo",
            "Branch: main",
            "Ahead: 1  Behind: 0",
            "Staged: 2  Unstaged: 0  Untracked: 0",
            "Unsaved assets: 3",
            "Example: /Game/Maps/Arena",
            "Updated: 12s ago",
        ]

    def test_git_without_upstream(self):
        text = build_status_summary(_git(has_upstream=False), CLEAN)
        assert "Upstream: not set" in text

    def test_plastic_summary(self):
        text = build_status_summary(_plastic(behind=3, unstaged=1, untracked=2), CLEAN)
        assert text.splitlines() == [
            "Provider: Plastic SCM",
            "Workspace: ws-game",
            "Root: /work/ws",
            "Branch: ws-game",
            "Updates available: 3",
            "Pending changes: 3",
        ]

    def test_missing_client_with_details(self):
        status = SourceControlStatus(last_error="Git: Git executable not found.")
        summary = build_status_summary(status, CLEAN)
        assert summary.startswith("Git or Plastic SCM CLI not found.")
        assert summary.endswith("\n\nDetails:\nGit: Git executable not found.")
        tooltip = build_tooltip(status, CLEAN)
        assert tooltip.endswith("\nGit: Git executable not found.")

    def test_not_a_repo_without_error(self):
        status = SourceControlStatus(client_available=True)
        assert build_tooltip(status, CLEAN) == (
            "Project is not inside a Git repository or Plastic SCM workspace."
        )


class TestMisc:
    def test_provider_label(self):
        assert provider_label(ProviderKind.GIT) == "Git"
        assert provider_label(ProviderKind.PLASTIC) == "Plastic SCM"
        assert provider_label(ProviderKind.NONE) == "Source Control"

    def test_auto_fetch_interval_label(self):
        assert auto_fetch_interval_label(True, 120.0) == "Auto fetch interval: 120s"
        assert (
            auto_fetch_interval_label(False, 3.0)
            == "Auto fetch interval: 10s (disabled)"
        )

    def test_truncate_error(self):
        assert truncate_error("  x" * 300) == ("x" + "  x" * 299)[:200]
        assert len(truncate_error("e" * 500)) == 200
