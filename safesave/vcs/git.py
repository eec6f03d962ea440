"""Git status probe built on ``git status --porcelain=v2 -b``."""

import re
from pathlib import Path

import structlog

from safesave.vcs.models import ProbeResult, ProviderKind, SourceControlStatus
from safesave.vcs.process import DEFAULT_GIT_EXECUTABLE, ProcessRunner

logger = structlog.get_logger()

TOPLEVEL_ARGS = ["rev-parse", "--show-toplevel"]
STATUS_ARGS = ["status", "--porcelain=v2", "-b"]
FETCH_ARGS = ["fetch", "--prune"]
PULL_ARGS = ["pull", "--rebase"]
PUSH_ARGS = ["push"]

_HEAD_PREFIX = "# branch.head "
_LEADING_INT_RE = re.compile(r"^\d+")


def _leading_int(text: str) -> int:
    match = _LEADING_INT_RE.match(text)
    return int(match.group(0)) if match else 0


def parse_git_status(
    output: str, status: SourceControlStatus
) -> SourceControlStatus:
    """Apply porcelain v2 output on top of *status* and return the new snapshot."""
    branch = status.branch
    has_upstream = status.has_upstream
    has_conflicts = status.has_conflicts
    ahead = status.ahead
    behind = status.behind
    staged = 0
    unstaged = 0
    untracked = 0

    for line in output.splitlines():
        if not line:
            continue
        if line.startswith(_HEAD_PREFIX):
            branch = line[len(_HEAD_PREFIX) :].strip()
        elif line.startswith("# branch.upstream "):
            has_upstream = True
        elif line.startswith("# branch.ab "):
            for part in line[len("# branch.ab ") :].split():
                if part.startswith("+"):
                    ahead = _leading_int(part[1:])
                elif part.startswith("-"):
                    behind = _leading_int(part[1:])
        elif line.startswith("1 ") or line.startswith("2 "):
            # "1 XY sub ..." -- X is the index, Y the worktree
            if len(line) > 3:
                x_status, y_status = line[2], line[3]
                if x_status != ".":
                    staged += 1
                if y_status != ".":
                    unstaged += 1
                if x_status == "U" or y_status == "U":
                    has_conflicts = True
        elif line.startswith("u "):
            has_conflicts = True
        elif line.startswith("? "):
            untracked += 1

    return status.model_copy(
        update={
            "branch": branch,
            "has_upstream": has_upstream,
            "has_conflicts": has_conflicts,
            "ahead": ahead,
            "behind": behind,
            "staged": staged,
            "unstaged": unstaged,
            "untracked": untracked,
        }
    )


class GitStatusProbe:
    """Locates the repository root and reads its porcelain status."""

    def __init__(
        self, runner: ProcessRunner, executable: str = DEFAULT_GIT_EXECUTABLE
    ) -> None:
        self._runner = runner
        self.executable = executable

    async def probe(self, project_dir: Path) -> ProbeResult:
        status = SourceControlStatus(provider=ProviderKind.GIT)

        toplevel = await self._runner.run(self.executable, TOPLEVEL_ARGS, project_dir)
        if not toplevel.launched:
            error = "Git executable not found."
            return ProbeResult(
                status=status.model_copy(update={"last_error": error}),
                error=error,
            )

        if toplevel.exit_code != 0:
            error = toplevel.stderr.strip()
            logger.debug("git_not_a_repo", cwd=str(project_dir), error=error)
            return ProbeResult(
                status=status.model_copy(
                    update={"client_available": True, "last_error": error}
                ),
                error=error,
            )

        status = status.model_copy(
            update={
                "client_available": True,
                "is_repo": True,
                "repo_root": toplevel.stdout.strip(),
            }
        )

        result = await self._runner.run(self.executable, STATUS_ARGS, status.repo_root)
        if result.ok:
            return ProbeResult(
                status=parse_git_status(result.stdout, status), repo_found=True
            )

        error = result.stderr.strip()
        logger.warning("git_status_failed", repo_root=status.repo_root, error=error)
        return ProbeResult(
            status=status.model_copy(update={"last_error": error}),
            error=error,
            repo_found=True,
        )
