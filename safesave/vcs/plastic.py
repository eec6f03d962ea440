"""Plastic SCM (Unity Version Control) status probe.

No single ``cm`` command reports everything, so a probe aggregates four calls:
workspace lookup, workspace info, the status header and the machine-readable
change list. Any of them may answer with an authentication failure, detected
by a keyword heuristic rather than a documented error contract.
"""

import re
from collections.abc import Iterable
from pathlib import Path

import structlog

from safesave.vcs.models import (
    ProbeResult,
    ProcessResult,
    ProviderKind,
    SourceControlStatus,
)
from safesave.vcs.process import DEFAULT_PLASTIC_EXECUTABLE, ProcessRunner

logger = structlog.get_logger()

FIELD_SEPARATOR = "|"
LINE_START = "@@SAFE@@"
LINE_END = "##SAFE##"

DEFAULT_AUTH_KEYWORDS: tuple[str, ...] = (
    "login",
    "log in",
    "authentication",
    "credential",
    "unauthorized",
    "not authorized",
    "access denied",
    "token",
    "expired",
)

HEADER_ARGS = ["status", "--header", "--head"]
CHANGES_ARGS = [
    "status",
    "--machinereadable",
    "--noheader",
    "--controlledchanged",
    "--private",
    f"--fieldseparator={FIELD_SEPARATOR}",
    f"--startlineseparator={LINE_START}",
    f"--endlineseparator={LINE_END}",
]
UPDATE_ARGS = ["update"]

LOGIN_REQUIRED_MESSAGE = "Plastic SCM login required."
ROOT_NOT_FOUND_MESSAGE = "Plastic SCM workspace root not found."
CLIENT_MISSING_MESSAGE = "Plastic SCM CLI not found."

_CS_RE = re.compile(r"cs:(\d+)")
_HEAD_RE = re.compile(r"head:(\d+)")
_RECORD_SPLIT_RE = re.compile(r"\r?\n|" + re.escape(LINE_END))


def workspace_lookup_args(directory: Path | str) -> list[str]:
    return ["getworkspacefrompath", str(directory), "--format={wkname}|{wkpath}"]


def workspace_info_args(root: Path | str) -> list[str]:
    return ["workspaceinfo", str(root)]


def is_auth_error(text: str, keywords: Iterable[str] = DEFAULT_AUTH_KEYWORDS) -> bool:
    lower = text.lower()
    return any(keyword.lower() in lower for keyword in keywords)


def _combined_output(result: ProcessResult) -> str:
    return f"{result.stderr}\n{result.stdout}".strip()


def parse_workspace_lookup(output: str) -> tuple[str, str]:
    """Split ``{wkname}|{wkpath}`` into (name, root); empty strings if absent."""
    parts = [p for p in output.strip().split("|") if p]
    if len(parts) < 2:
        return "", ""
    return parts[0].strip(), parts[1].strip()


def parse_workspace_branch(output: str) -> str:
    """Return the branch from ``cm workspaceinfo`` output, or ''."""
    for line in output.splitlines():
        trimmed = line.strip()
        if not trimmed.startswith("Branch"):
            continue
        cuts = [i for i in (trimmed.find(":"), trimmed.find("=")) if i >= 0]
        if cuts:
            return trimmed[min(cuts) + 1 :].strip()
    return ""


def parse_status_header(output: str) -> tuple[int | None, int | None, str]:
    """Extract (changeset, head changeset, branch) from ``status --header --head``."""
    current: int | None = None
    head: int | None = None
    branch = ""

    for line in output.splitlines():
        if not line.strip():
            continue
        cs_match = _CS_RE.search(line)
        if cs_match:
            current = int(cs_match.group(1))
        head_match = _HEAD_RE.search(line)
        if head_match:
            head = int(head_match.group(1))

        if not branch:
            left = line.split("(", 1)[0].strip()
            if left.startswith("/") or left.lower().startswith("lb:"):
                branch = left.split("@", 1)[0].strip()

    return current, head, branch


def parse_machine_status(output: str) -> tuple[int, int, bool]:
    """Count (changes, untracked, has_conflicts) in machine-readable status."""
    changes = 0
    untracked = 0
    has_conflicts = False

    for record in _RECORD_SPLIT_RE.split(output):
        clean = record.replace(LINE_START, "").replace(LINE_END, "").strip()
        if not clean:
            continue

        fields = clean.split(FIELD_SEPARATOR)
        code = fields[0].strip()
        if code.upper() == "STATUS":
            continue

        changes += 1
        if any(part.upper() == "PR" for part in code.split("+") if part):
            untracked += 1

        for field in fields:
            upper = field.upper()
            if "CONFLICT" in upper or ("MERGE" in upper and "NO_MERGES" not in upper):
                has_conflicts = True
                break

    return changes, untracked, has_conflicts


class PlasticStatusProbe:
    def __init__(
        self,
        runner: ProcessRunner,
        executable: str = DEFAULT_PLASTIC_EXECUTABLE,
        *,
        auth_keywords: Iterable[str] = DEFAULT_AUTH_KEYWORDS,
    ) -> None:
        self._runner = runner
        self.executable = executable
        self._auth_keywords = tuple(auth_keywords)

    def _auth_failed(self, result: ProcessResult) -> bool:
        # stdout is only screened on failure: on success it carries file
        # and workspace names that may legitimately contain a keyword
        text = result.stderr if result.exit_code == 0 else _combined_output(result)
        return is_auth_error(text, self._auth_keywords)

    def _login_required(
        self, status: SourceControlStatus, result: ProcessResult, *, is_repo: bool
    ) -> ProbeResult:
        logger.info("plastic_login_required", is_repo=is_repo)
        return ProbeResult(
            status=status.model_copy(
                update={
                    "auth_required": True,
                    "is_repo": is_repo,
                    "last_error": _combined_output(result),
                }
            ),
            error=LOGIN_REQUIRED_MESSAGE,
            repo_found=is_repo,
        )

    async def probe(self, project_dir: Path) -> ProbeResult:
        status = SourceControlStatus(provider=ProviderKind.PLASTIC)

        lookup = await self._runner.run(
            self.executable, workspace_lookup_args(project_dir), project_dir
        )
        if not lookup.launched:
            return ProbeResult(
                status=status.model_copy(update={"last_error": CLIENT_MISSING_MESSAGE}),
                error=CLIENT_MISSING_MESSAGE,
            )

        status = status.model_copy(update={"client_available": True})

        if self._auth_failed(lookup):
            return self._login_required(status, lookup, is_repo=False)

        if lookup.exit_code != 0:
            error = lookup.stderr.strip()
            return ProbeResult(
                status=status.model_copy(update={"last_error": error}), error=error
            )

        name, root = parse_workspace_lookup(lookup.stdout)
        if not root:
            return ProbeResult(
                status=status.model_copy(update={"last_error": ROOT_NOT_FOUND_MESSAGE}),
                error=ROOT_NOT_FOUND_MESSAGE,
            )

        status = status.model_copy(
            update={"is_repo": True, "repo_root": root, "workspace_name": name}
        )

        info = await self._runner.run(self.executable, workspace_info_args(root), root)
        if self._auth_failed(info):
            return self._login_required(status, info, is_repo=True)
        if info.ok:
            status = status.model_copy(
                update={"branch": parse_workspace_branch(info.stdout)}
            )

        header = await self._runner.run(self.executable, HEADER_ARGS, root)
        if self._auth_failed(header):
            return self._login_required(status, header, is_repo=True)
        if header.ok:
            status = _apply_header(status, header.stdout)

        changes = await self._runner.run(self.executable, CHANGES_ARGS, root)
        if self._auth_failed(changes):
            return self._login_required(status, changes, is_repo=True)
        if not changes.ok:
            error = changes.stderr.strip()
            logger.warning("plastic_status_failed", repo_root=root, error=error)
            return ProbeResult(
                status=status.model_copy(update={"last_error": error}),
                error=error,
                repo_found=True,
            )

        total, untracked, has_conflicts = parse_machine_status(changes.stdout)
        status = status.model_copy(
            update={
                "untracked": untracked,
                "unstaged": max(0, total - untracked),
                "has_conflicts": has_conflicts,
            }
        )
        return ProbeResult(status=status, repo_found=True)


def _apply_header(status: SourceControlStatus, output: str) -> SourceControlStatus:
    current, head, header_branch = parse_status_header(output)
    update: dict[str, object] = {}
    if current is not None and head is not None:
        update["has_upstream"] = True
        update["behind"] = max(0, head - current)
        update["ahead"] = max(0, current - head)
    if not status.branch and header_branch:
        update["branch"] = header_branch
    return status.model_copy(update=update)
