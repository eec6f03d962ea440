"""Async wrapper for launching source control executables."""

import asyncio
import sys
from pathlib import Path

import structlog

from safesave.vcs.models import ProcessResult

logger = structlog.get_logger()

_IS_WINDOWS = sys.platform.startswith("win")

DEFAULT_GIT_EXECUTABLE = "git.exe" if _IS_WINDOWS else "git"
DEFAULT_PLASTIC_EXECUTABLE = "cm.exe" if _IS_WINDOWS else "cm"


class ProcessRunner:
    """Runs one executable per call and captures its output.

    A result with ``launched=False`` means the executable could not be started
    at all. A non-zero ``exit_code`` means it ran and failed. There are no
    retries and no timeouts.
    """

    async def run(
        self, executable: str, args: list[str], working_dir: Path | str
    ) -> ProcessResult:
        cwd = Path(working_dir)
        if not cwd.is_dir():
            logger.debug("process_bad_cwd", executable=executable, cwd=str(cwd))
            return ProcessResult(
                stderr=f"Directory does not exist: {cwd}",
                exit_code=-1,
                launched=False,
            )

        cmd = (executable, *args)
        logger.debug("process_exec", command=cmd, cwd=str(cwd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout_bytes, stderr_bytes = await proc.communicate()
        except FileNotFoundError:
            logger.debug("process_not_found", executable=executable)
            return ProcessResult(
                stderr=f"{executable} is not installed or not in PATH",
                exit_code=-1,
                launched=False,
            )
        except OSError as e:
            logger.warning("process_launch_error", command=cmd, error=str(e))
            return ProcessResult(stderr=str(e), exit_code=-1, launched=False)

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return ProcessResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=proc.returncode or 0,
            launched=True,
        )
