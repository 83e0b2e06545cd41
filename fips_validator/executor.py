"""Run external commands and capture their output."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from .errors import ExecutionError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    stdout: bytes
    stderr: bytes
    returncode: int


def execute(
    command: str,
    *args: str,
    cwd: str | None = None,
    timeout: float | None = None,
) -> CommandResult:
    """Run *command* with *args* and return its output and exit code.

    A non-zero exit is a normal result. Failing to start the process, or
    hitting *timeout*, raises ``ExecutionError``.
    """
    argv = [command, *args]
    logger.debug("executing %s (cwd=%s)", " ".join(argv), cwd or ".")
    try:
        proc = subprocess.run(
            argv,
            cwd=cwd or None,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise ExecutionError(command, f"timed out after {e.timeout}s") from e
    except OSError as e:
        raise ExecutionError(command, str(e)) from e
    return CommandResult(stdout=proc.stdout, stderr=proc.stderr, returncode=proc.returncode)
