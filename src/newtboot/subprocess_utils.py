"""Subprocess utilities for running external build tools.

Every external tool the bootstrap runs goes through safe_run(), which:
- never lets the child read from our stdin (stdin=DEVNULL)
- logs the command line before it runs
- blocks until the child exits
"""

import logging
import subprocess
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Type

from .errors import CommandError, format_command

logger = logging.getLogger(__name__)


def safe_run(cmd: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Execute subprocess.run with stdin redirected to the null device.

    The stdin redirect keeps configure scripts and make from ever blocking
    on terminal input.

    Args:
        cmd: Command and arguments (same as subprocess.run)
        **kwargs: Additional arguments passed to subprocess.run

    Returns:
        CompletedProcess result from subprocess.run

    Note:
        If 'stdin' is explicitly provided in kwargs, it is used as-is.
    """
    if "stdin" not in kwargs:
        kwargs["stdin"] = subprocess.DEVNULL

    logger.debug("Running: %s", format_command(cmd))
    return subprocess.run(list(cmd), **kwargs)


def run_step(
    cmd: Sequence[str],
    target: str,
    error_cls: Type[CommandError],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    log_path: Optional[Path] = None,
) -> None:
    """Run one build step, raising error_cls if it exits non-zero.

    Output streams to the console unless log_path is given, in which case
    stdout and stderr are appended to that file and its tail is attached to
    the raised error.

    Args:
        cmd: Command and arguments
        target: Name of the target the step belongs to
        error_cls: CommandError subclass raised on failure
        cwd: Working directory for the child (defaults to ours)
        env: Environment for the child (defaults to ours)
        log_path: File receiving the child's output

    Raises:
        error_cls: If the command exits non-zero or cannot be started.
    """
    kwargs: dict[str, Any] = {
        "cwd": str(cwd) if cwd is not None else None,
        "env": dict(env) if env is not None else None,
    }
    try:
        if log_path is None:
            result = safe_run(cmd, **kwargs)
        else:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(log_path, "a") as log_file:
                log_file.write(f"$ {format_command(cmd)}\n")
                log_file.flush()
                result = safe_run(cmd, stdout=log_file, stderr=subprocess.STDOUT, **kwargs)
    except OSError as e:
        raise error_cls(target, cmd, -1, str(e)) from e

    if result.returncode != 0:
        output = _tail(log_path) if log_path is not None else ""
        raise error_cls(target, cmd, result.returncode, output)


def _tail(path: Path, lines: int = 20) -> str:
    try:
        return "\n".join(path.read_text(errors="replace").splitlines()[-lines:])
    except OSError:
        return ""


def capture_output(cmd: Sequence[str], env: Optional[Mapping[str, str]] = None) -> subprocess.CompletedProcess:
    """Run a short diagnostic command and capture its text output.

    Output is decoded as UTF-8 with undecodable bytes replaced, so a tool
    printing in another encoding never raises here.

    Args:
        cmd: Command and arguments
        env: Environment for the child (defaults to ours)

    Returns:
        CompletedProcess with stdout/stderr as text.

    Raises:
        OSError: If the command cannot be started.
    """
    return safe_run(
        cmd,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        env=dict(env) if env is not None else None,
    )
