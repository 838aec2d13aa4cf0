"""Process execution for FSL command-line tools."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

import structlog

log = structlog.get_logger()


def _merged_env(env: Optional[Mapping[str, str]]) -> dict[str, str] | None:
    """Return ``os.environ`` overlaid with *env* or ``None`` when *env* is empty."""
    if not env:
        return None
    merged = os.environ.copy()
    merged.update({k: str(v) for k, v in env.items()})
    return merged


def run_cmd(
    cmd: Sequence[str | Path],
    *,
    capture: bool = False,
    env: Optional[Mapping[str, str]] = None,
    on_stdout: Optional[Callable[[str], None]] = None,
) -> subprocess.CompletedProcess:
    """Execute an FSL command and wait for it to exit.

    Args:
        cmd: Command vector; every element is converted with :func:`str`.
        capture: When True, collect stdout and stderr separately and return
            them on the result. Otherwise stdout/stderr are streamed live.
        env: Extra environment variables (e.g. ``FSLOUTPUTTYPE``).
        on_stdout: Optional callback receiving each line of live output.
            Ignored when *capture* is True.

    Returns:
        :class:`subprocess.CompletedProcess` describing the execution result.

    Raises:
        subprocess.CalledProcessError: If the command exits with a non-zero status.
        FileNotFoundError: If the executable cannot be found.
    """
    cmd = [str(c) for c in cmd]
    log.info("run-cmd", cmd=" ".join(cmd))

    if capture:
        with subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=_merged_env(env),
        ) as p:
            stdout, stderr = p.communicate()
            rc = p.wait()
        if rc != 0:
            log.debug("run-cmd.failed", cmd=cmd[0], returncode=rc, stderr=stderr)
            raise subprocess.CalledProcessError(rc, cmd, output=stdout, stderr=stderr)
        return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr=stderr)

    # Stream combined stdout+stderr line by line so long runs (mcflirt,
    # fsl_motion_outliers -v) report progress as they go.
    with subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
        env=_merged_env(env),
    ) as p:
        assert p.stdout is not None
        for line in p.stdout:
            if on_stdout is not None:
                on_stdout(line.rstrip("\n"))
            else:
                sys.stdout.write(line)
                sys.stdout.flush()
        rc = p.wait()

    if rc != 0:
        raise subprocess.CalledProcessError(rc, cmd)
    return subprocess.CompletedProcess(cmd, rc)


__all__ = ["run_cmd"]
