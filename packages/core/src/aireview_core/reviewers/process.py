"""Spawn reviewer CLIs with a wall-clock timeout.

Reviewer CLIs fork helpers (language servers, MCP bridges, node workers).
Killing only the direct child on timeout leaves those running and holding
network connections, so every child starts as the leader of its own process
group and a timeout tears down the whole group.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_IS_WINDOWS = sys.platform == "win32"


class ProcessTimeout(TimeoutError):
    def __init__(self, argv: list[str], timeout: float):
        self.argv = argv
        self.timeout = timeout
        super().__init__(f"{argv[0]} timed out after {timeout:g}s")


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def error_text(self) -> str:
        return (self.stderr or self.stdout or "").strip()


def _spawn_kwargs() -> dict:
    if _IS_WINDOWS:
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


async def terminate_process_tree(proc: asyncio.subprocess.Process) -> None:
    """Forcibly stop proc and every descendant in its process group."""
    if proc.returncode is not None:
        return
    try:
        if _IS_WINDOWS:
            killer = await asyncio.create_subprocess_exec(
                "taskkill",
                "/T",
                "/F",
                "/PID",
                str(proc.pid),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await killer.wait()
        else:
            os.killpg(proc.pid, signal.SIGKILL)
    except OSError:
        # Group already gone; fall back to the direct child.
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


async def run_process(
    argv: list[str],
    input_text: str | None,
    timeout: float,
    cwd: str | None = None,
) -> ProcessResult:
    """Run argv to completion, feeding input_text on stdin.

    Raises ProcessTimeout after killing the process tree when timeout elapses,
    and OSError when the executable cannot be spawned.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
        **_spawn_kwargs(),
    )
    payload = input_text.encode("utf-8") if input_text is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(payload), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug("Killing process group of %s (pid %s) after %gs.", argv[0], proc.pid, timeout)
        await terminate_process_tree(proc)
        raise ProcessTimeout(argv, timeout) from None
    except asyncio.CancelledError:
        await terminate_process_tree(proc)
        raise

    return ProcessResult(
        returncode=proc.returncode if proc.returncode is not None else 1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
