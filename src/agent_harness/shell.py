# shell.py
# Subprocess helpers for capabilities that spawn children.
#
# Foreground commands stream their output through a callback and are killed
# when they overrun the timeout. Background commands are detached and only
# their pid is reported back.

import asyncio
import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from agent_harness.errors import SubprocessFailure, SubprocessTimeout

logger = logging.getLogger(__name__)

OutputSink = Callable[[str, str], None]


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str


async def _pump(stream: asyncio.StreamReader, name: str, sink: OutputSink | None) -> str:
    chunks: list[str] = []
    while True:
        data = await stream.read(4096)
        if not data:
            break
        text = data.decode("utf-8", errors="replace")
        chunks.append(text)
        if sink is not None:
            sink(name, text)
    return "".join(chunks)


def _kill_group(process: asyncio.subprocess.Process) -> None:
    # Children run in their own session, so the pid is also the group id.
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def _communicate(
    process: asyncio.subprocess.Process,
    timeout: float,
    sink: OutputSink | None,
    label: str,
) -> ExecResult:
    try:
        stdout, stderr = await asyncio.wait_for(
            asyncio.gather(
                _pump(process.stdout, "stdout", sink),
                _pump(process.stderr, "stderr", sink),
            ),
            timeout=timeout,
        )
        exit_code = await process.wait()
    except asyncio.TimeoutError:
        _kill_group(process)
        await process.wait()
        logger.warning("%s timed out after %ss; child killed", label, timeout)
        raise SubprocessTimeout(f"{label} timed out after {timeout} seconds") from None
    return ExecResult(exit_code=exit_code, stdout=stdout, stderr=stderr)


async def run_shell(
    command: str,
    *,
    cwd: Path,
    timeout: float,
    sink: OutputSink | None = None,
) -> ExecResult:
    """Run `command` through `sh -c` and wait for it to exit."""
    try:
        process = await asyncio.create_subprocess_exec(
            "sh",
            "-c",
            command,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        raise SubprocessFailure(f"Failed to start command: {exc}") from exc
    return await _communicate(process, timeout, sink, f"Command {command!r}")


def _reap(process: subprocess.Popen) -> None:
    exit_code = process.wait()
    logger.debug("Background command pid=%s exited with %s", process.pid, exit_code)


def spawn_background(command: str, *, cwd: Path) -> int:
    """Start `command` detached from the harness and return its pid.

    A daemon thread waits on the child so it is reaped once it exits.
    """
    try:
        process = subprocess.Popen(
            ["sh", "-c", command],
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise SubprocessFailure(f"Failed to start command: {exc}") from exc
    threading.Thread(target=_reap, args=(process,), name=f"reap-{process.pid}", daemon=True).start()
    logger.info("Started background command pid=%s", process.pid)
    return process.pid


async def run_program(argv: Sequence[str], *, cwd: Path, timeout: float) -> ExecResult:
    """Run a program directly (no shell) and capture its output."""
    argv_list = list(argv)
    try:
        process = await asyncio.create_subprocess_exec(
            *argv_list,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except FileNotFoundError as exc:
        raise SubprocessFailure(f"Failed to execute {argv_list[0]}: {exc}. Make sure it is installed.") from exc
    except OSError as exc:
        raise SubprocessFailure(f"Failed to execute {argv_list[0]}: {exc}") from exc
    return await _communicate(process, timeout, None, argv_list[0])
