"""Timeout- and buffer-governed execution of external commands.

``run_command`` never raises for operational failures. Timeouts, output
overflow, non-zero exits and spawn failures are all reported through
``CommandResult.error`` so callers can decide how to present them.
"""

from __future__ import annotations

import asyncio
import os
import re
import signal
from collections.abc import Mapping
from dataclasses import dataclass, field

from rich.console import Console

from ..config import DEFAULT_COMMAND_MAX_BUFFER, DEFAULT_COMMAND_TIMEOUT, KILL_GRACE_PERIOD

console = Console(stderr=True)

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

READ_CHUNK_SIZE = 64 * 1024

# How long to keep reading output once a stopped child has exited
PIPE_DRAIN_TIMEOUT = 0.25


class CommandError(Exception):
    """Base class for failures detected while supervising a command."""


class CommandTimeoutError(CommandError):
    """The command exceeded its wall-clock budget."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Command timed out after {int(timeout * 1000)}ms")


class CommandBufferExceededError(CommandError):
    """stdout or stderr grew past the configured ceiling."""

    def __init__(self, stream: str, limit: int):
        self.stream = stream
        self.limit = limit
        super().__init__(f"{stream} maxBuffer length exceeded ({limit} bytes)")


class CommandFailedError(CommandError):
    """The command exited with a non-zero status."""

    def __init__(self, exit_code: int | None, stderr: str):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Command failed with exit code {exit_code}: {stderr.strip()}")


@dataclass
class CommandResult:
    """Captured outcome of a single command run."""

    stdout: str
    stderr: str
    exit_code: int | None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _Supervision:
    """Mutable flags shared by the stream pumps and timers of one run."""

    failure: CommandError | None = None
    kill_handle: asyncio.TimerHandle | None = None
    sizes: dict[str, int] = field(default_factory=lambda: {"stdout": 0, "stderr": 0})
    stopped: asyncio.Event = field(default_factory=asyncio.Event)


async def run_command(
    command: str,
    args: list[str],
    *,
    timeout: float | None = None,
    max_buffer: int | None = None,
    cwd: str | os.PathLike | None = None,
    env: Mapping[str, str] | None = None,
    kill_signal: int = signal.SIGTERM,
) -> CommandResult:
    """Run an external command and capture its output.

    Args:
        command: Executable to run (e.g. ``tflocal``)
        args: Argument vector, passed without a shell
        timeout: Wall-clock budget in seconds
        max_buffer: Per-stream byte ceiling for stdout and stderr
        cwd: Working directory for the child
        env: Variables overlaid on the current environment
        kill_signal: Signal sent first when the run must be stopped

    Returns:
        CommandResult; ``error`` is set on timeout, overflow, non-zero exit
        or spawn failure.
    """
    timeout = DEFAULT_COMMAND_TIMEOUT if timeout is None else timeout
    max_buffer = DEFAULT_COMMAND_MAX_BUFFER if max_buffer is None else max_buffer
    child_env = {**os.environ, **env} if env is not None else None

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=child_env,
            start_new_session=True,
        )
    except OSError as e:
        return CommandResult(stdout="", stderr="", exit_code=None, error=e)

    loop = asyncio.get_running_loop()
    state = _Supervision()
    chunks: dict[str, list[bytes]] = {"stdout": [], "stderr": []}

    # The child leads its own session, so its pid is the process group id
    def signal_group(sig: int) -> bool:
        try:
            os.killpg(proc.pid, sig)
        except (ProcessLookupError, PermissionError):
            return False
        return True

    def stop(failure: CommandError) -> None:
        if state.failure is not None:
            return
        state.failure = failure
        state.stopped.set()
        if signal_group(kill_signal):
            state.kill_handle = loop.call_later(KILL_GRACE_PERIOD, force_kill)

    def force_kill() -> None:
        if signal_group(signal.SIGKILL):
            console.print(f"[dim]{command} ignored termination signal, killed its process group[/dim]")

    async def pump(stream: asyncio.StreamReader, name: str) -> None:
        while True:
            data = await stream.read(READ_CHUNK_SIZE)
            if not data:
                return
            # Keep draining so the child never blocks on a full pipe
            if state.failure is not None:
                continue
            state.sizes[name] += len(data)
            if state.sizes[name] > max_buffer:
                stop(CommandBufferExceededError(name, max_buffer))
                continue
            chunks[name].append(data)

    timer = loop.call_later(timeout, lambda: stop(CommandTimeoutError(timeout)))
    pumps = [
        asyncio.ensure_future(pump(proc.stdout, "stdout")),
        asyncio.ensure_future(pump(proc.stderr, "stderr")),
    ]
    drained = asyncio.gather(*pumps)
    stopped = asyncio.ensure_future(state.stopped.wait())
    try:
        exit_code = await proc.wait()
        # Descendants can hold the pipes open after the child exits; a stop
        # ends the wait for end of file
        await asyncio.wait({drained, stopped}, return_when=asyncio.FIRST_COMPLETED)
        if not drained.done():
            await asyncio.wait({drained}, timeout=PIPE_DRAIN_TIMEOUT)
    finally:
        timer.cancel()
        if state.kill_handle is not None:
            state.kill_handle.cancel()
        stopped.cancel()
        for task in pumps:
            task.cancel()
        if state.failure is not None or proc.returncode is None:
            signal_group(signal.SIGKILL)
        await asyncio.gather(*pumps, return_exceptions=True)

    stdout = b"".join(chunks["stdout"]).decode("utf-8", errors="replace")
    stderr = b"".join(chunks["stderr"]).decode("utf-8", errors="replace")

    error: Exception | None = state.failure
    if error is None and exit_code != 0:
        error = CommandFailedError(exit_code, stderr)

    return CommandResult(stdout=stdout, stderr=stderr, exit_code=exit_code, error=error)


def strip_ansi_codes(text: str) -> str:
    """Remove ANSI escape sequences from command output."""
    return ANSI_ESCAPE.sub("", text)
