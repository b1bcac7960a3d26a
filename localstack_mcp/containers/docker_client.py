"""Command execution inside the running LocalStack container.

Uses the Docker Engine API through the ``docker`` SDK. Exec output arrives
as one multiplexed stream on the exec socket; ``demux_stream`` splits it
back into stdout and stderr with the SDK's frame reader. Exec runs are held
to the same timeout and buffer ceiling as ``run_command``.
"""

from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from typing import Any

import docker
from docker.utils.socket import STDERR, frames_iter

from ..config import DEFAULT_COMMAND_MAX_BUFFER, DEFAULT_COMMAND_TIMEOUT, DEFAULT_CONTAINER_NAME
from ..core.command_runner import CommandBufferExceededError, CommandTimeoutError


class ContainerNotFoundError(LookupError):
    """No running container carries the expected name."""


@dataclass
class ContainerExecResult:
    stdout: str
    stderr: str
    exit_code: int


def demux_stream(sock: Any, max_buffer: int | None = None) -> tuple[bytes, bytes]:
    """Read a multiplexed exec stream until end of file as ``(stdout, stderr)``.

    Frames tagged as stderr go to stderr, all others to stdout. A truncated
    trailing frame contributes whatever payload bytes arrived.

    Raises:
        CommandBufferExceededError: when either stream grows past ``max_buffer``
    """
    buffers = {"stdout": bytearray(), "stderr": bytearray()}

    for stream_type, data in frames_iter(sock, tty=False):
        name = "stderr" if stream_type == STDERR else "stdout"
        buffers[name] += data
        if max_buffer is not None and len(buffers[name]) > max_buffer:
            raise CommandBufferExceededError(name, max_buffer)

    return bytes(buffers["stdout"]), bytes(buffers["stderr"])


def _normalize_name(name: str) -> str:
    return name[1:] if name.startswith("/") else name


class DockerApiClient:
    """Finds the LocalStack container and runs commands inside it.

    The SDK client is created lazily so that constructing this object never
    touches the Docker daemon.

    Example:
        client = DockerApiClient()
        container_id = await client.find_named_container()
        result = await client.exec_in_container(container_id, ["awslocal", "s3", "ls"])
    """

    def __init__(self, client: Any = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    async def find_named_container(self, name: str = DEFAULT_CONTAINER_NAME) -> str:
        """Return the id of the running container named ``name``.

        Raises:
            ContainerNotFoundError: if no running container matches
        """
        running = await asyncio.to_thread(
            self.client.api.containers, filters={"status": "running"}
        )

        for container in running or []:
            names = container.get("Names") or []
            if any(_normalize_name(n or "") == name for n in names):
                return container["Id"]

        raise ContainerNotFoundError(
            f"Could not find a running LocalStack container named '{name}'."
        )

    async def exec_in_container(
        self,
        container_id: str,
        command: list[str],
        stdin: str | None = None,
        *,
        timeout: float | None = None,
        max_buffer: int | None = None,
    ) -> ContainerExecResult:
        """Run ``command`` inside the container and wait for it to finish.

        Raises:
            CommandTimeoutError: when output has not ended within ``timeout`` seconds
            CommandBufferExceededError: when stdout or stderr exceeds ``max_buffer``
        """
        timeout = DEFAULT_COMMAND_TIMEOUT if timeout is None else timeout
        max_buffer = DEFAULT_COMMAND_MAX_BUFFER if max_buffer is None else max_buffer
        api = self.client.api

        exec_info = await asyncio.to_thread(
            api.exec_create,
            container_id,
            command,
            stdout=True,
            stderr=True,
            stdin=bool(stdin),
            tty=False,
        )
        exec_id = exec_info["Id"]

        sock = await asyncio.to_thread(api.exec_start, exec_id, socket=True)
        raw = getattr(sock, "_sock", sock)
        reader = asyncio.ensure_future(
            asyncio.to_thread(self._communicate, sock, raw, stdin, max_buffer)
        )
        try:
            stdout, stderr = await asyncio.wait_for(asyncio.shield(reader), timeout)
        except asyncio.TimeoutError:
            raise CommandTimeoutError(timeout) from None
        finally:
            if not reader.done():
                # The SDK reader polls without a timeout; shutdown wakes it
                try:
                    raw.shutdown(socket.SHUT_RDWR)
                except OSError:
                    pass
                await asyncio.gather(reader, return_exceptions=True)
            sock.close()

        inspect = await asyncio.to_thread(api.exec_inspect, exec_id)
        exit_code = (inspect or {}).get("ExitCode")
        if exit_code is None:
            exit_code = 1

        return ContainerExecResult(
            stdout=stdout.decode("utf-8", errors="replace").strip(),
            stderr=stderr.decode("utf-8", errors="replace").strip(),
            exit_code=exit_code,
        )

    @staticmethod
    def _communicate(sock: Any, raw: Any, stdin: str | None, max_buffer: int) -> tuple[bytes, bytes]:
        if stdin:
            raw.sendall(stdin.encode("utf-8"))
            raw.shutdown(socket.SHUT_WR)
        return demux_stream(sock, max_buffer)
