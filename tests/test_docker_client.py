"""Tests for the container executor."""

import socket
import struct
import time
from unittest.mock import MagicMock

import pytest

from localstack_mcp.containers.docker_client import (
    ContainerNotFoundError,
    DockerApiClient,
    demux_stream,
)
from localstack_mcp.core.command_runner import CommandBufferExceededError, CommandTimeoutError


def frame(stream_type: int, payload: bytes) -> bytes:
    return struct.pack(">BxxxL", stream_type, len(payload)) + payload


def stream(data: bytes) -> socket.socket:
    """Socket that yields ``data`` and then end of file."""
    ours, peer = socket.socketpair()
    peer.sendall(data)
    peer.close()
    return ours


def make_docker(containers=None, exit_code=0):
    docker_client = MagicMock()
    api = docker_client.api
    api.containers.return_value = containers or []
    api.exec_create.return_value = {"Id": "exec-1"}
    api.exec_inspect.return_value = {"ExitCode": exit_code}
    return docker_client


class TestDemuxStream:
    """Tests for demux_stream."""

    def test_splits_stdout_and_stderr(self):
        sock = stream(frame(1, b"hello ") + frame(2, b"oops") + frame(1, b"world"))
        assert demux_stream(sock) == (b"hello world", b"oops")

    def test_unknown_stream_types_go_to_stdout(self):
        assert demux_stream(stream(frame(0, b"in") + frame(3, b"x"))) == (b"inx", b"")

    def test_truncated_frame_keeps_partial_payload(self):
        sock = stream(frame(1, b"ok") + struct.pack(">BxxxL", 2, 10) + b"part")
        assert demux_stream(sock) == (b"ok", b"part")

    def test_incomplete_header_is_ignored(self):
        assert demux_stream(stream(frame(1, b"ok") + b"\x01\x00")) == (b"ok", b"")

    def test_empty_input(self):
        assert demux_stream(stream(b"")) == (b"", b"")

    def test_stream_over_max_buffer(self):
        sock = stream(frame(1, b"a" * 8) + frame(2, b"e" * 20))
        with pytest.raises(CommandBufferExceededError) as exc_info:
            demux_stream(sock, max_buffer=10)

        assert exc_info.value.stream == "stderr"
        assert "maxBuffer" in str(exc_info.value)


class TestFindNamedContainer:
    """Tests for DockerApiClient.find_named_container."""

    @pytest.mark.asyncio
    async def test_matches_name_with_leading_slash(self):
        docker_client = make_docker(
            containers=[
                {"Id": "other", "Names": ["/something-else"]},
                {"Id": "abc123", "Names": ["/localstack-main"]},
            ]
        )
        client = DockerApiClient(docker_client)

        assert await client.find_named_container() == "abc123"
        docker_client.api.containers.assert_called_once_with(filters={"status": "running"})

    @pytest.mark.asyncio
    async def test_custom_name(self):
        docker_client = make_docker(containers=[{"Id": "xyz", "Names": ["my-stack"]}])
        client = DockerApiClient(docker_client)
        assert await client.find_named_container("my-stack") == "xyz"

    @pytest.mark.asyncio
    async def test_not_found_raises(self):
        client = DockerApiClient(make_docker(containers=[{"Id": "a", "Names": ["/db"]}]))
        with pytest.raises(ContainerNotFoundError, match="Could not find"):
            await client.find_named_container()


class TestExecInContainer:
    """Tests for DockerApiClient.exec_in_container over a local socket pair."""

    @pytest.mark.asyncio
    async def test_collects_demuxed_output(self):
        ours, peer = socket.socketpair()
        peer.sendall(frame(1, b"  bucket-a\n") + frame(2, b"warning\n"))
        peer.close()

        docker_client = make_docker()
        docker_client.api.exec_start.return_value = ours
        client = DockerApiClient(docker_client)

        result = await client.exec_in_container("abc123", ["awslocal", "s3", "ls"])

        assert result.stdout == "bucket-a"
        assert result.stderr == "warning"
        assert result.exit_code == 0
        docker_client.api.exec_create.assert_called_once_with(
            "abc123",
            ["awslocal", "s3", "ls"],
            stdout=True,
            stderr=True,
            stdin=False,
            tty=False,
        )
        docker_client.api.exec_start.assert_called_once_with("exec-1", socket=True)

    @pytest.mark.asyncio
    async def test_writes_stdin_then_reads(self):
        ours, peer = socket.socketpair()
        peer.sendall(frame(1, b"done"))
        peer.shutdown(socket.SHUT_WR)

        docker_client = make_docker(exit_code=0)
        docker_client.api.exec_start.return_value = ours
        client = DockerApiClient(docker_client)

        try:
            result = await client.exec_in_container("abc123", ["cat"], stdin="payload")
            assert peer.recv(1024) == b"payload"
        finally:
            peer.close()

        assert result.stdout == "done"
        assert docker_client.api.exec_create.call_args.kwargs["stdin"] is True

    @pytest.mark.asyncio
    async def test_missing_exit_code_defaults_to_one(self):
        ours, peer = socket.socketpair()
        peer.close()

        docker_client = make_docker()
        docker_client.api.exec_inspect.return_value = {"ExitCode": None}
        docker_client.api.exec_start.return_value = ours
        client = DockerApiClient(docker_client)

        result = await client.exec_in_container("abc123", ["true"])

        assert result.exit_code == 1
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_non_zero_exit_code_is_reported(self):
        ours, peer = socket.socketpair()
        peer.sendall(frame(2, b"An error occurred (NoSuchBucket)"))
        peer.close()

        docker_client = make_docker(exit_code=254)
        docker_client.api.exec_start.return_value = ours
        client = DockerApiClient(docker_client)

        result = await client.exec_in_container("abc123", ["awslocal", "s3", "ls", "s3://nope"])

        assert result.exit_code == 254
        assert "NoSuchBucket" in result.stderr

    @pytest.mark.asyncio
    async def test_hung_exec_times_out(self):
        ours, peer = socket.socketpair()
        peer.sendall(frame(1, b"partial"))

        docker_client = make_docker()
        docker_client.api.exec_start.return_value = ours
        client = DockerApiClient(docker_client)

        start = time.monotonic()
        try:
            with pytest.raises(CommandTimeoutError, match="Command timed out after 200ms"):
                await client.exec_in_container("abc123", ["awslocal", "sqs", "receive-message"], timeout=0.2)
        finally:
            peer.close()

        assert time.monotonic() - start < 2
        docker_client.api.exec_inspect.assert_not_called()

    @pytest.mark.asyncio
    async def test_output_over_max_buffer(self):
        docker_client = make_docker()
        docker_client.api.exec_start.return_value = stream(frame(1, b"x" * 5000))
        client = DockerApiClient(docker_client)

        with pytest.raises(CommandBufferExceededError, match="stdout maxBuffer length exceeded"):
            await client.exec_in_container("abc123", ["awslocal", "s3", "ls"], max_buffer=1000)
