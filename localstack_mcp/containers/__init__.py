"""Container runtime access (exec inside the LocalStack container)."""

from .docker_client import (
    ContainerExecResult,
    ContainerNotFoundError,
    DockerApiClient,
    demux_stream,
)

__all__ = [
    "ContainerExecResult",
    "ContainerNotFoundError",
    "DockerApiClient",
    "demux_stream",
]
