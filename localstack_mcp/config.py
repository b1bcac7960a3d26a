"""Runtime configuration for the LocalStack MCP server.

Settings are resolved from the process environment every time they are
requested so that tools always observe the current values (for example a
freshly exported ``LOCALSTACK_AUTH_TOKEN``).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


# Default timeout for network requests, in seconds
DEFAULT_FETCH_TIMEOUT = 15.0

# Default timeout and buffer ceiling for external commands
DEFAULT_COMMAND_TIMEOUT = 300.0  # 5 minutes
DEFAULT_COMMAND_MAX_BUFFER = 1024 * 1024 * 10  # 10 MB

# Fixed timeout for `localstack logs`
LOG_RETRIEVAL_TIMEOUT = 30.0

# Time between the polite termination signal and the forceful kill
KILL_GRACE_PERIOD = 2.0

DEFAULT_CONTAINER_NAME = "localstack-main"

# Environment variable -> Settings field
ENV_VARS = {
    "LOCALSTACK_HOSTNAME": "localstack_hostname",
    "LOCALSTACK_PORT": "localstack_port",
    "LOCALSTACK_AUTH_TOKEN": "auth_token",
    "LOCALSTACK_CONTAINER_NAME": "container_name",
}


class Settings(BaseModel):
    """Connection and execution settings for one tool invocation."""

    localstack_hostname: str = "localhost"
    localstack_port: int = 4566
    auth_token: str | None = None
    container_name: str = DEFAULT_CONTAINER_NAME
    fetch_timeout_s: float = Field(default=DEFAULT_FETCH_TIMEOUT, gt=0)
    command_timeout_s: float = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0)
    command_max_buffer: int = Field(default=DEFAULT_COMMAND_MAX_BUFFER, gt=0)

    @property
    def base_url(self) -> str:
        return f"http://{self.localstack_hostname}:{self.localstack_port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from the environment.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            A new Settings instance; nothing is cached between calls.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for env_name, field_name in ENV_VARS.items():
            value = environ.get(env_name)
            if value:
                values[field_name] = value
        return cls(**values)

    @classmethod
    def from_yaml(
        cls, path: str | Path, environ: Mapping[str, str] | None = None
    ) -> "Settings":
        """Overlay values from a YAML file on top of the environment."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")

        base = cls.from_env(environ).model_dump()
        base.update(data)
        return cls(**base)
