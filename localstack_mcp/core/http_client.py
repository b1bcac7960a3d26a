"""HTTP access to LocalStack's internal management API."""

from __future__ import annotations

from typing import Any

import httpx

from ..config import Settings


class HttpError(Exception):
    """Non-2xx response from LocalStack."""

    def __init__(self, status: int, status_text: str, body: str, message: str):
        super().__init__(message)
        self.status = status
        self.status_text = status_text
        self.body = body


class HttpClient:
    """Thin async wrapper around httpx bound to a LocalStack base URL.

    Example:
        client = HttpClient()
        info = await client.request("GET", "/_localstack/licenseinfo")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self._transport = transport

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
        base_url: str | None = None,
    ) -> Any:
        """Send a request and decode the response.

        Returns parsed JSON for JSON responses, text otherwise, and an empty
        dict for empty bodies.

        Raises:
            HttpError: on non-2xx status
            TimeoutError: when the request exceeds its timeout
            ConnectionError: when LocalStack refuses the connection
        """
        timeout = self.settings.fetch_timeout_s if timeout is None else timeout
        base_url = base_url or self.settings.base_url

        try:
            async with httpx.AsyncClient(
                base_url=base_url, timeout=timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, endpoint, json=json, headers=headers, params=params
                )
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request timed out after {int(timeout * 1000)}ms") from e
        except httpx.ConnectError as e:
            raise ConnectionError(
                f"Connection refused at {base_url}. Is LocalStack running?"
            ) from e

        if not response.is_success:
            raise HttpError(
                response.status_code,
                response.reason_phrase,
                response.text,
                f"HTTP Error: {response.status_code} {response.reason_phrase} "
                f"for URL: {response.url}",
            )

        if response.status_code == 204 or not response.content:
            return {}

        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text
