"""Clients for LocalStack's chaos and cloud-pods management APIs.

Both clients report failures through ``ApiResult`` instead of raising, so
tool handlers can render the message directly.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from ..config import Settings
from ..core.http_client import HttpClient, HttpError

CLOUD_PODS_TIMEOUT = 300.0


@dataclass
class ApiResult:
    """Outcome of one management API call."""

    success: bool
    data: Any = None
    message: str = ""
    status_code: int | None = None


class ChaosApiClient:
    """Fault-rule and network-effect management (``/_localstack/chaos``)."""

    def __init__(self, http: HttpClient | None = None):
        self.http = http or HttpClient()

    async def _request(self, endpoint: str, method: str, body: Any = None) -> ApiResult:
        try:
            data = await self.http.request(
                method,
                f"/_localstack/chaos{endpoint}",
                json=body,
                headers={"Content-Type": "application/json"},
            )
        except HttpError as e:
            return ApiResult(
                success=False,
                message=(
                    "❌ **Error:** The LocalStack Chaos API returned an error "
                    f"(Status {e.status}):\n```\n{e.body}\n```"
                ),
                status_code=e.status,
            )
        except (ConnectionError, TimeoutError) as e:
            return ApiResult(
                success=False,
                message=f"❌ **Error:** Failed to communicate with LocalStack Chaos API: {e}",
            )
        return ApiResult(success=True, data=data)

    async def get_faults(self) -> ApiResult:
        return await self._request("/faults", "GET")

    async def set_faults(self, rules: list[dict[str, Any]]) -> ApiResult:
        return await self._request("/faults", "POST", rules)

    async def add_fault_rules(self, rules: list[dict[str, Any]]) -> ApiResult:
        return await self._request("/faults", "PATCH", rules)

    async def remove_fault_rules(self, rules: list[dict[str, Any]]) -> ApiResult:
        return await self._request("/faults", "DELETE", rules)

    async def get_effects(self) -> ApiResult:
        return await self._request("/effects", "GET")

    async def set_effects(self, effects: dict[str, Any]) -> ApiResult:
        return await self._request("/effects", "POST", effects)


class CloudPodsApiClient:
    """Save, load and delete state snapshots (Cloud Pods)."""

    def __init__(self, http: HttpClient | None = None, settings: Settings | None = None):
        self.settings = settings or (http.settings if http else Settings.from_env())
        self.http = http or HttpClient(self.settings)

    def _auth_headers(self) -> dict[str, str] | None:
        token = self.settings.auth_token
        if not token:
            return None
        secret = base64.b64encode(token.strip().encode()).decode()
        return {"x-localstack-state-secret": secret}

    async def _request(self, endpoint: str, method: str, requires_auth: bool) -> ApiResult:
        headers = {"Content-Type": "application/json"}
        if requires_auth:
            auth = self._auth_headers()
            if auth is None:
                return ApiResult(
                    success=False,
                    message="❌ **Authentication Error:** `LOCALSTACK_AUTH_TOKEN` is not configured.",
                )
            headers.update(auth)

        try:
            data = await self.http.request(
                method, endpoint, json={}, headers=headers, timeout=CLOUD_PODS_TIMEOUT
            )
        except HttpError as e:
            if e.status in (401, 403):
                message = "❌ **Authentication Failed:** The configured `LOCALSTACK_AUTH_TOKEN` is invalid."
            elif e.status == 404:
                message = "❌ **Error:** The requested Cloud Pod could not be found."
            elif e.status == 409:
                message = "❌ **Error:** A Cloud Pod with this name already exists."
            else:
                message = (
                    "❌ **Error:** The LocalStack API returned an error "
                    f"(Status {e.status}):\n```\n{e.body}\n```"
                )
            return ApiResult(success=False, message=message, status_code=e.status)
        except (ConnectionError, TimeoutError) as e:
            return ApiResult(
                success=False,
                message=f"❌ **Error:** Failed to communicate with LocalStack Cloud Pods API: {e}",
            )
        return ApiResult(success=True, data=data)

    def _pod_path(self, pod_name: str) -> str:
        return f"/_localstack/pods/{quote(pod_name, safe='')}"

    async def save_pod(self, pod_name: str) -> ApiResult:
        return await self._request(self._pod_path(pod_name), "POST", True)

    async def load_pod(self, pod_name: str) -> ApiResult:
        return await self._request(self._pod_path(pod_name), "PUT", True)

    async def delete_pod(self, pod_name: str) -> ApiResult:
        return await self._request(self._pod_path(pod_name), "DELETE", True)

    async def reset_state(self) -> ApiResult:
        return await self._request("/_localstack/state/reset", "POST", False)
