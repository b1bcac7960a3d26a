"""Pre-flight checks for features that need a LocalStack license."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..core.http_client import HttpClient, HttpError


class ProFeature(str, Enum):
    IAM_ENFORCEMENT = "localstack.platform.plugin/iam-enforcement"
    CLOUD_PODS = "localstack.platform.plugin/pods"
    CHAOS_ENGINEERING = "localstack.platform.plugin/chaos"


@dataclass
class LicenseCheckResult:
    is_supported: bool
    error_message: str | None = None


async def check_pro_feature(
    feature: ProFeature, client: HttpClient | None = None
) -> LicenseCheckResult:
    """Check whether the running instance's license includes ``feature``."""
    client = client or HttpClient()
    try:
        info = await client.request("GET", "/_localstack/licenseinfo")
    except HttpError as e:
        if e.status == 404:
            return LicenseCheckResult(
                is_supported=False,
                error_message=(
                    f"❌ **Feature Not Available:** The '{feature.value}' feature requires a "
                    "LocalStack license, but the license endpoint was not found. Please ensure "
                    "you are running LocalStack with a valid Auth Token."
                ),
            )
        return LicenseCheckResult(
            is_supported=False,
            error_message=f"❌ **License Check Failed:** Unable to verify feature availability: {e}",
        )
    except ConnectionError:
        return LicenseCheckResult(
            is_supported=False,
            error_message=(
                "❌ **Connection Error:** Cannot connect to LocalStack. Please ensure LocalStack "
                f"is running and accessible at {client.settings.base_url}."
            ),
        )
    except TimeoutError as e:
        return LicenseCheckResult(
            is_supported=False,
            error_message=f"❌ **License Check Failed:** {e}",
        )

    plugins = info.get("available_plugins") if isinstance(info, dict) else None
    if not isinstance(plugins, list):
        return LicenseCheckResult(
            is_supported=False,
            error_message=(
                "❌ **License Check Failed:** Unable to parse license information from "
                "LocalStack. The license response format was unexpected."
            ),
        )

    if feature.value in plugins:
        return LicenseCheckResult(is_supported=True)

    return LicenseCheckResult(
        is_supported=False,
        error_message=(
            "❌ **Feature Not Available:** Your LocalStack license does not seem to include "
            f"the '{feature.value}' feature. Please check your license details."
        ),
    )
