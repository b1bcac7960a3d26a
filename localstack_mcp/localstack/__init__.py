"""LocalStack CLI checks, license checks and management API clients."""

from .cli import CliCheckResult, StatusResult, check_localstack_cli, get_localstack_status
from .clients import ApiResult, ChaosApiClient, CloudPodsApiClient
from .license import LicenseCheckResult, ProFeature, check_pro_feature

__all__ = [
    "CliCheckResult",
    "StatusResult",
    "check_localstack_cli",
    "get_localstack_status",
    "ApiResult",
    "ChaosApiClient",
    "CloudPodsApiClient",
    "LicenseCheckResult",
    "ProFeature",
    "check_pro_feature",
]
