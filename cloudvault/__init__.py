"""CloudVault - bidirectional folder sync with the CloudVault file store."""

from .api import CloudVaultClient
from .exceptions import (
    CloudVaultAPIError,
    CloudVaultAuthenticationError,
    CloudVaultConfigError,
    CloudVaultDownloadError,
    CloudVaultError,
    CloudVaultInvalidResponseError,
    CloudVaultNetworkError,
    CloudVaultNotFoundError,
    CloudVaultPermissionError,
    CloudVaultRateLimitError,
    CloudVaultSyncError,
    CloudVaultUploadError,
)
from .sync import SyncEngine

__version__ = "0.1.0"

__all__ = [
    "CloudVaultClient",
    "SyncEngine",
    "CloudVaultError",
    "CloudVaultAPIError",
    "CloudVaultAuthenticationError",
    "CloudVaultConfigError",
    "CloudVaultDownloadError",
    "CloudVaultInvalidResponseError",
    "CloudVaultNetworkError",
    "CloudVaultNotFoundError",
    "CloudVaultPermissionError",
    "CloudVaultRateLimitError",
    "CloudVaultSyncError",
    "CloudVaultUploadError",
]
