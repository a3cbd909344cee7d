"""Exception hierarchy for CloudVault."""


class CloudVaultError(Exception):
    """Base exception for all CloudVault errors."""


class CloudVaultConfigError(CloudVaultError):
    """Raised when the client or engine is missing required configuration."""


class CloudVaultAPIError(CloudVaultError):
    """Raised when a request to the CloudVault API fails."""


class CloudVaultAuthenticationError(CloudVaultAPIError):
    """Raised when the bearer token is rejected."""


class CloudVaultPermissionError(CloudVaultAPIError):
    """Raised when access to a resource is forbidden."""


class CloudVaultNotFoundError(CloudVaultAPIError):
    """Raised when a folder or file does not exist remotely."""


class CloudVaultRateLimitError(CloudVaultAPIError):
    """Raised when the API rate limit has been hit."""


class CloudVaultNetworkError(CloudVaultAPIError):
    """Raised on connection problems, timeouts and other transport errors."""


class CloudVaultInvalidResponseError(CloudVaultAPIError):
    """Raised when the server answers with something we cannot parse."""


class CloudVaultUploadError(CloudVaultAPIError):
    """Raised when pushing file bytes to an upload destination fails."""


class CloudVaultDownloadError(CloudVaultAPIError):
    """Raised when fetching file bytes fails."""


class CloudVaultSyncError(CloudVaultError):
    """Raised when a reconciliation pass cannot continue."""
