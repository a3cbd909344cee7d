"""Async API client for the CloudVault remote store."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

import httpx

from .config import config
from .exceptions import (
    CloudVaultAPIError,
    CloudVaultAuthenticationError,
    CloudVaultConfigError,
    CloudVaultDownloadError,
    CloudVaultInvalidResponseError,
    CloudVaultNetworkError,
    CloudVaultNotFoundError,
    CloudVaultPermissionError,
    CloudVaultRateLimitError,
    CloudVaultUploadError,
)
from .models import RemoteFileEntry, RemoteFolder, extract_id, unwrap_list
from .utils import DEFAULT_MIME_TYPE, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DOWNLOAD_URL_KEYS = ("url", "signed_url", "download_url", "preview_url")


class CloudVaultClient:
    """Client for the CloudVault file/folder API.

    All network operations are coroutines and share a single
    ``httpx.AsyncClient``; call :meth:`aclose` when done.
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize CloudVault API client.

        Args:
            token: Bearer token (uses config if not provided)
            api_url: Base URL of the API (uses config if not provided)
            max_retries: Retry attempts for 5xx, 429 and network errors
                (default: 0, the sync engine re-evaluates on its next pass)
            retry_delay: Initial delay between retries in seconds
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token = token or config.token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.token:
            raise CloudVaultConfigError(
                "Token not configured. Please set CLOUDVAULT_TOKEN or run "
                "'cloudvault init'."
            )

        self._client: httpx.AsyncClient | None = None
        self._plain_client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the authenticated httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def _get_plain_client(self) -> httpx.AsyncClient:
        """Get or create the client used for signed URLs (no auth header)."""
        if self._plain_client is None or self._plain_client.is_closed:
            self._plain_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._plain_client

    async def aclose(self) -> None:
        """Close the underlying connections."""
        for client in (self._client, self._plain_client):
            if client is not None and not client.is_closed:
                await client.aclose()
        self._client = None
        self._plain_client = None

    async def __aenter__(self) -> CloudVaultClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with +/- 25% jitter."""
        base_delay = self.retry_delay * (2**attempt)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _translate_http_error(self, e: httpx.HTTPStatusError) -> CloudVaultAPIError:
        """Map an HTTP error status to the exception hierarchy."""
        status_code = e.response.status_code

        if status_code == 401:
            return CloudVaultAuthenticationError("Invalid token or unauthorized access")
        if status_code == 403:
            return CloudVaultPermissionError("Access forbidden - check your permissions")
        if status_code == 404:
            return CloudVaultNotFoundError("Resource not found")
        if status_code == 429:
            return CloudVaultRateLimitError("Rate limit exceeded - please try again later")

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = (
                        error_data.get("error")
                        or error_data.get("message")
                        or error_data.get("detail")
                    )
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            pass
        return CloudVaultAPIError(error_msg)

    def _should_retry(self, error: CloudVaultAPIError, status_code: int | None) -> bool:
        if isinstance(error, (CloudVaultNetworkError, CloudVaultRateLimitError)):
            return True
        return status_code is not None and 500 <= status_code < 600

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request and decode the JSON body.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for an empty body)

        Raises:
            CloudVaultAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            status_code: int | None = None
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    if "text/html" in content_type:
                        raise CloudVaultInvalidResponseError(
                            "Server returned HTML instead of JSON - check the API URL"
                        )
                    raise CloudVaultInvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )

                if response.content:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise CloudVaultInvalidResponseError(
                            "Invalid JSON response from server"
                        ) from e
                return {}

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                error: CloudVaultAPIError = self._translate_http_error(e)
                cause: Exception = e
            except httpx.RequestError as e:
                error = CloudVaultNetworkError(f"Network error: {e}")
                cause = e

            if attempt < self.max_retries and self._should_retry(error, status_code):
                delay = self._calculate_retry_delay(attempt)
                logger.debug(
                    f"{method} {endpoint} failed ({error}), retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
                continue
            raise error from cause

        raise CloudVaultAPIError("Request failed after all retry attempts")

    # =========================
    # Folder Operations
    # =========================

    async def list_folders(self, parent_id: Any | None = None) -> list[RemoteFolder]:
        """List the direct child folders of a folder.

        Args:
            parent_id: Parent folder ID (None for the root)

        Returns:
            List of RemoteFolder
        """
        params = {"parent_id": parent_id} if parent_id is not None else None
        result = await self._request("GET", "/folders", params=params)
        return [
            RemoteFolder.from_api_response(item, parent_id=parent_id)
            for item in unwrap_list(result)
        ]

    async def create_folder(self, name: str, parent_id: Any | None = None) -> Any:
        """Create a folder and return its ID.

        Raises:
            CloudVaultAPIError: If the server does not return an ID
        """
        result = await self._request(
            "POST", "/folders", json={"name": name, "parent_id": parent_id}
        )
        folder_id = extract_id(result)
        if folder_id is None:
            raise CloudVaultAPIError(f"Failed to create folder '{name}'")
        return folder_id

    # =========================
    # File Operations
    # =========================

    async def list_files(self, folder_id: Any | None = None) -> list[RemoteFileEntry]:
        """List the files directly inside a folder.

        Args:
            folder_id: Folder ID (None for the root)

        Returns:
            List of RemoteFileEntry
        """
        params = {"folder_id": folder_id} if folder_id is not None else None
        result = await self._request("GET", "/files", params=params)
        return [
            RemoteFileEntry.from_api_response(item, parent_id=folder_id)
            for item in unwrap_list(result)
        ]

    async def request_upload_destination(
        self,
        file_name: str,
        mime_type: str = DEFAULT_MIME_TYPE,
        folder_id: Any | None = None,
    ) -> dict[str, str] | None:
        """Ask the server where to PUT a new file.

        Returns:
            ``{"upload_url": ..., "storage_path": ...}`` or None when the
            server did not hand out a destination
        """
        payload: dict[str, Any] = {
            "file_name": file_name,
            "mime_type": mime_type or DEFAULT_MIME_TYPE,
        }
        if folder_id is not None:
            payload["folder_id"] = folder_id

        result = await self._request("POST", "/files/upload-url", json=payload)
        if not isinstance(result, dict):
            return None
        upload_url = result.get("upload_url")
        storage_path = result.get("storage_path")
        if not upload_url or not storage_path:
            return None
        return {"upload_url": upload_url, "storage_path": storage_path}

    async def put_bytes(
        self, upload_url: str, data: bytes, mime_type: str = DEFAULT_MIME_TYPE
    ) -> None:
        """PUT file content to an upload destination.

        Raises:
            CloudVaultUploadError: If the storage backend rejects the upload
        """
        client = self._get_plain_client()
        try:
            response = await client.put(
                upload_url,
                content=data,
                headers={"Content-Type": mime_type or DEFAULT_MIME_TYPE},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CloudVaultUploadError(
                f"Upload failed: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise CloudVaultUploadError(f"Network error during upload: {e}") from e

    async def register_uploaded_file(
        self,
        storage_path: str,
        name: str,
        mime_type: str = DEFAULT_MIME_TYPE,
        size: int = 0,
    ) -> RemoteFileEntry:
        """Create the file record for bytes already stored at ``storage_path``."""
        result = await self._request(
            "POST",
            "/files",
            json={
                "storage_path": storage_path,
                "name": name,
                "mime_type": mime_type or DEFAULT_MIME_TYPE,
                "size": size,
            },
        )
        record = result if isinstance(result, dict) else {}
        for key in ("data", "file", "fileEntry"):
            if isinstance(record.get(key), dict):
                record = record[key]
                break
        entry = RemoteFileEntry.from_api_response(record)
        if not entry.name:
            entry.name = name
        return entry

    async def download_file_bytes(self, file_id: Any) -> bytes:
        """Download the content of a file.

        The download endpoint answers either with the raw bytes or with a
        JSON document pointing at a signed URL; both are handled.

        Raises:
            CloudVaultDownloadError: If the download fails
        """
        url = f"{self.api_url}/files/{file_id}/download"
        client = self._get_client()

        try:
            response = await client.get(url)
            response.raise_for_status()

            content_type = response.headers.get("Content-Type", "").lower()
            if "application/json" in content_type:
                try:
                    payload = response.json()
                except ValueError:
                    payload = None
                if isinstance(payload, dict):
                    signed_url = next(
                        (payload[k] for k in DOWNLOAD_URL_KEYS if payload.get(k)),
                        None,
                    )
                    if signed_url:
                        logger.debug(f"Following signed URL for file {file_id}")
                        signed = await self._get_plain_client().get(signed_url)
                        signed.raise_for_status()
                        return signed.content
            return response.content

        except httpx.HTTPStatusError as e:
            raise CloudVaultDownloadError(
                f"Download failed: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise CloudVaultNetworkError(f"Network error during download: {e}") from e
