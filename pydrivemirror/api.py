"""API client for the remote drive."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from .auth import CredentialStore, TokenRefresher
from .config import MirrorConfig
from .exceptions import (
    LocalIoError,
    MalformedResponse,
    RemoteApiError,
    TokenExpiredError,
)
from .utils import FILE_PART_MIME_TYPE, FOLDER_MIME_TYPE, remote_name

logger = logging.getLogger(__name__)


class DriveClient:
    """Client for creating folders and uploading files.

    A single instance is shared by the walker and all upload workers. The
    underlying ``httpx.Client`` is safe for concurrent use; the access token
    is read from the :class:`CredentialStore` at the start of every call.
    """

    def __init__(
        self,
        config: MirrorConfig,
        store: CredentialStore,
        refresher: TokenRefresher | None = None,
        http: httpx.Client | None = None,
    ):
        """Initialize the drive client.

        Args:
            config: Run configuration (endpoints, timeout, credentials)
            store: Shared access token store
            refresher: Refresh protocol to run on 401 responses (created
                from ``config`` if not provided)
            http: HTTP client to use (created if not provided)
        """
        self.config = config
        self.store = store
        self._owns_http = http is None
        self.http = http or httpx.Client(
            timeout=httpx.Timeout(config.timeout),
            follow_redirects=True,
        )
        self.refresher = refresher or TokenRefresher(self.http, config, store)

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http and not self.http.is_closed:
            self.http.close()

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _post(self, url: str, operation: str, **kwargs: Any) -> httpx.Response:
        """Send an authorized POST request.

        Args:
            url: Endpoint URL
            operation: Short description used in error messages
            **kwargs: Additional arguments passed to httpx

        Returns:
            The successful response

        Raises:
            TokenExpiredError: On 401, after the token has been refreshed
            AuthError: On 401 when the refresh itself fails
            RemoteApiError: On any other non-2xx status or a network error
        """
        token = self.store.read()
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = self.http.post(url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise RemoteApiError(f"{operation} failed: network error: {e}") from e
        except ValueError as e:
            # includes UnicodeEncodeError while encoding the request
            raise RemoteApiError(f"{operation} failed: invalid request: {e}") from e

        if response.status_code == 401:
            logger.debug("%s got 401, refreshing token", operation)
            self.refresher.refresh()
            raise TokenExpiredError(
                f"Token expired while {operation}",
                status_code=401,
                body=response.text,
            )

        if not response.is_success:
            raise RemoteApiError(
                f"{operation} failed",
                status_code=response.status_code,
                body=response.text,
            )

        return response

    # =========================
    # Folder Operations
    # =========================

    def create_folder(self, name: str, parent_id: str | None = None) -> str:
        """Create a folder.

        The call is never repeated automatically: a 401 refreshes the token
        and raises :class:`TokenExpiredError` so the caller can decide.

        Args:
            name: Name of the new folder
            parent_id: ID of the parent folder (None for the drive root)

        Returns:
            ID of the created folder

        Raises:
            TokenExpiredError: If the token had expired (now refreshed)
            RemoteApiError: If the API rejects the request
            MalformedResponse: If the response carries no folder id
        """
        name = remote_name(name)
        metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id is not None:
            metadata["parents"] = [parent_id]

        response = self._post(
            self.config.api_url, f"creating folder '{name}'", json=metadata
        )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(
                f"Folder '{name}' created but response is not valid JSON"
            ) from e

        folder_id = data.get("id") if isinstance(data, dict) else None
        if not folder_id or not isinstance(folder_id, str):
            raise MalformedResponse(f"Folder '{name}' created but no id in response")

        logger.debug("Created folder %s (%s)", name, folder_id)
        return folder_id

    # =========================
    # Upload Operations
    # =========================

    def upload_file(self, file_path: Path, parent_id: str) -> Any:
        """Upload a file into a folder with a single multipart request.

        Args:
            file_path: Local path to the file
            parent_id: ID of the destination folder

        Returns:
            Response JSON data (empty dict if the body is empty)

        Raises:
            LocalIoError: If the file cannot be opened or read
            TokenExpiredError: If the token had expired (now refreshed)
            RemoteApiError: If the API rejects the upload
        """
        file_name = remote_name(file_path.name)
        if not file_name:
            raise LocalIoError(file_path, "invalid file name")

        metadata = {"name": file_name, "parents": [parent_id]}

        try:
            with open(file_path, "rb") as f:
                files = {
                    "metadata": (None, json.dumps(metadata), "application/json"),
                    "file": (file_name, f, FILE_PART_MIME_TYPE),
                }
                response = self._post(
                    self.config.upload_url, f"uploading '{file_name}'", files=files
                )
        except OSError as e:
            raise LocalIoError(file_path, f"cannot open file: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}
