"""Shared access token and the OAuth refresh exchange.

Every worker reads the token through :meth:`CredentialStore.read` right
before a request and uses that snapshot for the whole call. A refresh swaps
the stored value under the lock; calls already in flight keep their old
snapshot and, if it has expired, get a 401 of their own and trigger another
refresh. Concurrent refreshes are not coalesced.
"""

import logging
import threading
from typing import Optional

import httpx

from .config import MirrorConfig
from .exceptions import AuthError, MalformedResponse

logger = logging.getLogger(__name__)


class CredentialStore:
    """Thread-safe holder for the current access token."""

    def __init__(self, token: Optional[str] = None):
        self._lock = threading.Lock()
        self._token = token
        self._refresh_count = 0

    def read(self) -> str:
        """Return a snapshot of the current token.

        Raises:
            AuthError: If no token has been stored yet
        """
        with self._lock:
            token = self._token
        if token is None:
            raise AuthError("No access token available")
        return token

    def replace(self, new_token: str) -> None:
        """Atomically replace the stored token (last writer wins)."""
        with self._lock:
            if self._token is not None:
                self._refresh_count += 1
            self._token = new_token

    @property
    def refresh_count(self) -> int:
        """Number of times a stored token has been replaced by a new one."""
        with self._lock:
            return self._refresh_count


class TokenRefresher:
    """Exchanges the long-lived refresh token for a new access token."""

    def __init__(
        self,
        http: httpx.Client,
        config: MirrorConfig,
        store: CredentialStore,
    ):
        """Initialize the refresher.

        Args:
            http: Shared HTTP client
            config: Run configuration holding the OAuth credentials
            store: Store that receives refreshed tokens
        """
        self.http = http
        self.config = config
        self.store = store

    def fetch_token(self) -> str:
        """Perform the token exchange without touching the store.

        Returns:
            New access token

        Raises:
            AuthError: If the exchange fails or the endpoint is unreachable
            MalformedResponse: If a successful response has no access token
        """
        form = {
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": self.config.refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            response = self.http.post(self.config.token_url, data=form)
        except httpx.RequestError as e:
            raise AuthError(f"Token request failed: {e}") from e

        if not response.is_success:
            logger.error("Token request failed: %s", response.status_code)
            logger.error("Body: %s", response.text)
            raise AuthError(
                "Token request failed",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse("Token response is not valid JSON") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise MalformedResponse("Token response has no access_token")
        return token

    def refresh(self) -> str:
        """Fetch a new access token and store it.

        Returns:
            The token that was stored
        """
        token = self.fetch_token()
        self.store.replace(token)
        logger.debug("Access token refreshed")
        return token
