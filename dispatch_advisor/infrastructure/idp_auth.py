"""IDP client-credentials authentication.

Fetches OAuth access tokens for the booking API and caches them until
shortly before they expire.
"""

import asyncio
import time
from dataclasses import dataclass

import httpx
import structlog

logger = structlog.get_logger()

# Refresh tokens this many seconds before they expire
EXPIRY_SKEW_SECONDS = 30.0


class AuthenticationError(Exception):
    """Raised when an access token cannot be obtained."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class AccessToken:
    """Cached access token."""

    access_token: str
    token_type: str
    expires_at: float
    scope: str = ""

    def is_valid(self) -> bool:
        return time.monotonic() < self.expires_at - EXPIRY_SKEW_SECONDS


class IdpTokenProvider:
    """Client-credentials token provider.

    Tokens are cached; concurrent callers share a single refresh.
    """

    def __init__(
        self,
        token_endpoint: str,
        client_id: str,
        client_secret: str,
        scope: str = "dispatch:api",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the token provider.

        Args:
            token_endpoint: OAuth token endpoint URL.
            client_id: Client ID.
            client_secret: Client secret.
            scope: Requested scope.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.token_endpoint = token_endpoint
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.timeout = timeout
        self._transport = transport
        self._token: AccessToken | None = None
        self._refresh_lock = asyncio.Lock()

    def has_valid_token(self) -> bool:
        return self._token is not None and self._token.is_valid()

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it when needed.

        Raises:
            AuthenticationError: If the token request fails.
        """
        if self._token is not None and self._token.is_valid():
            return self._token.access_token

        async with self._refresh_lock:
            if self._token is not None and self._token.is_valid():
                return self._token.access_token
            self._token = await self._request_token()
            return self._token.access_token

    async def _request_token(self) -> AccessToken:
        if not self.token_endpoint:
            raise AuthenticationError("IDP token endpoint is not configured")

        body = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": self.scope,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_endpoint,
                    json=body,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise AuthenticationError(f"Token request timed out: {e}") from e
        except httpx.RequestError as e:
            raise AuthenticationError(f"Token request failed: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Token request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
            token = AccessToken(
                access_token=data["access_token"],
                token_type=data.get("token_type", "Bearer"),
                expires_at=time.monotonic() + float(data.get("expires_in", 0)),
                scope=data.get("scope", ""),
            )
        except (ValueError, KeyError) as e:
            raise AuthenticationError(f"Invalid token response: {e}") from e

        logger.info("IDP token refreshed", scope=token.scope)
        return token
