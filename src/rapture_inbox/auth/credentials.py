"""
OAuth2 token lifecycle for Google Drive access
"""

import json
import logging
import time
from typing import Any

import aiohttp

from ..constants import (
    DEFAULT_TIMEOUT,
    OAUTH_REDIRECT_URI,
    TOKEN_EXCHANGE_URL,
    TOKEN_EXPIRY_BUFFER_SECONDS,
    TOKEN_REFRESH_URL,
)
from ..settings import Settings, SettingsStore
from .exceptions import AuthError, NoRefreshTokenError, TokenExchangeError, TokenRefreshError

logger = logging.getLogger(__name__)


class CredentialManager:
    """Async manager for the stored access/refresh token pair.

    Tokens live in the SettingsStore document and are saved after every change.
    Exchange and refresh requests go to the token service rather than Google
    directly, so no client secret is held locally.
    """

    def __init__(
        self,
        store: SettingsStore,
        token_url: str = TOKEN_EXCHANGE_URL,
        refresh_url: str = TOKEN_REFRESH_URL,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.store = store
        self.token_url = token_url
        self.refresh_url = refresh_url
        self.timeout = timeout

        # Session will be created lazily when first needed
        self.session: aiohttp.ClientSession | None = None

    @property
    def settings(self) -> Settings:
        return self.store.settings

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if necessary."""
        if self.session is None:
            timeout_config = aiohttp.ClientTimeout(total=self.timeout, connect=10)
            self.session = aiohttp.ClientSession(timeout=timeout_config)
        return self.session

    async def close(self) -> None:
        """Close the session. Must be called when done with the manager."""
        if self.session is not None:
            await self.session.close()
            self.session = None

    def is_authenticated(self) -> bool:
        return bool(self.settings.refresh_token)

    def is_token_expired(self) -> bool:
        """True when the access token expires within the safety buffer, or has no expiry at all."""
        expiry = self.settings.token_expiry
        if not expiry:
            return True
        return time.time() >= expiry - TOKEN_EXPIRY_BUFFER_SECONDS

    async def get_access_token(self) -> str:
        """
        Get a usable access token, refreshing it first if it is expired.

        Raises:
            NoRefreshTokenError: If no refresh token is stored
            TokenRefreshError: If the refresh is rejected
        """
        if not self.is_authenticated():
            raise NoRefreshTokenError("No refresh token available. Please sign in again.")

        if self.is_token_expired():
            await self.refresh_access_token()

        return self.settings.access_token

    async def refresh_access_token(self) -> None:
        """
        Exchange the refresh token for a new access token.

        A rejected or malformed refresh clears every stored credential so the user must
        sign in again. The refresh token is only replaced when the service rotates it.
        """
        if not self.settings.refresh_token:
            raise NoRefreshTokenError("No refresh token available")

        logger.debug("Refreshing access token")
        status, data = await self._post_json(self.refresh_url, {"refresh_token": self.settings.refresh_token})

        if status != 200:
            logger.warning(f"Token refresh rejected with status {status}, signing out")
            await self.sign_out()
            raise TokenRefreshError("Token refresh failed. Please sign in again.")

        try:
            access_token, expires_in = _require_token_fields(data, TokenRefreshError)
        except TokenRefreshError as e:
            logger.warning(f"Token refresh returned an unusable response, signing out: {e}")
            await self.sign_out()
            raise

        self.settings.access_token = access_token
        self.settings.token_expiry = time.time() + expires_in

        # Refresh token may be rotated
        if data.get("refresh_token"):
            self.settings.refresh_token = data["refresh_token"]
            logger.debug("Refresh token rotated")

        await self.store.save()
        logger.info("Access token refreshed")

    async def exchange_code_for_tokens(self, code: str, redirect_uri: str = OAUTH_REDIRECT_URI) -> None:
        """
        Exchange a one-time authorization code for the initial token pair.

        Raises:
            TokenExchangeError: If the token service rejects the code
        """
        status, data = await self._post_json(self.token_url, {"code": code, "redirect_uri": redirect_uri})

        if status != 200:
            raise TokenExchangeError(f"Token exchange failed: {status}")

        access_token, expires_in = _require_token_fields(data, TokenExchangeError)
        self.settings.access_token = access_token
        self.settings.refresh_token = data.get("refresh_token") or ""
        self.settings.token_expiry = time.time() + expires_in
        self.settings.user_email = data.get("email") or ""

        await self.store.save()
        logger.info(f"Signed in as {self.settings.user_email or 'unknown account'}")

    async def sign_out(self) -> None:
        """Forget all stored credentials."""
        self.settings.access_token = ""
        self.settings.refresh_token = ""
        self.settings.token_expiry = 0
        self.settings.user_email = ""

        await self.store.save()
        logger.info("Signed out")

    async def _post_json(self, url: str, body: dict[str, str]) -> tuple[int, dict[str, Any]]:
        """POST a JSON body and return the status with the decoded JSON response (empty on failure)."""
        session = await self._ensure_session()
        response = await session.post(url, json=body)
        text = await response.text()

        if response.status != 200:
            return response.status, {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        return response.status, data if isinstance(data, dict) else {}


def _require_token_fields(data: dict[str, Any], error_class: type[AuthError]) -> tuple[str, float]:
    """Pull access_token and expires_in out of a token response."""
    try:
        return str(data["access_token"]), float(data["expires_in"])
    except (KeyError, TypeError, ValueError) as e:
        raise error_class(f"Malformed token response: missing or invalid {e}") from e
