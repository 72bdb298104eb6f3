"""
OAuth2 authorization code flow for Google Drive access
"""

import logging
import urllib.parse

from ..constants import OAUTH_AUTH_ENDPOINT, OAUTH_CLIENT_ID, OAUTH_REDIRECT_URI, OAUTH_SCOPE
from .credentials import CredentialManager
from .exceptions import AuthError

logger = logging.getLogger(__name__)

CONNECTED_MESSAGE = "Successfully connected to Google Drive!"


def build_authorization_url(
    client_id: str = OAUTH_CLIENT_ID,
    redirect_uri: str = OAUTH_REDIRECT_URI,
    scope: str = OAUTH_SCOPE,
) -> str:
    """Build the Google consent URL. Offline access with forced consent so a refresh token is issued."""
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": scope,
        "access_type": "offline",
        "prompt": "consent",
    }
    return f"{OAUTH_AUTH_ENDPOINT}?{urllib.parse.urlencode(params)}"


def parse_callback_url(url: str) -> dict[str, str]:
    """Extract the query parameters from a redirect URI, keeping the first value of each."""
    parsed_url = urllib.parse.urlparse(url)
    query_params = urllib.parse.parse_qs(parsed_url.query)
    return {key: values[0] for key, values in query_params.items() if values}


async def handle_oauth_callback(params: dict[str, str], credentials: CredentialManager) -> str:
    """
    Complete sign-in from redirect callback parameters.

    Args:
        params: Callback parameters, carrying either "error" or "code"
        credentials: Manager that performs the code exchange

    Returns:
        str: User-facing success message

    Raises:
        AuthError: If the provider reported an error or the exchange failed
    """
    error = params.get("error")
    code = params.get("code")

    if error:
        raise AuthError(f"Authentication failed: {error}")

    if not code:
        raise AuthError("Authentication callback did not include an authorization code")

    try:
        await credentials.exchange_code_for_tokens(code)
    except Exception as e:
        logger.error(f"Authorization code exchange failed: {e}")
        raise AuthError(f"Failed to complete authentication: {e}") from e

    return CONNECTED_MESSAGE


def manual_authorization_flow() -> dict[str, str]:
    """
    Perform the authorization step of the code flow by hand.

    The redirect goes to a custom URI scheme, so the user copies the final
    redirect URL (or just the code) from the browser and pastes it here.

    Returns:
        dict[str, str]: Callback parameters to pass to handle_oauth_callback

    Raises:
        AuthError: If the user cancels the prompt
    """
    auth_url = build_authorization_url()

    print("\n" + "=" * 60)
    print("GOOGLE DRIVE AUTHORIZATION")
    print("=" * 60)
    print("1. Open this URL in a browser:")
    print(f"   {auth_url}")
    print()
    print("2. Sign in and grant access to Google Drive")
    print(f"3. Copy the {OAUTH_REDIRECT_URI} address the browser is sent to")
    print("4. Paste it (or just the code parameter) below")
    print("=" * 60)
    print()

    while True:
        try:
            answer = input("Redirect URL or code: ").strip()
            if answer:
                break
            print("Please enter the redirect URL or authorization code.")
        except KeyboardInterrupt:
            raise AuthError("Authorization cancelled by user") from None

    return parse_callback_url(answer) if "?" in answer else {"code": answer}
