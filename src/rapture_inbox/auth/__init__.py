"""
OAuth2 authentication module for Google Drive access
"""

from .credentials import CredentialManager
from .exceptions import AuthError, NoRefreshTokenError, TokenExchangeError, TokenRefreshError, UnauthorizedError
from .oauth_flow import build_authorization_url, handle_oauth_callback, manual_authorization_flow, parse_callback_url

__all__ = [
    "AuthError",
    "NoRefreshTokenError",
    "TokenExchangeError",
    "TokenRefreshError",
    "UnauthorizedError",
    "CredentialManager",
    "build_authorization_url",
    "handle_oauth_callback",
    "manual_authorization_flow",
    "parse_callback_url",
]
