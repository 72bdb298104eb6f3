"""
OAuth2 authentication exceptions for Google Drive access
"""


class AuthError(Exception):
    """Base exception for authentication errors."""

    pass


class TokenRefreshError(AuthError):
    """Raised when the access token cannot be refreshed. Stored credentials are cleared."""

    pass


class NoRefreshTokenError(TokenRefreshError):
    """Raised when a refresh is needed but no refresh token is stored."""

    pass


class TokenExchangeError(AuthError):
    """Raised when an authorization code cannot be exchanged for tokens."""

    pass


class UnauthorizedError(AuthError):
    """Raised when the Drive API rejects the bearer token (401)."""

    pass
