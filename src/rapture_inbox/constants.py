#!/usr/bin/env python3
"""
Constants for rapture-inbox.

Centralized constants shared by the auth, client and sync layers.
"""

from pathlib import Path

# Google Drive REST API
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
NOTE_MIME_TYPE = "text/markdown"

# Inbox folder lives at <PARENT>/<CHILD> in the user's Drive
INBOX_PARENT_FOLDER = "Rapture"
INBOX_CHILD_FOLDER = "Obsidian"

# OAuth2 configuration
OAUTH_CLIENT_ID = "1001880100001-l2qr9mev2eb86ob498kel7t8d4a31a8g.apps.googleusercontent.com"
OAUTH_REDIRECT_URI = "obsidian://rapture-inbox"
OAUTH_SCOPE = "https://www.googleapis.com/auth/drive.file"
OAUTH_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"

# Token exchange and refresh go through the API gateway, which holds the client secret
TOKEN_SERVICE_BASE = "https://rapture-api-gateway.onrender.com/api/v1/oauth"
TOKEN_EXCHANGE_URL = f"{TOKEN_SERVICE_BASE}/token"
TOKEN_REFRESH_URL = f"{TOKEN_SERVICE_BASE}/refresh"

# Treat access tokens as expired this many seconds before their real expiry
TOKEN_EXPIRY_BUFFER_SECONDS = 5 * 60

# Initial attempt plus one replay after a credential refresh
AUTH_RETRY_ATTEMPTS = 2

# HTTP client
DEFAULT_TIMEOUT = 60

# Settings defaults
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "rapture-inbox"
SETTINGS_FILENAME = "settings.json"
DEFAULT_DESTINATION_FOLDER = "Rapture/"
DEFAULT_SYNC_INTERVAL_MINUTES = 5
SYNC_INTERVAL_CHOICES = (1, 5, 10, 15, 30)

SYNC_IN_PROGRESS_MESSAGE = "Sync already in progress"
NOT_AUTHENTICATED_MESSAGE = "Not authenticated"
