"""
Rapture Inbox

Async-first sync that drains the Rapture Google Drive inbox into a local vault.
"""

from rapture_inbox.auth import AuthError, CredentialManager, NoRefreshTokenError, TokenRefreshError
from rapture_inbox.client import DriveClient, DriveFile
from rapture_inbox.settings import Settings, SettingsStore
from rapture_inbox.storage import LocalStore
from rapture_inbox.sync import SyncEngine, SyncResult, SyncStatus

__all__ = [
    "AuthError",
    "CredentialManager",
    "DriveClient",
    "DriveFile",
    "LocalStore",
    "NoRefreshTokenError",
    "Settings",
    "SettingsStore",
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "TokenRefreshError",
]
