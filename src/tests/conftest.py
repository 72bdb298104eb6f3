"""Shared test configuration utilities and fixtures."""

import time

import pytest

from rapture_inbox.auth import CredentialManager
from rapture_inbox.settings import Settings, SettingsStore
from rapture_inbox.storage import LocalStore


@pytest.fixture
def settings_store(tmp_path):
    """Unauthenticated settings store backed by a temporary settings.json."""
    return SettingsStore(settings_file=tmp_path / "config" / "settings.json")


@pytest.fixture
def authenticated_store(settings_store):
    """Settings store holding a valid, unexpired token pair."""
    settings_store.settings = Settings(
        access_token="access-1",
        refresh_token="refresh-1",
        token_expiry=time.time() + 3600,
        user_email="test@example.com",
    )
    return settings_store


@pytest.fixture
def expired_store(authenticated_store):
    """Settings store whose access token has expired."""
    authenticated_store.settings.token_expiry = time.time() - 60
    return authenticated_store


@pytest.fixture
def credential_manager(authenticated_store):
    return CredentialManager(authenticated_store)


@pytest.fixture
def vault(tmp_path):
    """Local store rooted at an empty temporary vault."""
    vault_path = tmp_path / "vault"
    vault_path.mkdir()
    return LocalStore(vault_path)
