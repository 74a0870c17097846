"""Secure storage helpers for API keys."""

from __future__ import annotations

import keyring
from keyring.errors import PasswordDeleteError

SERVICE_NAME = "meshnow_desktop_app"
MESHY_ACCOUNT = "meshy_api_key"
FORMNOW_ACCOUNT = "formnow_publishable_key"


def load_key(account: str = MESHY_ACCOUNT) -> str | None:
    """Load an API key from secure storage."""
    return keyring.get_password(SERVICE_NAME, account)


def save_key(api_key: str, account: str = MESHY_ACCOUNT) -> None:
    """Save an API key to secure storage."""
    keyring.set_password(SERVICE_NAME, account, api_key)


def delete_key(account: str = MESHY_ACCOUNT) -> None:
    """Remove an API key from secure storage; missing keys are ignored."""
    try:
        keyring.delete_password(SERVICE_NAME, account)
    except PasswordDeleteError:
        pass
