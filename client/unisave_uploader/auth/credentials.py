"""Keyring-backed storage for the game token and editor key."""

import logging
import os
from typing import Optional, Tuple

import keyring
import keyring.errors

log = logging.getLogger(__name__)

KEY_GAME_TOKEN = "game_token"
KEY_EDITOR_KEY = "editor_key"


def _keyring_service_name() -> str:
    """Use a separate keyring namespace when UNISAVE_CONFIG_DIR is set (tests, CI)."""
    if os.environ.get("UNISAVE_CONFIG_DIR", "").strip():
        return "Unisave-Test"
    return "Unisave"


class CredentialsStore:
    """
    Stores game token and editor key in OS keyring (Windows Credential Manager,
    macOS Keychain, Linux Secret Service). The editor key never goes to the config file.
    """

    def get_stored(self) -> Optional[Tuple[str, str]]:
        """
        Return (game_token, editor_key) if both are stored, else None.
        On keyring read error (no backend, corrupted entry) returns None so the
        caller can fall back to environment variables.
        """
        try:
            service = _keyring_service_name()
            game_token = keyring.get_password(service, KEY_GAME_TOKEN)
            editor_key = keyring.get_password(service, KEY_EDITOR_KEY)
        except Exception as e:
            log.warning("Could not read stored credentials: %s", e)
            return None
        if game_token and editor_key:
            return (game_token, editor_key)
        return None

    def set_stored(self, game_token: str, editor_key: str) -> None:
        """Store game token and editor key in keyring."""
        service = _keyring_service_name()
        keyring.set_password(service, KEY_GAME_TOKEN, game_token)
        keyring.set_password(service, KEY_EDITOR_KEY, editor_key)
        log.debug("Stored credentials in keyring service %s", service)

    def clear_stored(self) -> None:
        """Remove stored credentials."""
        service = _keyring_service_name()
        for key in (KEY_GAME_TOKEN, KEY_EDITOR_KEY):
            try:
                keyring.delete_password(service, key)
            except keyring.errors.PasswordDeleteError:
                pass
