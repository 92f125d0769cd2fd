"""Pytest configuration: isolate config dir, environment and keyring for every test."""

from pathlib import Path
from typing import Dict, Optional, Tuple

import keyring
import keyring.errors
import pytest

_ENV_VARS = (
    "UNISAVE_SERVER_URL",
    "UNISAVE_GAME_TOKEN",
    "UNISAVE_EDITOR_KEY",
    "UNISAVE_BACKEND_FOLDER",
)


class MemoryKeyring:
    """Stand-in for the OS keyring: (service, key) -> secret."""

    def __init__(self) -> None:
        self.secrets: Dict[Tuple[str, str], str] = {}

    def get_password(self, service: str, key: str) -> Optional[str]:
        return self.secrets.get((service, key))

    def set_password(self, service: str, key: str, value: str) -> None:
        self.secrets[(service, key)] = value

    def delete_password(self, service: str, key: str) -> None:
        if (service, key) not in self.secrets:
            raise keyring.errors.PasswordDeleteError("not found")
        del self.secrets[(service, key)]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path) -> Path:
    """Point UNISAVE_CONFIG_DIR at a temp dir and clear UNISAVE_* overrides."""
    config_dir = tmp_path / "unisave-config"
    monkeypatch.setenv("UNISAVE_CONFIG_DIR", str(config_dir))
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return config_dir


@pytest.fixture(autouse=True)
def memory_keyring(monkeypatch) -> MemoryKeyring:
    """Replace keyring get/set/delete with an in-memory store."""
    store = MemoryKeyring()
    monkeypatch.setattr(keyring, "get_password", store.get_password)
    monkeypatch.setattr(keyring, "set_password", store.set_password)
    monkeypatch.setattr(keyring, "delete_password", store.delete_password)
    return store


@pytest.fixture
def backend_tree(tmp_path: Path) -> Path:
    """Small backend folder: A/one.cs ('hi'), two.cs ('yo'), plus a non-source file."""
    root = tmp_path / "Backend"
    (root / "A").mkdir(parents=True)
    (root / "A" / "one.cs").write_bytes(b"hi")
    (root / "two.cs").write_bytes(b"yo")
    (root / "notes.txt").write_bytes(b"ignored")
    return root
