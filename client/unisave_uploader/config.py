"""Uploader configuration: server URL, backend folder, source extension, tokens."""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "https://unisave.cloud"
DEFAULT_BACKEND_FOLDER = "Assets/Backend"
DEFAULT_SOURCE_EXTENSION = ".cs"

# Sent as assetVersion with the start request so the server knows which client protocol it talks to
ASSET_VERSION = "0.7.0"

# Environment variables layered over the config file (topmost non-empty value wins)
ENV_SERVER_URL = "UNISAVE_SERVER_URL"
ENV_GAME_TOKEN = "UNISAVE_GAME_TOKEN"
ENV_EDITOR_KEY = "UNISAVE_EDITOR_KEY"
ENV_BACKEND_FOLDER = "UNISAVE_BACKEND_FOLDER"


def _config_dir() -> Path:
    """Platform-specific config directory (no admin). UNISAVE_CONFIG_DIR overrides (tests, CI)."""
    override = os.environ.get("UNISAVE_CONFIG_DIR", "").strip()
    if override:
        return Path(override)
    if os.name == "nt":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return Path(base) / "Unisave"
    if os.environ.get("XDG_CONFIG_HOME"):
        return Path(os.environ["XDG_CONFIG_HOME"]) / "unisave"
    return Path.home() / ".config" / "unisave"


def get_config_path() -> Path:
    """Path to config.json in the config directory."""
    d = _config_dir()
    d.mkdir(parents=True, exist_ok=True)
    return d / "config.json"


def get_log_path() -> Path:
    """Path to the uploader log file."""
    return get_config_path().parent / "uploader.log"


def _read_config() -> Dict[str, Any]:
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable config %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _write_config_value(key: str, value: Any) -> None:
    """Merge one key into the config file, preserving the others."""
    path = get_config_path()
    data = _read_config()
    data[key] = value
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def get_server_url() -> str:
    """Configured server URL, or the public Unisave server."""
    return (_read_config().get("server_url") or "").strip() or DEFAULT_SERVER_URL


def set_server_url(url: str) -> None:
    """Persist server URL (trailing slash removed)."""
    _write_config_value("server_url", (url or "").strip().rstrip("/"))


def get_backend_folder() -> str:
    """Folder with backend sources, relative to the current directory unless absolute."""
    return (_read_config().get("backend_folder") or "").strip() or DEFAULT_BACKEND_FOLDER


def set_backend_folder(folder: str) -> None:
    """Persist backend folder."""
    _write_config_value("backend_folder", (folder or "").strip())


def get_source_extension() -> str:
    """Extension of the files sent to the compiler, e.g. '.cs'."""
    ext = (_read_config().get("source_extension") or "").strip()
    return normalize_extension(ext) if ext else DEFAULT_SOURCE_EXTENSION


def set_source_extension(extension: str) -> None:
    """Persist source extension."""
    _write_config_value("source_extension", normalize_extension(extension))


def get_game_token() -> Optional[str]:
    """Game token stored in the config file (the keyring copy takes precedence)."""
    return (_read_config().get("game_token") or "").strip() or None


def normalize_extension(extension: str) -> str:
    """'cs' and '.cs' both become '.cs'."""
    extension = (extension or "").strip()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


@dataclass
class UploaderPreferences:
    """Everything one upload run needs; passed explicitly to the uploader."""

    server_url: str = DEFAULT_SERVER_URL
    game_token: str = ""
    editor_key: str = ""
    backend_folder: str = DEFAULT_BACKEND_FOLDER
    source_extension: str = DEFAULT_SOURCE_EXTENSION

    @property
    def source_root(self) -> Path:
        """Backend folder as a path (relative folders resolve against the current directory)."""
        return Path(self.backend_folder).expanduser()

    def missing_tokens(self) -> bool:
        return not self.game_token or not self.editor_key


def load_preferences(overrides: Optional[Dict[str, Optional[str]]] = None) -> UploaderPreferences:
    """
    Build preferences from layers, lowest first: defaults, config file, keyring credentials,
    environment variables, explicit overrides. Empty or None values never override.
    """
    from unisave_uploader.auth.credentials import CredentialsStore

    prefs = UploaderPreferences(
        server_url=get_server_url(),
        game_token=get_game_token() or "",
        backend_folder=get_backend_folder(),
        source_extension=get_source_extension(),
    )

    stored = CredentialsStore().get_stored()
    if stored:
        prefs.game_token, prefs.editor_key = stored

    env_layer = {
        "server_url": os.environ.get(ENV_SERVER_URL),
        "game_token": os.environ.get(ENV_GAME_TOKEN),
        "editor_key": os.environ.get(ENV_EDITOR_KEY),
        "backend_folder": os.environ.get(ENV_BACKEND_FOLDER),
    }
    for layer in (env_layer, overrides or {}):
        for key, value in layer.items():
            if value is None or not str(value).strip():
                continue
            if not hasattr(prefs, key):
                raise KeyError(f"Unknown preference: {key}")
            setattr(prefs, key, str(value).strip())

    prefs.server_url = prefs.server_url.rstrip("/")
    prefs.source_extension = normalize_extension(prefs.source_extension)
    return prefs
