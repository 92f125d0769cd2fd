"""Resolve the Unisave server base URL and the script upload endpoints."""

import logging
import os

log = logging.getLogger(__name__)


def get_base_url() -> str:
    """
    Return server base URL without trailing slash. Prefer env UNISAVE_SERVER_URL if set,
    else the server_url from the config file (default https://unisave.cloud).
    """
    override = os.environ.get("UNISAVE_SERVER_URL", "").strip()
    if override:
        log.info("Using base URL from UNISAVE_SERVER_URL: %s", override.rstrip("/"))
        return override.rstrip("/")

    # Avoid circular import: config imports are done inside so network can be imported first
    from unisave_uploader import config as app_config
    url = app_config.get_server_url()
    log.debug("Using configured base URL: %s", url.rstrip("/"))
    return url.rstrip("/")


class ApiUrl:
    """Endpoint URLs of the script upload protocol under a server base URL."""

    UPLOAD_PREFIX = "api/script-upload"

    def __init__(self, base_url: str) -> None:
        self.base_url = (base_url or "").rstrip("/")

    def _url(self, name: str) -> str:
        return f"{self.base_url}/{self.UPLOAD_PREFIX}/{name}"

    def start_script_upload(self) -> str:
        return self._url("start")

    def upload_script(self) -> str:
        return self._url("file")

    def finish_script_upload(self) -> str:
        return self._url("finish")
