"""HTTP client for the Unisave script upload API."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from unisave_uploader.api.errors import (
    AuthorizationError,
    InvalidResponseError,
    ServerError,
    TransportError,
)
from unisave_uploader.config import ASSET_VERSION
from unisave_uploader.network import ApiUrl, get_base_url

log = logging.getLogger(__name__)


@dataclass
class BuildOutcome:
    """Result of the remote compilation reported by the finish request."""

    succeeded: bool
    message: str = ""


class UnisaveAPI:
    """
    Client for the Unisave server: start upload, upload one script, finish upload.
    Every request is a blocking JSON POST carrying the game token and editor key.
    No retries; callers decide what to do with a failure.
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        game_token: str = "",
        editor_key: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._urls = ApiUrl(server_url or get_base_url())
        self._game_token = game_token
        self._editor_key = editor_key
        self._timeout = timeout
        self._transport = transport
        log.debug("API client base_url=%s", self._urls.base_url)

    @property
    def base_url(self) -> str:
        return self._urls.base_url

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def _identity(self) -> Dict[str, Any]:
        return {"gameToken": self._game_token, "editorKey": self._editor_key}

    def post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST payload as JSON and return the parsed JSON object.
        200 -> parsed body; 401 -> AuthorizationError; other status -> ServerError;
        connection-level failure or unreadable response -> TransportError.
        Raw bodies are kept on the errors.
        """
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                r = client.post(url, json=payload, headers=self._headers())
                body = r.text
        except httpx.RequestError as e:
            log.error("Request to %s failed: %s", url, e)
            raise TransportError(f"Could not reach {url}: {e}") from e

        if r.status_code == 401:
            log.error("Server sent 401 for %s:\n%s", url, body)
            raise AuthorizationError(body)
        if r.status_code != 200:
            log.error("Server sent %d for %s:\n%s", r.status_code, url, body)
            raise ServerError(r.status_code, body)
        try:
            data = r.json()
        except ValueError as e:
            log.error("Server sent invalid JSON for %s:\n%s", url, body)
            raise InvalidResponseError(f"Response from {url} is not valid JSON", body) from e
        if not isinstance(data, dict):
            raise InvalidResponseError(f"Response from {url} is not a JSON object", body)
        return data

    def start_upload(self, files: List[str], hashes: Dict[str, str], global_hash: str) -> List[str]:
        """POST start. Announces the file list and hashes; returns paths the server wants uploaded."""
        log.debug("start_upload files=%d global_hash=%s", len(files), global_hash)
        data = self.post_json(
            self._urls.start_script_upload(),
            {
                **self._identity(),
                "assetVersion": ASSET_VERSION,
                "files": list(files),
                "hashes": dict(hashes),
                "globalHash": global_hash,
            },
        )
        plan = data.get("filesToUpload")
        if not isinstance(plan, list) or not all(isinstance(p, str) for p in plan):
            raise InvalidResponseError("Start response lacks a filesToUpload list", str(data))
        return plan

    def upload_script(self, path: str, code: str) -> bool:
        """POST file. Returns True when the server acknowledges with code 'ok'."""
        log.debug("upload_script path=%s size=%d", path, len(code))
        data = self.post_json(
            self._urls.upload_script(),
            {**self._identity(), "scriptPath": path, "scriptCode": code},
        )
        return data.get("code") == "ok"

    def finish_upload(self) -> BuildOutcome:
        """POST finish. Server compiles the uploaded set and reports the result."""
        log.debug("finish_upload")
        data = self.post_json(self._urls.finish_script_upload(), self._identity())
        succeeded = data.get("compilationSucceeded")
        if not isinstance(succeeded, bool):
            raise InvalidResponseError("Finish response lacks a boolean compilationSucceeded", str(data))
        message = data.get("compilationMessage")
        return BuildOutcome(
            succeeded=succeeded,
            message=message if isinstance(message, str) else "",
        )
