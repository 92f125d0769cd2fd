"""Full protocol runs against an in-process fake server (httpx.MockTransport)."""

import base64
import hashlib
import json
from pathlib import Path
from typing import Dict, List

import httpx

from unisave_uploader.api.client import UnisaveAPI
from unisave_uploader.sync.engine import ErrorKind, UploadState, upload_run


def _md5_b64(data: bytes) -> str:
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


class FakeUnisaveServer:
    """Keeps the last uploaded hash per path and asks only for changed files."""

    def __init__(self, compile_ok: bool = True, status_code: int = 200) -> None:
        self.compile_ok = compile_ok
        self.status_code = status_code
        self.stored: Dict[str, str] = {}
        self.requests: List[tuple] = []
        self.plan_override = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/json"
        assert request.headers["accept"] == "application/json"
        payload = json.loads(request.content)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        self.requests.append((endpoint, payload))
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="rejected by fake server")
        assert payload["gameToken"] == "game-token"
        assert payload["editorKey"] == "editor-key"

        if endpoint == "start":
            if self.plan_override is not None:
                plan = self.plan_override
            else:
                plan = [p for p in payload["files"] if self.stored.get(p) != payload["hashes"][p]]
            return httpx.Response(200, json={"filesToUpload": plan})
        if endpoint == "file":
            code = payload["scriptCode"].encode("utf-8")
            self.stored[payload["scriptPath"]] = _md5_b64(code)
            return httpx.Response(200, json={"code": "ok"})
        if endpoint == "finish":
            message = "" if self.compile_ok else "Player.cs(1,1): error CS0116"
            return httpx.Response(200, json={"compilationSucceeded": self.compile_ok, "compilationMessage": message})
        return httpx.Response(404, text="unknown endpoint")

    def api(self) -> UnisaveAPI:
        return UnisaveAPI(
            server_url="https://unisave.test",
            game_token="game-token",
            editor_key="editor-key",
            transport=httpx.MockTransport(self.handler),
        )

    def endpoints(self) -> List[str]:
        return [endpoint for endpoint, _ in self.requests]


def _src_tree(tmp_path: Path) -> Path:
    root = tmp_path / "Backend"
    (root / "A").mkdir(parents=True)
    (root / "A" / "one.src").write_bytes(b"hi")
    (root / "two.src").write_bytes(b"yo")
    return root


def test_end_to_end_scenario(tmp_path: Path) -> None:
    """Server already has A/one.src; only two.src is requested and uploaded, then finish."""
    root = _src_tree(tmp_path)
    server = FakeUnisaveServer()
    server.stored["A/one.src"] = _md5_b64(b"hi")

    result = upload_run(server.api(), root, ".src")

    d1, d2 = _md5_b64(b"hi"), _md5_b64(b"yo")
    start = server.requests[0][1]
    assert start["files"] == ["A/one.src", "two.src"]
    assert start["hashes"] == {"A/one.src": d1, "two.src": d2}
    assert start["globalHash"] == _md5_b64((d1 + d2).encode("utf-8"))
    assert "assetVersion" in start
    assert server.endpoints() == ["start", "file", "finish"]
    upload = server.requests[1][1]
    assert upload["scriptPath"] == "two.src"
    assert upload["scriptCode"] == "yo"
    assert server.requests[2][1] == {"gameToken": "game-token", "editorKey": "editor-key"}
    assert result.ok
    assert result.state is UploadState.DONE


def test_second_run_without_changes_uploads_nothing(tmp_path: Path) -> None:
    """Idempotence: after a full upload an unchanged tree sends start and finish only."""
    root = _src_tree(tmp_path)
    server = FakeUnisaveServer()

    first = upload_run(server.api(), root, ".src")
    assert first.uploaded == ["A/one.src", "two.src"]

    server.requests.clear()
    second = upload_run(server.api(), root, ".src")

    assert server.endpoints() == ["start", "finish"]
    assert second.uploaded == []
    assert second.ok


def test_changed_file_is_the_only_upload(tmp_path: Path) -> None:
    root = _src_tree(tmp_path)
    server = FakeUnisaveServer()
    upload_run(server.api(), root, ".src")
    (root / "A" / "one.src").write_bytes(b"ho")

    server.requests.clear()
    result = upload_run(server.api(), root, ".src")

    assert result.uploaded == ["A/one.src"]
    assert server.endpoints() == ["start", "file", "finish"]


def test_server_plan_with_unknown_file(tmp_path: Path) -> None:
    """The plan is server-authoritative; an unknown path is a per-file failure only."""
    root = _src_tree(tmp_path)
    server = FakeUnisaveServer()
    server.plan_override = ["A/one.src", "gone.src", "two.src"]

    result = upload_run(server.api(), root, ".src")

    assert result.uploaded == ["A/one.src", "two.src"]
    assert result.failed == ["gone.src"]
    assert server.endpoints() == ["start", "file", "file", "finish"]


def test_unauthorized_aborts_at_start(tmp_path: Path) -> None:
    root = _src_tree(tmp_path)
    server = FakeUnisaveServer(status_code=401)

    result = upload_run(server.api(), root, ".src")

    assert result.error is ErrorKind.AUTHORIZATION
    assert result.failed_in is UploadState.ANNOUNCING
    assert server.endpoints() == ["start"]


def test_server_error_aborts_at_start(tmp_path: Path) -> None:
    server = FakeUnisaveServer(status_code=500)
    result = upload_run(server.api(), _src_tree(tmp_path), ".src")
    assert result.error is ErrorKind.SERVER
    assert server.endpoints() == ["start"]


def test_connection_error_is_transport_failure(tmp_path: Path) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = UnisaveAPI("https://unisave.test", "game-token", "editor-key", transport=httpx.MockTransport(refuse))
    result = upload_run(api, _src_tree(tmp_path), ".src")
    assert result.error is ErrorKind.TRANSPORT
    assert result.state is UploadState.FAILED


def test_compile_error_reported(tmp_path: Path) -> None:
    server = FakeUnisaveServer(compile_ok=False)
    result = upload_run(server.api(), _src_tree(tmp_path), ".src")
    assert result.state is UploadState.DONE
    assert result.outcome.succeeded is False
    assert "CS0116" in result.message
