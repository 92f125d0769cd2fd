"""Upload logic: scan and hash the backend folder, let the server pick what changed,
upload those files one by one, then let the server compile.

Protocol phases (each a blocking POST, strictly sequential):
1. start  - send file list, per-file hashes and global hash; server answers with the
            paths it needs (filesToUpload).
2. file   - one request per requested path with the file's code.
3. finish - server compiles the uploaded set and reports compilationSucceeded / message.

Robustness principles:
- Hashes are recomputed from disk on every run; nothing is cached between runs.
- A file that cannot be read (or is rejected by the server) is logged and skipped; the
  remaining files are still uploaded and the run still reaches finish.
- Authorization, server and connection failures abort the run. Files uploaded before the
  failure stay on the server; the next full run overwrites them. Nothing is retried.
- A failed compilation is a normal result, not an error of the uploader.
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from unisave_uploader.api.client import BuildOutcome, UnisaveAPI
from unisave_uploader.api.errors import (
    AuthorizationError,
    TransportError,
    UploaderError,
)
from unisave_uploader.config import UploaderPreferences
from unisave_uploader.sync.hashing import TreeManifest, compute_hashes, global_digest
from unisave_uploader.sync.scanner import resolve_in_root, scan_tree, scanned_path

# Progress callback: (phase, current_index, total_count). Phase: "hashing"|"upload".
ProgressCallback = Callable[[str, int, int], None]
StateCallback = Callable[["UploadState"], None]

log = logging.getLogger(__name__)


class UploadState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    HASHING = "hashing"
    ANNOUNCING = "announcing"
    AWAITING_PLAN = "awaiting_plan"
    UPLOADING = "uploading"
    FINISHING = "finishing"
    DONE = "done"
    FAILED = "failed"


class ErrorKind(enum.Enum):
    NOT_FOUND = "not_found"
    IO_ERROR = "io_error"
    AUTHORIZATION = "authorization"
    SERVER = "server"
    TRANSPORT = "transport"


@dataclass
class UploadResult:
    """Outcome of one upload run."""

    state: UploadState = UploadState.IDLE
    failed_in: Optional[UploadState] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    manifest: Optional[TreeManifest] = None
    plan: List[str] = field(default_factory=list)
    uploaded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    outcome: Optional[BuildOutcome] = None

    @property
    def ok(self) -> bool:
        """True when the run completed and the server compiled the code."""
        return self.state is UploadState.DONE and self.outcome is not None and self.outcome.succeeded


def _error_kind(exc: UploaderError) -> ErrorKind:
    if isinstance(exc, AuthorizationError):
        return ErrorKind.AUTHORIZATION
    if isinstance(exc, TransportError):
        return ErrorKind.TRANSPORT
    # ServerError and its subclasses
    return ErrorKind.SERVER


def _read_code(source_root: Path, path: str, scanned: bool) -> str:
    """Read bytes, not text: no newline translation, so the server's hash matches ours."""
    # Only paths we did not scan ourselves need the escape checks
    file_path = scanned_path(source_root, path) if scanned else resolve_in_root(source_root, path)
    return file_path.read_bytes().decode("utf-8")


def upload_run(
    api: UnisaveAPI,
    source_root: Path,
    extension: str = ".cs",
    on_status: Optional[Callable[[str], None]] = None,
    on_progress: Optional[ProgressCallback] = None,
    on_state: Optional[StateCallback] = None,
) -> UploadResult:
    """
    Run one upload cycle: scan, hash, start, upload requested files, finish.
    Never raises for expected failures; inspect the returned UploadResult instead.
    """
    result = UploadResult()

    def status(msg: str) -> None:
        if on_status:
            on_status(msg)

    def progress(phase: str, current: int, total: int) -> None:
        if on_progress:
            on_progress(phase, current, total)

    def enter(state: UploadState) -> None:
        log.debug("Upload state %s -> %s", result.state.value, state.value)
        result.state = state
        if on_state:
            on_state(state)

    def fail(kind: ErrorKind, message: str) -> UploadResult:
        result.failed_in = result.state
        result.error = kind
        result.message = message
        enter(UploadState.FAILED)
        return result

    log.info("Upload started (source_root=%s, extension=%s)", source_root, extension)

    # --- Scan ---
    enter(UploadState.SCANNING)
    status("Scanning…")
    try:
        files = scan_tree(source_root, extension)
    except FileNotFoundError as e:
        log.error("Backend folder missing: %s", e)
        return fail(ErrorKind.NOT_FOUND, str(e))
    except OSError as e:
        log.error("Scanning failed: %s", e)
        return fail(ErrorKind.IO_ERROR, f"Cannot scan backend folder: {e}")

    # --- Hash (any unreadable file aborts; a partial hash set is useless) ---
    enter(UploadState.HASHING)
    status(f"Hashing {len(files)} files…")
    progress("hashing", 0, len(files))
    try:
        hashes = compute_hashes(source_root, files)
    except OSError as e:
        log.error("Hashing failed: %s", e)
        return fail(ErrorKind.IO_ERROR, f"Cannot read file for hashing: {e}")
    progress("hashing", len(files), len(files))
    manifest = TreeManifest(files=files, hashes=hashes, global_hash=global_digest(files, hashes))
    result.manifest = manifest
    log.info("Hashed %d files, global hash %s", len(files), manifest.global_hash)

    # --- Start: announce hashes, receive the plan ---
    enter(UploadState.ANNOUNCING)
    status("Comparing with server…")
    try:
        plan = api.start_upload(manifest.files, manifest.hashes, manifest.global_hash)
    except UploaderError as e:
        log.error("Start upload failed: %s", e)
        return fail(_error_kind(e), str(e))
    enter(UploadState.AWAITING_PLAN)
    result.plan = list(plan)
    log.info("Server requested %d of %d files", len(plan), len(files))

    # --- Upload requested files, one at a time, in plan order ---
    enter(UploadState.UPLOADING)
    scanned = set(files)
    for index, path in enumerate(plan, start=1):
        progress("upload", index, len(plan))
        status(f"Uploading {path}… ({index}/{len(plan)})")
        try:
            code = _read_code(source_root, path, path in scanned)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            log.error("File upload failed: %s: %s", path, e)
            result.failed.append(path)
            continue
        try:
            accepted = api.upload_script(path, code)
        except UploaderError as e:
            log.error("Upload %s aborted the run: %s", path, e)
            return fail(_error_kind(e), f"Upload {path}: {e}")
        if accepted:
            log.info("Uploaded file: %s", path)
            result.uploaded.append(path)
        else:
            log.error("File upload failed: %s (server did not answer ok)", path)
            result.failed.append(path)

    if result.failed:
        log.warning("%d of %d files were not uploaded: %s", len(result.failed), len(plan), result.failed[:5])

    # --- Finish: server compiles ---
    enter(UploadState.FINISHING)
    status("Compiling…")
    try:
        outcome = api.finish_upload()
    except UploaderError as e:
        log.error("Finish upload failed: %s", e)
        return fail(_error_kind(e), str(e))
    result.outcome = outcome

    if outcome.succeeded:
        result.message = outcome.message or "Compilation succeeded"
        log.info("Upload completed (uploaded %d, failed %d); compilation succeeded", len(result.uploaded), len(result.failed))
    else:
        result.message = outcome.message or "Compilation failed"
        log.error("Server compile error:\n%s", outcome.message)
    enter(UploadState.DONE)
    return result


class Uploader:
    """
    Wraps upload_run with a fixed API client and backend folder.
    """

    def __init__(
        self,
        api: UnisaveAPI,
        source_root: Path,
        extension: str = ".cs",
        on_status: Optional[Callable[[str], None]] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_state: Optional[StateCallback] = None,
    ) -> None:
        self._api = api
        self._source_root = Path(source_root)
        self._extension = extension
        self._on_status = on_status
        self._on_progress = on_progress
        self._on_state = on_state

    @classmethod
    def from_preferences(cls, prefs: UploaderPreferences, **callbacks) -> "Uploader":
        """Build an uploader talking to prefs.server_url with prefs' tokens."""
        api = UnisaveAPI(
            server_url=prefs.server_url,
            game_token=prefs.game_token,
            editor_key=prefs.editor_key,
        )
        return cls(api, prefs.source_root, prefs.source_extension, **callbacks)

    @property
    def source_root(self) -> Path:
        return self._source_root

    def run(self) -> UploadResult:
        """Run one upload cycle."""
        return upload_run(
            self._api,
            self._source_root,
            self._extension,
            on_status=self._on_status,
            on_progress=self._on_progress,
            on_state=self._on_state,
        )
