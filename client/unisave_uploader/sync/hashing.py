"""Content hashes for change detection: MD5 per file, base64 rendered, plus a global hash.

Hashes are computed over raw bytes so they match what the server computes over the
code it receives. MD5 is used for change detection only, not for integrity.
"""

import base64
import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

from unisave_uploader.sync.scanner import PathLike, scan_tree, scanned_path

log = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


def _render(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")


def file_digest(path: PathLike) -> str:
    """MD5 of the file's bytes, base64 encoded. Raises OSError if the file cannot be read."""
    md5 = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(READ_CHUNK_SIZE), b""):
            md5.update(chunk)
    return _render(md5.digest())


def combined_digest(digests: Iterable[str]) -> str:
    """MD5 over the concatenation of the given base64 digests, in the given order."""
    concatenation = "".join(digests)
    return _render(hashlib.md5(concatenation.encode("utf-8")).digest())


def compute_hashes(root: PathLike, files: List[str]) -> Dict[str, str]:
    """Hash every file; keys keep the order of files. Any OSError aborts."""
    hashes: Dict[str, str] = {}
    for path in files:
        hashes[path] = file_digest(scanned_path(root, path))
    return hashes


def global_digest(files: List[str], hashes: Dict[str, str]) -> str:
    """Global hash over per-file hashes in scan order."""
    return combined_digest(hashes[f] for f in files)


@dataclass
class TreeManifest:
    """Scan order, per-file hashes and global hash of one backend folder."""

    files: List[str] = field(default_factory=list)
    hashes: Dict[str, str] = field(default_factory=dict)
    global_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Request fragment of the start upload call."""
        return {
            "files": list(self.files),
            "hashes": dict(self.hashes),
            "globalHash": self.global_hash,
        }


def build_manifest(root: PathLike, extension: str = ".cs") -> TreeManifest:
    """Scan root and hash what was found. FileNotFoundError / OSError propagate."""
    files = scan_tree(root, extension)
    hashes = compute_hashes(root, files)
    manifest = TreeManifest(files=files, hashes=hashes, global_hash=global_digest(files, hashes))
    log.debug("Manifest for %s: %d files, global hash %s", Path(root), len(files), manifest.global_hash)
    return manifest
