"""Deterministic traversal of the backend source folder.

The order of the returned paths is part of the protocol: the global hash is computed
over per-file hashes in this order, so any reordering makes it differ from the last run.
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import List, Union

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def scan_tree(root: PathLike, extension: str = ".cs") -> List[str]:
    """
    Return source files under root as '/'-separated paths relative to root.

    Depth-first: in every directory the subdirectories come first (sorted by name, each
    fully walked before the next), then the directory's own files (sorted by name).
    Only files whose suffix equals extension are returned.

    Raises:
        FileNotFoundError: root does not exist or is not a directory.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise FileNotFoundError(f"Backend folder not found: {root_path}")
    files: List[str] = []
    _walk(root_path, PurePosixPath(), extension, files)
    log.debug("Scanned %s: %d %s files", root_path, len(files), extension)
    return files


def _walk(directory: Path, relative: PurePosixPath, extension: str, out: List[str]) -> None:
    dirs: List[str] = []
    names: List[str] = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.is_dir():
                dirs.append(entry.name)
            elif entry.is_file():
                names.append(entry.name)

    for name in sorted(dirs):
        _walk(directory / name, relative / name, extension, out)

    for name in sorted(names):
        if os.path.splitext(name)[1] == extension:
            out.append(str(relative / name))


def resolve_in_root(root: PathLike, relative_path: str) -> Path:
    """
    Map a '/'-separated path sent by the server to a file under root.

    Raises:
        ValueError: the path is absolute or points outside root.
    """
    parts = PurePosixPath(relative_path.replace("\\", "/"))
    if parts.is_absolute() or not parts.parts or ".." in parts.parts or ":" in parts.parts[0]:
        raise ValueError(f"Path outside backend folder: {relative_path!r}")
    return Path(root).joinpath(*parts.parts)


def scanned_path(root: PathLike, relative_path: str) -> Path:
    """Map a path returned by scan_tree back to its file. Names are taken as-is."""
    return Path(root).joinpath(*relative_path.split("/"))
