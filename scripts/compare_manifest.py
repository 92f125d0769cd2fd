#!/usr/bin/env python3
"""Show which backend files the server would request, without uploading anything.
Sends only the start request (hashes), never file contents or finish.
Run from the Unity project root: python scripts/compare_manifest.py
Optional: COMPARE_BACKEND_FOLDER=path/to/folder to override the backend folder."""

import os
import sys

# Run from repo root so unisave_uploader can be found
repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(repo_root, "client"))

from pathlib import Path

from unisave_uploader.api.client import UnisaveAPI
from unisave_uploader.api.errors import UploaderError
from unisave_uploader.config import load_preferences
from unisave_uploader.sync.hashing import build_manifest


def main() -> None:
    prefs = load_preferences({"backend_folder": os.environ.get("COMPARE_BACKEND_FOLDER")})
    root = Path(prefs.source_root)
    print(f"Backend folder: {root.resolve()}")
    try:
        manifest = build_manifest(root, prefs.source_extension)
    except OSError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print(f"Local files ({prefs.source_extension}): {len(manifest.files)}")
    print(f"Global hash: {manifest.global_hash}")

    if prefs.missing_tokens():
        print("Error: game token or editor key not set. Run 'unisave-uploader configure' first.")
        sys.exit(1)

    api = UnisaveAPI(prefs.server_url, prefs.game_token, prefs.editor_key)
    print(f"Asking {api.base_url} which files changed...")
    try:
        requested = api.start_upload(manifest.files, manifest.hashes, manifest.global_hash)
    except UploaderError as e:
        print(f"Error: {e}")
        if e.body:
            print(f"Server sent:\n{e.body}")
        sys.exit(1)

    unknown = sorted(set(requested) - set(manifest.files))
    print()
    print(f"Requested by server: {len(requested)}")
    print(f"Unchanged:           {len(manifest.files) - len(set(requested) & set(manifest.files))}")
    for p in requested[:50]:
        print(f"  {manifest.hashes.get(p, '?'):24}  {p}")
    if len(requested) > 50:
        print(f"  ... and {len(requested) - 50} more")
    if unknown:
        print()
        print(f"Requested but not found locally ({len(unknown)}):")
        for p in unknown[:50]:
            print(f"  {p}")


if __name__ == "__main__":
    main()
