"""Scanning, hashing and the upload protocol."""

from unisave_uploader.sync.engine import ErrorKind, UploadResult, UploadState, Uploader, upload_run

__all__ = ["ErrorKind", "UploadResult", "UploadState", "Uploader", "upload_run"]
