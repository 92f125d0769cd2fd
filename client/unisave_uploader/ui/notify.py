"""Desktop notifications for finished uploads.

Uses platform-native tools: notify-send (Linux), osascript (macOS).
No extra dependencies; fails silently if the tool is unavailable.
"""

import logging
import subprocess
import sys

from unisave_uploader.sync.engine import UploadResult

log = logging.getLogger(__name__)

# Popup display time in ms
_NOTIFY_EXPIRE_MS = 10_000
_MAX_BODY = 200


def _escape_applescript(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def notify(title: str, message: str, urgent: bool = False) -> None:
    """
    Show a desktop notification.

    Args:
        title: Short title (e.g. "Unisave – Compile error").
        message: Body; truncated for display.
        urgent: Play an alert sound where the platform supports it.
    """
    body = (message or "")[:_MAX_BODY]
    if len(message or "") > _MAX_BODY:
        body += "…"

    try:
        if sys.platform == "linux":
            subprocess.run(
                [
                    "notify-send",
                    "-u", "normal",
                    "-t", str(_NOTIFY_EXPIRE_MS),
                    "-a", "Unisave Uploader",
                    title,
                    body,
                ],
                check=False,
                timeout=5,
                capture_output=True,
            )
        elif sys.platform == "darwin":
            script = f'display notification "{_escape_applescript(body)}" with title "{_escape_applescript(title)}"'
            if urgent:
                script += ' sound name "Basso"'
            subprocess.run(
                ["osascript", "-e", script],
                check=False,
                timeout=5,
                capture_output=True,
            )
        else:
            log.debug("Desktop notifications not implemented for %s", sys.platform)
    except (OSError, subprocess.SubprocessError) as e:
        log.debug("Desktop notification failed: %s", e)


def notify_result(result: UploadResult) -> None:
    """Notify about a failed run or a failed compilation. Successful runs stay quiet."""
    if result.ok:
        return
    if result.outcome is not None:
        notify("Unisave – Compile error", result.message, urgent=True)
    else:
        notify("Unisave – Upload failed", result.message or "Unknown error", urgent=True)
