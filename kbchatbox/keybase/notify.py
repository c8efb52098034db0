"""Desktop notifications via notify-send."""

from __future__ import annotations

import subprocess

from loguru import logger

from kbchatbox.config.schema import NotificationConfig


def send_desktop_notification(message: str, config: NotificationConfig | None = None) -> bool:
    """Show a desktop notification. Failures are logged, never raised."""
    config = config or NotificationConfig()
    if not config.enabled:
        return False

    try:
        result = subprocess.run(
            [config.command, message, "-i", config.icon],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
        ok = result.returncode == 0
    except OSError as e:
        logger.debug("notify-send unavailable: {}", e)
        ok = False

    logger.debug("Notification sent: {}", "success" if ok else "failed")
    return ok
