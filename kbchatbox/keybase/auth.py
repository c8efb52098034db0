"""One-shot `keybase login`."""

from __future__ import annotations

import subprocess

from loguru import logger

from kbchatbox.config.schema import KeybaseConfig


def login(config: KeybaseConfig | None = None) -> tuple[bool, str]:
    """Run `keybase login` in the foreground.

    Returns:
        (ok, reason) - reason is empty on success.
    """
    config = config or KeybaseConfig()
    try:
        status = subprocess.run(config.login_command, check=False)
    except OSError as e:
        logger.error("Cannot run {}: {}", config.binary, e)
        return False, "Spawning keybase process failed"

    if status.returncode != 0:
        logger.warning("keybase login exited with status {}", status.returncode)
        return False, "Login failed"
    return True, ""
