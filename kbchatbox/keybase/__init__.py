"""Thin wrappers around the external programs the bridge shells out to."""

from kbchatbox.keybase.auth import login
from kbchatbox.keybase.notify import send_desktop_notification

__all__ = ["login", "send_desktop_notification"]
