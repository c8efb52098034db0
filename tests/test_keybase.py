"""Tests for the login and notification wrappers."""

from __future__ import annotations

import sys

import pytest

from kbchatbox.config.schema import KeybaseConfig, NotificationConfig
from kbchatbox.keybase.auth import login
from kbchatbox.keybase.notify import send_desktop_notification


class TestLogin:
    def test_success(self) -> None:
        config = KeybaseConfig(binary=sys.executable, login_args=["-c", "pass"])
        assert login(config) == (True, "")

    def test_failure(self) -> None:
        config = KeybaseConfig(binary=sys.executable, login_args=["-c", "raise SystemExit(2)"])
        assert login(config) == (False, "Login failed")

    def test_spawn_failure(self) -> None:
        config = KeybaseConfig(binary="/nonexistent/keybase")
        assert login(config) == (False, "Spawning keybase process failed")

    def test_command(self) -> None:
        assert KeybaseConfig().login_command == ["keybase", "login"]


class TestNotification:
    def test_disabled(self) -> None:
        assert send_desktop_notification("hi", NotificationConfig(enabled=False)) is False

    def test_missing_command_is_not_raised(self) -> None:
        config = NotificationConfig(command="/nonexistent/notify-send")
        assert send_desktop_notification("hi", config) is False

    @pytest.mark.skipif(
        sys.platform == "win32" or " " in sys.executable or len(sys.executable) > 120,
        reason="needs a shebang-able interpreter path",
    )
    def test_invocation(self, tmp_path) -> None:
        out = tmp_path / "args.txt"
        # stand-in for notify-send recording its arguments
        wrapper = tmp_path / "notify-send"
        wrapper.write_text(
            f"#!{sys.executable}\n"
            "import sys\n"
            f"open({str(out)!r}, 'w').write(' '.join(sys.argv[1:]))\n",
            encoding="utf-8",
        )
        wrapper.chmod(0o755)

        config = NotificationConfig(command=str(wrapper))
        assert send_desktop_notification("Keybase: New message from alice", config) is True
        assert out.read_text(encoding="utf-8") == "Keybase: New message from alice -i mail-read"
