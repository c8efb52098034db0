"""Run kbchatbox as a module."""

from kbchatbox.cli.commands import app


def main() -> None:
    """Entrypoint for `python -m kbchatbox`."""
    app()


if __name__ == "__main__":
    main()
