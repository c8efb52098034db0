"""kbchatbox - typed, thread-safe bridge to the Keybase chat JSON API."""

__version__ = "0.1.0"
