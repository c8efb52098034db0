"""Command-line interface for kbchatbox."""
