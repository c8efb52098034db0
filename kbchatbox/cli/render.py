"""Terminal rendering of replies."""

from __future__ import annotations

from rich.table import Table
from rich.text import Text

from kbchatbox.bus.events import ChannelList, ChatMessage

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_chat_message(msg: ChatMessage, timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    """`<local time> - <sender>: <text>`"""
    local = msg.timestamp.astimezone()
    return f"{local.strftime(timestamp_format)} - {msg.channel}: {msg.text}"


def chat_line(msg: ChatMessage, timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT) -> Text:
    """Same as format_chat_message, safe to print through rich (no markup parsing)."""
    return Text(format_chat_message(msg, timestamp_format))


def channel_table(channel_list: ChannelList) -> Table:
    table = Table(title="Conversations")
    table.add_column("", width=1)
    table.add_column("Name", style="bold")
    table.add_column("ID", style="dim")
    for chan in channel_list.channels:
        table.add_row("[yellow]*[/yellow]" if chan.has_unread else "", Text(chan.name), Text(chan.id))
    return table
