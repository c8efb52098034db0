"""CLI commands for kbchatbox."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from kbchatbox import __version__
from kbchatbox.bridge import Bridge
from kbchatbox.bus.events import ChannelList, ChatMessage, ChatMessageBatch, InboundReply
from kbchatbox.cli.render import channel_table, chat_line
from kbchatbox.config.loader import get_config_path, load_config, save_config
from kbchatbox.config.schema import Config
from kbchatbox.errors import TransportError
from kbchatbox.keybase.auth import login as keybase_login
from kbchatbox.logging_utils import configure_logging

app = typer.Typer(
    name="kbchatbox",
    help="kbchatbox - Keybase chat in the terminal",
    no_args_is_help=True,
)

console = Console()
EXIT_COMMANDS = {"exit", "quit", "/exit", "/quit", ":q"}
POLL_INTERVAL = 0.1

ReplyT = TypeVar("ReplyT", ChatMessage, ChatMessageBatch, ChannelList)

ConfigOption = typer.Option(
    None,
    "--config",
    "-c",
    help="Custom config path (default: ~/.kbchatbox/config.json).",
)


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        console.print(f"kbchatbox v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """kbchatbox CLI entry point."""


def _load(config_path: Path | None) -> Config:
    config = load_config(config_path)
    configure_logging(config.logging.level)
    return config


def _wait_for(bridge: Bridge, reply_type: type[ReplyT], timeout: float) -> ReplyT | None:
    """Drain the inbound queue until a reply of `reply_type` shows up."""
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        reply = bridge.get(timeout=min(remaining, 0.5))
        if isinstance(reply, reply_type):
            return reply


@app.command()
def onboard(
    config_path: Path | None = ConfigOption,
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        help="Overwrite existing config with defaults.",
    ),
) -> None:
    """Initialize kbchatbox configuration file."""
    path = config_path or get_config_path()

    if path.exists() and not overwrite:
        config = load_config(path)
        save_config(config, path)
        console.print(f"[green]Config refreshed:[/green] {path}")
        console.print("Existing values are preserved; missing fields are added.")
        return

    save_config(Config(), path)
    if overwrite:
        console.print(f"[green]Config reset:[/green] {path}")
    else:
        console.print(f"[green]Config created:[/green] {path}")

    console.print("\nNext steps:")
    console.print("- Log in: `kbchatbox login`")
    console.print("- List conversations: `kbchatbox channels`")
    console.print("- Start chatting: `kbchatbox chat`")


@app.command()
def login(config_path: Path | None = ConfigOption) -> None:
    """Log in to keybase (runs `keybase login`)."""
    config = _load(config_path)
    ok, reason = keybase_login(config.keybase)
    if not ok:
        console.print(f"[red]Error:[/red] {reason}")
        raise typer.Exit(code=1)
    console.print("[green]Logged in.[/green]")


@app.command()
def channels(config_path: Path | None = ConfigOption) -> None:
    """List your conversations."""
    config = _load(config_path)
    try:
        with Bridge.open(config) as bridge:
            bridge.send(Bridge.list_channels_request())
            reply = _wait_for(bridge, ChannelList, config.ui.reply_timeout)
    except TransportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if reply is None:
        console.print("[red]Error:[/red] no channel list received")
        raise typer.Exit(code=1)
    console.print(channel_table(reply))


@app.command()
def read(
    conversation_id: str = typer.Argument(..., help="Conversation id."),
    num: int | None = typer.Option(
        None,
        "--num",
        "-n",
        min=1,
        help="Number of messages (default: ui.history_size).",
    ),
    config_path: Path | None = ConfigOption,
) -> None:
    """Print the latest messages of a conversation, oldest first."""
    config = _load(config_path)
    try:
        with Bridge.open(config) as bridge:
            bridge.send(Bridge.read_conversation_request(conversation_id, num or config.ui.history_size))
            reply = _wait_for(bridge, ChatMessageBatch, config.ui.reply_timeout)
    except TransportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if reply is None:
        console.print("[red]Error:[/red] no messages received")
        raise typer.Exit(code=1)
    for msg in reply.for_display():
        console.print(chat_line(msg, config.ui.timestamp_format))


@app.command()
def send(
    conversation_id: str = typer.Argument(..., help="Conversation id."),
    text: str = typer.Argument(..., help="Message body."),
    config_path: Path | None = ConfigOption,
) -> None:
    """Send a message to a conversation."""
    body = text.strip()
    if not body:
        console.print("[red]Error:[/red] empty message")
        raise typer.Exit(code=1)

    config = _load(config_path)
    try:
        with Bridge.open(config) as bridge:
            bridge.send(Bridge.send_message_request(conversation_id, body))
            delivered = bridge.flush(config.ui.reply_timeout)
            if bridge.api.error is not None:
                raise bridge.api.error
    except TransportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if not delivered:
        console.print("[red]Error:[/red] keybase did not answer in time")
        raise typer.Exit(code=1)
    console.print("[green]Sent.[/green]")


@app.command()
def listen(config_path: Path | None = ConfigOption) -> None:
    """Print incoming messages until interrupted."""
    config = _load(config_path)
    bridge = Bridge.open(config)
    console.print("[green]Listening.[/green] Press Ctrl-C to stop.")
    try:
        while True:
            reply = bridge.poll()
            if reply is None:
                time.sleep(POLL_INTERVAL)
                continue
            if isinstance(reply, ChatMessage):
                console.print(chat_line(reply, config.ui.timestamp_format))
    except KeyboardInterrupt:
        console.print("\n[dim]Bye.[/dim]")
    except TransportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e
    finally:
        bridge.close()


class ChatSession:
    """State of the interactive session: open conversation and known channels."""

    def __init__(self, bridge: Bridge, config: Config) -> None:
        self.bridge = bridge
        self.config = config
        self.conversation_id: str | None = None
        self.channels = ChannelList()

    def handle_reply(self, reply: InboundReply) -> None:
        fmt = self.config.ui.timestamp_format
        if isinstance(reply, ChatMessage):
            # Only the open conversation is shown.
            if reply.conversation_id == self.conversation_id:
                console.print(chat_line(reply, fmt))
        elif isinstance(reply, ChatMessageBatch):
            for msg in reply.for_display():
                console.print(chat_line(msg, fmt))
        elif isinstance(reply, ChannelList):
            self.channels = reply
            console.print(channel_table(reply))

    def open_conversation(self, key: str) -> bool:
        chan = self.channels.find(key)
        conversation_id = chan.id if chan else key
        if not conversation_id:
            return False
        self.conversation_id = conversation_id
        console.print(f"[dim]Opened {chan.name if chan else conversation_id}[/dim]")
        self.bridge.send(
            Bridge.read_conversation_request(conversation_id, self.config.ui.history_size)
        )
        return True

    def handle_input(self, line: str) -> None:
        if line == "/list":
            self.bridge.send(Bridge.list_channels_request())
        elif line == "/open" or line.startswith("/open "):
            if not self.open_conversation(line[len("/open"):].strip()):
                console.print("[yellow]Usage:[/yellow] /open NAME|ID")
        elif self.conversation_id is None:
            console.print("[yellow]No conversation open.[/yellow] Use /open NAME|ID")
        else:
            self.bridge.send(Bridge.send_message_request(self.conversation_id, line))


async def _pump_replies(session: ChatSession) -> None:
    while True:
        reply = session.bridge.poll()
        if reply is None:
            await asyncio.sleep(POLL_INTERVAL)
            continue
        session.handle_reply(reply)


async def _read_interactive_input(prompt_session: PromptSession) -> str:
    with patch_stdout():
        return await prompt_session.prompt_async(HTML("<b fg='ansiblue'>You:</b> "))


async def _run_chat(session: ChatSession) -> int:
    session.bridge.send(Bridge.list_channels_request())
    pump = asyncio.create_task(_pump_replies(session))
    prompt_session = PromptSession(history=InMemoryHistory(), multiline=False)
    console.print("[green]Interactive mode started.[/green] /open NAME|ID, /list, /quit")
    try:
        while True:
            read_task = asyncio.create_task(_read_interactive_input(prompt_session))
            done, _ = await asyncio.wait({read_task, pump}, return_when=asyncio.FIRST_COMPLETED)
            if pump in done:
                read_task.cancel()
                pump.result()  # re-raises the TransportError
            try:
                user_input = read_task.result().strip()
            except (EOFError, KeyboardInterrupt):
                console.print("\n[dim]Bye.[/dim]")
                return 0

            if not user_input:
                continue
            if user_input.lower() in EXIT_COMMANDS:
                console.print("[dim]Bye.[/dim]")
                return 0
            session.handle_input(user_input)
    finally:
        pump.cancel()


@app.command()
def chat(config_path: Path | None = ConfigOption) -> None:
    """Start an interactive chat session."""
    config = _load(config_path)
    bridge = Bridge.open(config)
    try:
        exit_code = asyncio.run(_run_chat(ChatSession(bridge, config)))
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        raise typer.Exit(code=130) from None
    except TransportError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e
    finally:
        bridge.close()

    if exit_code != 0:
        raise typer.Exit(code=exit_code)
