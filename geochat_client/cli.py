"""Console front-end for the GeoChat client."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any, Optional

import aioconsole
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config import GeoChatConfig, config_from_mapping, load_config
from .connection import GeoChatConnection
from .errors import ConfigError
from .session import GeoChatSession, SessionState

app = typer.Typer(help="GeoChat location-aware chat client")
console = Console()


class ConsoleUiAdapter:
    """Render chat lines and notices on a rich console."""

    def __init__(self, output: Console) -> None:
        self._console = output

    def append_line(self, text: str) -> None:
        self._console.print(escape(text))

    def clear_input(self) -> None:
        # The terminal line was consumed by the read; nothing to clear.
        pass

    def show_status(self, text: str) -> None:
        self._console.print(f"[bold yellow]* {escape(text)}[/]")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.callback()
def main_callback() -> None:
    """GeoChat location-aware chat client."""


@app.command()
def run(
    url: Optional[str] = typer.Option(None, help="WebSocket URL of the chat server"),
    config: Optional[Path] = typer.Option(None, help="YAML configuration file"),
    lat: Optional[float] = typer.Option(None, help="Fixed latitude to report"),
    lon: Optional[float] = typer.Option(None, help="Fixed longitude to report"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING, ERROR"),
) -> None:
    """Connect, report the position once, and chat from stdin."""
    overrides: dict[str, Any] = {
        "url": url,
        "latitude": lat,
        "longitude": lon,
        "log_level": log_level,
    }
    try:
        if config is not None:
            settings = load_config(config, **overrides)
        else:
            settings = config_from_mapping(
                {k: v for k, v in overrides.items() if v is not None}
            )
    except ConfigError as err:
        console.print(f"[red]Configuration error:[/] {escape(str(err))}")
        raise typer.Exit(code=2) from err

    _configure_logging(settings.log_level)
    asyncio.run(_chat(settings))


async def _chat(settings: GeoChatConfig) -> None:
    ui = ConsoleUiAdapter(console)
    connection = GeoChatConnection(
        settings.url,
        ping_interval=settings.ping_interval,
        timeout=settings.connect_timeout,
    )
    session = GeoChatSession(
        connection,
        ui,
        position_provider=settings.position_provider(),
        password=settings.password,
    )

    def _on_state(state: SessionState) -> None:
        if state is SessionState.AUTHENTICATED:
            console.print(f"[bold green]Connected as[/] {session.identifier}")

    session.on_connection_state_changed(_on_state)
    session.start()

    input_task = asyncio.create_task(_read_input(session))
    try:
        await session.wait_closed()
    finally:
        input_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await input_task
        await session.close()


async def _read_input(session: GeoChatSession) -> None:
    """Forward typed lines to the session until EOF."""
    while True:
        try:
            line = await aioconsole.ainput()
        except EOFError:
            await session.close()
            return
        await session.send_chat_message(line.rstrip("\r\n"))


def main() -> None:
    app()
