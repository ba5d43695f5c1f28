"""Live terminal status display."""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ratiospoof.input import InputParsed
from ratiospoof.logging_config import get_logger
from ratiospoof.models import AnnounceStatus, TorrentInfo
from ratiospoof.session.session import AnnounceSession, SessionStats

logger = get_logger(__name__)


def humanize_bytes(value: float) -> str:
    """Format a byte count with binary units."""
    for unit in ["B", "KiB", "MiB", "GiB", "TiB"]:
        if abs(value) < 1024.0:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.2f} {unit}"
        value /= 1024.0
    return f"{value:.2f} PiB"


def humanize_speed(value: float) -> str:
    """Format a rate in bytes per second."""
    return f"{humanize_bytes(value)}/s"


def format_countdown(seconds: int | None) -> str:
    """Format a countdown as ``MM:SS`` (or ``H:MM:SS``)."""
    if seconds is None:
        return "-"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class StatusDisplay:
    """Redraws the session status once per refresh interval."""

    def __init__(
        self,
        session: AnnounceSession,
        *,
        console: Console | None = None,
        refresh_interval: float = 1.0,
        debug: bool = False,
    ) -> None:
        """Initialize the display.

        Args:
            session: Session whose state is shown
            console: Console to draw on
            refresh_interval: Seconds between redraws
            debug: Also show the last tracker request and response

        """
        self.session = session
        self.console = console or Console()
        self.refresh_interval = refresh_interval
        self.debug = debug

        self._live: Live | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def torrent(self) -> TorrentInfo:
        """Torrent being reported."""
        return self.session.torrent

    @property
    def settings(self) -> InputParsed:
        """Validated input the session runs with."""
        return self.session.settings

    def start(self) -> None:
        """Start rendering; must be called from a running event loop."""
        if self._live is not None:
            return
        self._live = Live(
            self.render(),
            console=self.console,
            auto_refresh=False,
            transient=False,
        )
        self._live.start()
        self._task = asyncio.create_task(self._refresh_loop(), name="status-display")

    async def stop(self) -> None:
        """Stop rendering and leave the last frame on screen."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._live is not None:
            self._refresh()
            self._live.stop()
            self._live = None

    async def _refresh_loop(self) -> None:
        while True:
            self._refresh()
            await asyncio.sleep(self.refresh_interval)

    def _refresh(self) -> None:
        if self._live is None:
            return
        try:
            self._live.update(self.render(), refresh=True)
        except Exception as e:
            logger.debug("Status render failed: %s", e)

    def render(self) -> Group:
        """Build the renderable for the current session state."""
        stats = self.session.stats()
        parts: list[Any] = [self._summary_panel(stats), self._history_table(stats)]
        footer = self._footer(stats)
        if footer is not None:
            parts.append(footer)
        if self.debug:
            parts.append(self._debug_panel())
        return Group(*parts)

    def _summary_panel(self, stats: SessionStats) -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold cyan")
        table.add_column()
        table.add_column(style="bold cyan")
        table.add_column()

        tracker = self.session.tracker
        main_url = getattr(tracker, "main_url", None) or self.torrent.main_tracker or "-"

        table.add_row("Torrent", self.torrent.name, "Size", humanize_bytes(self.torrent.total_size))
        table.add_row("Tracker", main_url, "Piece size", humanize_bytes(self.torrent.piece_size))
        table.add_row(
            "Seeders",
            str(stats.seeders),
            "Leechers",
            str(stats.leechers),
        )
        table.add_row(
            "Download speed",
            humanize_speed(self.settings.download_speed),
            "Upload speed",
            humanize_speed(self.settings.upload_speed),
        )
        table.add_row(
            "Emulation",
            self.session.emulation.name,
            "Port",
            str(self.settings.port),
        )
        return Panel(table, title="ratiospoof", border_style="blue")

    def _history_table(self, stats: SessionStats) -> Table:
        table = Table(title="Announces", expand=True)
        table.add_column("#", justify="right", style="cyan", no_wrap=True)
        table.add_column("Event", style="magenta")
        table.add_column("Downloaded", justify="right", style="green")
        table.add_column("%", justify="right")
        table.add_column("Left", justify="right")
        table.add_column("Uploaded", justify="right", style="yellow")

        for snapshot in stats.history:
            table.add_row(
                str(snapshot.count),
                snapshot.event.value,
                humanize_bytes(snapshot.downloaded),
                f"{snapshot.percent_downloaded:.2f}%",
                humanize_bytes(snapshot.left),
                humanize_bytes(snapshot.uploaded),
            )
        return table

    def _footer(self, stats: SessionStats) -> Text | None:
        if stats.status is AnnounceStatus.STOPPED:
            return None
        text = Text()
        text.append("Next announce in: ", style="bold")
        text.append(format_countdown(stats.seconds_to_next_announce()))
        retry_attempt = getattr(self.session.tracker, "retry_attempt", 0)
        if retry_attempt:
            text.append(f"  Tracker retry attempt: {retry_attempt}", style="red")
        return text

    def _debug_panel(self) -> Panel:
        tracker = self.session.tracker
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column(overflow="fold")
        table.add_row("Last request", getattr(tracker, "last_request", None) or "-")
        response = getattr(tracker, "last_response", None)
        table.add_row("Last response", repr(response) if response else "-")
        return Panel(table, title="debug", border_style="dim")
