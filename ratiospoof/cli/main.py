"""Command line entry point for ratiospoof."""

from __future__ import annotations

import asyncio
import random
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ratiospoof.cli.display import StatusDisplay
from ratiospoof.config import get_config, init_config
from ratiospoof.core.torrent import TorrentParser
from ratiospoof.emulation import PROFILES, Emulation, available_clients, get_profile
from ratiospoof.exceptions import ConfigurationError, TrackerError
from ratiospoof.input import InputArgs, InputParsed, parse_input
from ratiospoof.logging_config import get_logger
from ratiospoof.models import Config, TorrentInfo
from ratiospoof.session import AnnounceSession, SessionRunner
from ratiospoof.tracker import HttpTracker

logger = get_logger(__name__)

_REQUIRED_OPTIONS = {
    "torrent": "-t/--torrent",
    "download": "-d/--download",
    "download_speed": "-ds/--download-speed",
    "upload": "-u/--upload",
    "upload_speed": "-us/--upload-speed",
}


def _print_clients(console: Console) -> None:
    table = Table(title="Supported clients")
    table.add_column("Code", style="cyan")
    table.add_column("Client")
    table.add_column("Peer id prefix", style="dim")
    for code in available_clients():
        profile = PROFILES[code]
        table.add_row(code, profile.name, profile.peer_id_prefix)
    console.print(table)


async def run_session(
    torrent: TorrentInfo,
    settings: InputParsed,
    config: Config | None = None,
    *,
    console: Console,
    show_display: bool = True,
) -> None:
    """Run one announce session until interrupted.

    One random source, seeded here, drives the peer id, the key and the
    traffic jitter.

    Raises:
        TrackerError: If the tracker could not be reached

    """
    config = config or get_config()
    rng = random.Random()
    emulation = Emulation.from_code(settings.client, rng)
    async with HttpTracker.from_torrent(torrent, config.tracker) as tracker:
        session = AnnounceSession(
            torrent,
            tracker,
            emulation,
            settings,
            rng=rng,
            numwant=config.session.numwant,
            history_size=config.session.history_size,
        )
        display = None
        if show_display:
            display = StatusDisplay(
                session,
                console=console,
                refresh_interval=config.display.refresh_interval,
                debug=settings.debug,
            )
        runner = SessionRunner(session, display, console=console)
        await runner.run()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-t", "--torrent", type=click.Path(exists=True, dir_okay=False), help="Path to the .torrent file")
@click.option("-d", "--download", help="Initial downloaded amount, e.g. 0%, 25%, 1.5gb")
@click.option("-ds", "--download-speed", help="Simulated download speed, e.g. 0kbps, 300kbps")
@click.option("-u", "--upload", help="Initial uploaded amount, e.g. 0%, 0b, 2gb")
@click.option("-us", "--upload-speed", help="Simulated upload speed, e.g. 150kbps, 1mbps")
@click.option("-c", "--client", help="Client to emulate (see --list-clients)")
@click.option("-p", "--port", type=int, help="Port reported to the tracker")
@click.option("--debug", is_flag=True, help="Debug logging and request/response view")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path",
)
@click.option("--no-display", is_flag=True, help="Disable the live status display")
@click.option("--list-clients", is_flag=True, help="List supported clients and exit")
def main(
    torrent: str | None,
    download: str | None,
    download_speed: str | None,
    upload: str | None,
    upload_speed: str | None,
    client: str | None,
    port: int | None,
    debug: bool,
    config_file: str | None,
    no_display: bool,
    list_clients: bool,
) -> None:
    """Report simulated BitTorrent traffic to a torrent's HTTP tracker."""
    console = Console()

    if list_clients:
        _print_clients(console)
        return

    given = {
        "torrent": torrent,
        "download": download,
        "download_speed": download_speed,
        "upload": upload,
        "upload_speed": upload_speed,
    }
    missing = [flag for name, flag in _REQUIRED_OPTIONS.items() if not given[name]]
    if missing:
        msg = f"Missing required option(s): {', '.join(missing)}"
        raise click.UsageError(msg)

    try:
        manager = init_config(config_file)
        config = manager.apply_overrides(
            {
                "observability.log_level": "DEBUG" if debug else None,
                "display.enabled": False if no_display else None,
            }
        )
        torrent_info = TorrentParser().parse(Path(str(torrent)))
        args = InputArgs(
            torrent_path=str(torrent),
            initial_downloaded=str(download),
            download_speed=str(download_speed),
            initial_uploaded=str(upload),
            upload_speed=str(upload_speed),
            client=client or config.session.default_client,
            port=port if port is not None else config.session.default_port,
            debug=debug,
        )
        settings = parse_input(args, torrent_info)
        # Fail on an unknown client before any network activity
        get_profile(settings.client)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    logger.debug(
        "Loaded torrent %s (%s), %d bytes in %d byte pieces, %d of %d tracker(s) over HTTP",
        torrent_info.name,
        torrent_info.info_hash_hex,
        torrent_info.total_size,
        torrent_info.piece_size,
        len(torrent_info.http_trackers),
        len(torrent_info.trackers),
    )

    try:
        asyncio.run(
            run_session(
                torrent_info,
                settings,
                config,
                console=console,
                show_display=config.display.enabled,
            )
        )
    except TrackerError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
