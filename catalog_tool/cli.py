"""
Command-line interface for the CD catalog.

Runs the API server, previews archives, and drives the admin upload flow
using Click framework.
"""

import logging
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from shared.config import ServerConfig
from shared.constants import DEFAULT_SERVER_URL
from shared.errors import CatalogError, Unauthorized
from shared.identity import HostedIdentityService
from admin_client.preview import ArchivePreview
from admin_client.session import CatalogClient, ClientSession

console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def parse_move(value: str) -> Tuple[int, int]:
    """Parse a FROM:TO move (1-based, as shown in the preview table)."""
    try:
        src, dst = value.split(":", 1)
        return int(src) - 1, int(dst) - 1
    except ValueError:
        raise click.BadParameter(f"expected FROM:TO, got {value!r}")


def _apply_moves(preview: ArchivePreview, moves: Tuple[str, ...]) -> None:
    for move in moves:
        src, dst = parse_move(move)
        preview.move_song(src, dst)


def _format_size(size: int) -> str:
    return f"{size / (1024 * 1024):.1f} MB"


def _print_preview(preview: ArchivePreview) -> None:
    table = Table(title="Tracks")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Title")
    table.add_column("Archive path", style="dim")
    table.add_column("Size", justify="right")
    for track in preview.tracks:
        table.add_row(str(track.order + 1), track.title, track.source_path, _format_size(track.file_size))
    console.print(table)

    cover = preview.cover_path.name if preview.cover_path else "[yellow]none[/yellow]"
    console.print(f"Cover: {cover}")
    console.print(f"Total: {len(preview.tracks)} track(s), {_format_size(preview.total_size)}")
    for warning in preview.warnings:
        console.print(f"[yellow]Warning: {warning}[/yellow]")


def _fail(error: CatalogError) -> None:
    console.print(f"[red]Error: {error.message}[/red]")
    if error.suggestion:
        console.print(f"[dim]{error.suggestion}[/dim]")
    raise SystemExit(1)


def _client(server: Optional[str]) -> CatalogClient:
    session = ClientSession.load()
    if server:
        session = ClientSession(base_url=server, tokens=session.tokens, timeout=session.timeout)
    return CatalogClient(session)


@click.group()
@click.version_option(version="1.0.0")
@click.option('--log-level', default=None, help='Logging level (defaults to CATALOG_LOG_LEVEL)')
def cli(log_level):
    """
    💿 CD Catalog

    Serve the catalog API and manage CDs from ZIP archives.
    """
    if not log_level:
        try:
            log_level = ServerConfig.from_env().log_level
        except CatalogError:
            log_level = "INFO"
    setup_logging(log_level)


@cli.command()
@click.option('--port', default=None, type=int, help='Port to listen on (defaults to CATALOG_PORT)')
@click.option('--debug/--no-debug', default=False, help='Run in debug mode')
def serve(port, debug):
    """
    Run the catalog API server.
    """
    from shared.api import start_api

    try:
        config = ServerConfig.from_env()
    except CatalogError as e:
        _fail(e)
    if port:
        config.port = port

    console.print(f"[green]Starting catalog API at http://{config.host}:{config.port}[/green]")
    console.print("[yellow]Press Ctrl+C to stop[/yellow]")
    try:
        start_api(config, debug=debug)
    except CatalogError as e:
        _fail(e)


@cli.command()
@click.argument('zip_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--move', 'moves', multiple=True, metavar='FROM:TO',
              help='Move a track (1-based positions); repeatable')
def preview(zip_path, moves):
    """
    Show the tracks and cover a ZIP archive would produce.
    """
    try:
        with ArchivePreview() as archive_preview:
            archive_preview.load(zip_path)
            _apply_moves(archive_preview, moves)
            _print_preview(archive_preview)
    except CatalogError as e:
        _fail(e)


@cli.command()
@click.option('--email', prompt=True, help='Admin account email')
@click.option('--password', prompt=True, hide_input=True, help='Admin account password')
@click.option('--server', default=DEFAULT_SERVER_URL, show_default=True, help='Catalog API URL')
def login(email, password, server):
    """
    Sign in with the hosted identity service and save the session.
    """
    config = ServerConfig.from_env()
    if not config.auth_url:
        console.print("[red]Error: CATALOG_AUTH_URL is not configured.[/red]")
        raise SystemExit(1)

    identity = HostedIdentityService(config.auth_url, config.auth_anon_key, config.network_timeout)
    try:
        tokens = identity.sign_in(email, password)
    except CatalogError as e:
        _fail(e)

    path = ClientSession(base_url=server, tokens=tokens, timeout=config.network_timeout).save()
    console.print(f"[green]✅ Signed in as {email}[/green]")
    console.print(f"[dim]Session saved to {path}[/dim]")


@cli.command()
@click.argument('zip_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--title', required=True, help='CD title')
@click.option('--artist', required=True, help='CD artist')
@click.option('--genre', required=True, help='CD genre')
@click.option('--move', 'moves', multiple=True, metavar='FROM:TO',
              help='Reorder tracks before upload (1-based positions); repeatable')
@click.option('--server', default=None, help='Catalog API URL (defaults to the saved session)')
def upload(zip_path, title, artist, genre, moves, server):
    """
    Upload a ZIP archive as a new CD.
    """
    client = _client(server)

    track_order: Optional[List[str]] = None
    try:
        if moves:
            with ArchivePreview() as archive_preview:
                archive_preview.load(zip_path)
                _apply_moves(archive_preview, moves)
                track_order = archive_preview.track_order()

        with console.status("Uploading archive..."):
            try:
                result = client.upload_cd_zip(zip_path, title, artist, genre, track_order)
            except Unauthorized:
                client.refresh().save()
                result = client.upload_cd_zip(zip_path, title, artist, genre, track_order)
    except CatalogError as e:
        _fail(e)

    cd = result["cd"]
    console.print(Panel.fit(
        f"[bold green]✅ CD created[/bold green]\n\n"
        f"{cd['title']} - {cd['artist']}\n"
        f"ID: {cd['id']}\n"
        f"Songs: {len(cd['songs'])}",
        border_style="green"
    ))
    for warning in result.get("warnings") or []:
        console.print(f"[yellow]Warning: {warning}[/yellow]")


@cli.command(name='list')
@click.option('--server', default=None, help='Catalog API URL (defaults to the saved session)')
def list_command(server):
    """
    List the CDs in the catalog.
    """
    try:
        cds = _client(server).list_cds()
    except CatalogError as e:
        _fail(e)

    table = Table(title=f"CDs ({len(cds)})")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Artist")
    table.add_column("Genre")
    table.add_column("Songs", justify="right")
    table.add_column("Plays", justify="right")
    for cd in cds:
        table.add_row(cd["id"], cd["title"], cd["artist"], cd["genre"],
                      str(len(cd.get("songs") or [])), str(cd.get("playCount", 0)))
    console.print(table)


if __name__ == '__main__':
    cli()
