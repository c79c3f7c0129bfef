"""
chunkcord CLI

Command-line interface for storing files in a messaging channel.

Usage:
    chunkcord serve                          # Run the HTTP gateway
    chunkcord upload FILE -t TOKEN -c ID     # Store a file
    chunkcord retrieve HASH -t TOKEN -c ID   # Fetch a file
    chunkcord list                           # List cataloged files
    chunkcord forget HASH                    # Drop a catalog record
    chunkcord config                         # Show effective configuration
"""

import asyncio
import json
import logging
import mimetypes
from pathlib import Path

import aiofiles
import click
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.panel import Panel
from rich.logging import RichHandler

from .config import load_config
from .exceptions import ChunkcordError
from .storage import FileRecord, init_catalog
from .vault import ChannelVault

console = Console()


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def format_size(bytes_count: int) -> str:
    """Format bytes as human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024
    return f"{bytes_count:.1f} PB"


def fail(error: ChunkcordError):
    """Print a vault error and exit non-zero."""
    console.print(f"[red]✗ {error.kind}: {error}[/red]")
    raise click.exceptions.Exit(1)


@click.group()
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='JSON config file')
@click.option('--backend', type=click.Choice(['discord', 'memory']),
              help='Messaging backend (overrides config)')
@click.pass_context
def cli(ctx, verbose, config_path, backend):
    """chunkcord - store files as chunked attachments in a messaging channel."""
    config = load_config(Path(config_path) if config_path else None)
    if backend:
        config.backend = backend
    setup_logging(verbose, config.log_level)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command()
@click.option('--host', default=None, help='Host to bind to')
@click.option('--port', default=None, type=int, help='HTTP port')
@click.option('--no-catalog', is_flag=True, help='Do not record uploads')
@click.pass_context
def serve(ctx, host, port, no_catalog):
    """Run the HTTP gateway."""
    config = ctx.obj['config']
    host = host or config.host
    port = port or config.api_port

    console.print(Panel.fit(
        f"[bold green]chunkcord gateway[/bold green]\n\n"
        f"Backend: [cyan]{config.backend}[/cyan]\n"
        f"Chunk size: [yellow]{format_size(config.chunk_size)}[/yellow]\n"
        f"Catalog: [blue]{'disabled' if no_catalog else config.data_dir}[/blue]",
        title="Server Info"
    ))
    console.print(f"\n[dim]API available at http://localhost:{port}[/dim]")
    console.print(f"[dim]API docs at http://localhost:{port}/docs[/dim]\n")

    from .api import run_api_server

    vault = ChannelVault(config)
    asyncio.run(run_api_server(
        vault,
        catalog_dir=None if no_catalog else config.data_dir,
        host=host,
        port=port,
        cors_origins=config.cors_origins,
    ))


@cli.command()
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--token', '-t', envvar='CHUNKCORD_BOT_TOKEN', required=True,
              help='Bot token')
@click.option('--channel', '-c', envvar='CHUNKCORD_CHANNEL_ID', required=True,
              help='Destination channel id')
@click.option('--no-catalog', is_flag=True, help='Do not record the upload')
@click.pass_context
def upload(ctx, file_path, token, channel, no_catalog):
    """Store a file in a channel."""
    config = ctx.obj['config']
    file_path = Path(file_path)

    async def run():
        vault = ChannelVault(config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Uploading chunks...", total=None)
            stored = await vault.store_file(file_path, token, channel)
            progress.update(task, description="Done!")

        if not no_catalog:
            catalog = await init_catalog(config.data_dir)
            try:
                await catalog.add_file(FileRecord(
                    file_hash=stored.file_hash,
                    file_name=file_path.name,
                    size=stored.size,
                    mime_type=mimetypes.guess_type(file_path.name)[0] or '',
                    channel_id=stored.channel_id,
                    chunk_count=stored.chunk_count,
                ))
            finally:
                await catalog.close()

        console.print(Panel.fit(
            f"[bold green]File Stored Successfully[/bold green]\n\n"
            f"Name: [cyan]{file_path.name}[/cyan]\n"
            f"Size: [yellow]{stored.size:,} bytes[/yellow]\n"
            f"Chunks: [yellow]{stored.chunk_count}[/yellow]\n\n"
            f"[bold]File Hash:[/bold]\n"
            f"[green]{stored.file_hash}[/green]",
            title="Stored File"
        ))

    try:
        asyncio.run(run())
    except ChunkcordError as e:
        fail(e)


@cli.command()
@click.argument('file_hash')
@click.option('--token', '-t', envvar='CHUNKCORD_BOT_TOKEN', required=True,
              help='Bot token')
@click.option('--channel', '-c', envvar='CHUNKCORD_CHANNEL_ID', default=None,
              help='Source channel id (default: from catalog)')
@click.option('--size', type=int, default=None, help='Expected size in bytes')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output path')
@click.pass_context
def retrieve(ctx, file_hash, token, channel, size, output):
    """Fetch a file from a channel by hash."""
    config = ctx.obj['config']

    async def run():
        nonlocal channel, size, output

        if channel is None or output is None or size is None:
            catalog = await init_catalog(config.data_dir)
            try:
                record = await catalog.get_file(file_hash)
            finally:
                await catalog.close()
            if record:
                channel = channel or record.channel_id
                output = output or record.file_name
                size = size if size is not None else record.size

        if channel is None:
            console.print("[red]✗ No channel given and file not in catalog[/red]")
            raise click.exceptions.Exit(1)

        vault = ChannelVault(config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Scanning channel...", total=None)
            data = await vault.retrieve(file_hash, token, channel, expected_size=size)
            progress.update(task, description="Done!")

        output_path = Path(output or file_hash)
        async with aiofiles.open(output_path, 'wb') as f:
            await f.write(data)

        console.print(f"\n[green]✓ Retrieved {format_size(len(data))} to: {output_path}[/green]")

    try:
        asyncio.run(run())
    except ChunkcordError as e:
        fail(e)


@cli.command('list')
@click.pass_context
def list_files(ctx):
    """List cataloged files."""
    config = ctx.obj['config']

    async def run():
        catalog = await init_catalog(config.data_dir)
        try:
            records = await catalog.list_files()
        finally:
            await catalog.close()

        if not records:
            console.print("[yellow]No stored files[/yellow]")
            return

        table = Table(title="Stored Files")
        table.add_column("Name", style="cyan")
        table.add_column("Size", justify="right", style="yellow")
        table.add_column("Chunks", justify="right")
        table.add_column("Channel")
        table.add_column("File Hash", style="green")

        for r in records:
            table.add_row(
                r.file_name,
                format_size(r.size),
                str(r.chunk_count),
                r.channel_id,
                r.file_hash[:16] + "...",
            )

        console.print(table)

    asyncio.run(run())


@cli.command()
@click.argument('file_hash')
@click.pass_context
def forget(ctx, file_hash):
    """Remove a catalog record (chunks stay in the channel)."""
    config = ctx.obj['config']

    async def run():
        catalog = await init_catalog(config.data_dir)
        try:
            return await catalog.remove_file(file_hash)
        finally:
            await catalog.close()

    if asyncio.run(run()):
        console.print(f"[green]✓ Forgot {file_hash[:16]}...[/green]")
    else:
        console.print(f"[yellow]Not in catalog: {file_hash[:16]}...[/yellow]")


@cli.command('config')
@click.pass_context
def show_config(ctx):
    """Show the effective configuration."""
    console.print_json(json.dumps(ctx.obj['config'].to_dict()))


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
