"""Main entry point for the s3cache CLI.

Provides a Typer-based CLI for inspecting and managing cache entries stored
in an S3 bucket. This is the bootstrap layer: it reads the config file and
the environment, and hands an explicit CacheConfig to the cache.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from s3_httpcache import __version__
from s3_httpcache.cache import S3Cache
from s3_httpcache.config import CacheConfig, get_config_path
from s3_httpcache.location import infer_region
from s3_httpcache.logging_config import setup_logging
from s3_httpcache.storage import StorageError

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="s3cache",
    help="Inspect and manage HTTP cache entries stored in S3",
    rich_markup_mode="rich",
)


@dataclass
class CliState:
    """Options shared by all commands."""

    bucket_url: Optional[str] = None
    config_path: Optional[Path] = None


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"s3cache version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    bucket_url: Optional[str] = typer.Option(
        None,
        "--bucket-url",
        "-b",
        help="Bucket URL (overrides config and S3CACHE_BUCKET_URL)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log debug output to stderr",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also write debug logs to this file",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """s3cache: HTTP cache entries stored in S3.

    ## Commands

    * [bold cyan]get[/bold cyan] - Print a cached entry
    * [bold cyan]set[/bold cyan] - Store a file (or stdin) as an entry
    * [bold cyan]delete[/bold cyan] - Remove an entry
    * [bold cyan]location[/bold cyan] - Show the object URL for a key
    * [bold cyan]config[/bold cyan] - Show or change configuration

    ## Getting Started

    1. Point the cache at a bucket:
       [dim]$ s3cache config set bucket_url https://s3-us-west-2.amazonaws.com/mybucket[/dim]

    2. Export credentials:
       [dim]$ export S3_ACCESS_KEY=... S3_SECRET_KEY=...[/dim]

    3. Look up an entry:
       [dim]$ s3cache get "https://example.com/"[/dim]
    """
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.obj = CliState(bucket_url=bucket_url, config_path=config_path)


def load_config(state: CliState) -> CacheConfig:
    """Load configuration for a command.

    Uses the config file when present, then environment variables, then
    the --bucket-url option.

    Args:
        state: Shared CLI options

    Returns:
        CacheConfig with a bucket URL

    Raises:
        typer.Exit: If no bucket URL is configured
    """
    try:
        config = CacheConfig.load(state.config_path)
    except FileNotFoundError:
        config = CacheConfig()
        config.apply_env()

    if state.bucket_url:
        config.bucket_url = state.bucket_url
        config.region = infer_region(state.bucket_url) or config.region

    try:
        config.validate()
    except ValueError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    return config


def build_cache(state: CliState) -> Tuple[S3Cache, List[StorageError]]:
    """Create a cache that records backend failures.

    Args:
        state: Shared CLI options

    Returns:
        Tuple of (cache, list that collects absorbed StorageErrors)
    """
    failures: List[StorageError] = []

    def record(operation: str, key: str, error: StorageError) -> None:
        failures.append(error)

    return S3Cache(load_config(state), on_error=record), failures


def _exit_on_failures(failures: List[StorageError]) -> None:
    if failures:
        for error in failures:
            err_console.print(f"[red]Storage error ({error.kind.value}): {escape(str(error))}[/red]")
        raise typer.Exit(1)


@app.command("get")
def get_entry(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the entry to this file instead of stdout",
    ),
) -> None:
    """Print a cached entry.

    Exits with status 1 when the key is not cached.
    """
    cache, failures = build_cache(ctx.obj)
    payload, found = cache.get(key)
    _exit_on_failures(failures)

    if not found:
        err_console.print(f"[yellow]Not cached: {escape(key)}[/yellow]")
        raise typer.Exit(1)

    if output is not None:
        output.write_bytes(payload)
        console.print(f"[green]Wrote {len(payload):,} bytes to {output}[/green]")
    else:
        typer.echo(payload, nl=False)


@app.command("set")
def set_entry(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
    source: Optional[Path] = typer.Argument(
        None,
        help="File to store (reads stdin when omitted)",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """Store a file, or stdin, as a cache entry."""
    if source is not None:
        payload = source.read_bytes()
    else:
        payload = typer.get_binary_stream("stdin").read()

    cache, failures = build_cache(ctx.obj)
    cache.set(key, payload)
    _exit_on_failures(failures)

    console.print(f"[green]Stored {len(payload):,} bytes at {cache.location_for(key)}[/green]")


@app.command("delete")
def delete_entry(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
) -> None:
    """Remove a cache entry."""
    cache, failures = build_cache(ctx.obj)
    cache.delete(key)
    _exit_on_failures(failures)

    console.print(f"[green]Deleted {cache.location_for(key)}[/green]")


@app.command("location")
def show_location(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Cache key"),
) -> None:
    """Show the object URL that stores a key."""
    config = load_config(ctx.obj)
    cache = S3Cache(config)
    typer.echo(cache.location_for(key))


@app.command()
def config(
    ctx: typer.Context,
    action: str = typer.Argument(
        ...,
        help="Action to perform (show, set, path)",
    ),
    key: str = typer.Argument(
        None,
        help="Configuration key (for set action)",
    ),
    value: str = typer.Argument(
        None,
        help="Configuration value (for set action)",
    ),
) -> None:
    """Manage configuration.

    Show, set, or display the path to the configuration file.

    Examples:
        s3cache config show          # Show all configuration
        s3cache config set bucket_url https://s3.amazonaws.com/mybucket
        s3cache config path          # Show config file path
    """
    state: CliState = ctx.obj
    path = state.config_path or get_config_path()

    if action == "show":
        try:
            cfg = CacheConfig.load(path)
        except FileNotFoundError:
            cfg = CacheConfig()
            cfg.apply_env()
        except ValueError as e:
            err_console.print(f"[red]Error loading config: {e}[/red]")
            raise typer.Exit(1)

        table = Panel.fit(
            f"[cyan]Bucket URL:[/cyan] {cfg.bucket_url or 'not set'}\n"
            f"[cyan]Region:[/cyan] {cfg.region}\n"
            f"[cyan]Service:[/cyan] {cfg.service}\n"
            f"[cyan]Access Key:[/cyan] {'set' if cfg.access_key else 'not set'}\n"
            f"[cyan]Secret Key:[/cyan] {'set' if cfg.secret_key else 'not set'}\n"
            f"[cyan]Connect Timeout:[/cyan] {cfg.connect_timeout}s\n"
            f"[cyan]Read Timeout:[/cyan] {cfg.read_timeout}s\n"
            f"[cyan]Max Attempts:[/cyan] {cfg.max_attempts or 'default'}\n"
            f"[cyan]Raise Errors:[/cyan] {cfg.raise_errors}",
            title="Configuration",
            border_style="green",
        )
        console.print(table)

    elif action == "set":
        if not key or value is None:
            err_console.print("[red]Usage: s3cache config set <key> <value>[/red]")
            raise typer.Exit(1)

        try:
            cfg = CacheConfig.load(path, apply_env=False) if path.exists() else CacheConfig()
            cfg.set(key, value)
            cfg.save(path)
            console.print(f"[green]Set {key} = {value}[/green]")
        except ValueError as e:
            err_console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    elif action == "path":
        typer.echo(path)

    else:
        err_console.print(f"[red]Unknown action: {action}[/red]")
        err_console.print("Valid actions: show, set, path")
        raise typer.Exit(1)


# Entry point for the CLI
def cli_entry() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    cli_entry()
