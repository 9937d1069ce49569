"""CLI entry point for the songbook TUI.

Provides the `songbook` command for launching the Textual interface.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from family_songbook import __version__
from family_songbook.app.app import SongbookApp
from family_songbook.app.config import (
    ENV_SUPABASE_ANON_KEY,
    AppConfig,
    ensure_app_config_exists,
    get_app_config_path,
)
from family_songbook.app.db.client import SupabaseClient
from family_songbook.app.errors import ConfigError
from family_songbook.app.logging_config import LOG_FILE_NAME, setup_logging
from family_songbook.app.services.auth import AuthService

app = typer.Typer(
    name="songbook",
    help="Family Songbook - lyrics player TUI",
    no_args_is_help=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"songbook version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Family Songbook - keep your family's songs and sing along."""


def _check_first_run() -> bool:
    """Check if this is the first run (no config exists)."""
    return not get_app_config_path().exists()


def _show_welcome() -> None:
    """Show welcome message for first run."""
    console.print(
        Panel.fit(
            "[bold green]Welcome to the Family Songbook![/bold green]\n\n"
            "Keep your family's songs in one place and sing along with auto-scrolling lyrics.\n"
            "Configuration will be created at: "
            f"[cyan]{get_app_config_path()}[/cyan]",
            title="songbook",
            border_style="green",
        )
    )


def _load_config(config_path: Optional[Path]) -> AppConfig:
    """Load the given config file or the default one."""
    try:
        if config_path:
            return AppConfig.load(config_path)
        return ensure_app_config_exists()
    except FileNotFoundError as e:
        console.print(f"[red]Config file not found: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def run(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Launch the TUI application."""
    if _check_first_run() and not config_path:
        _show_welcome()

    config = _load_config(config_path)

    log_dir = config.log_dir
    logger = setup_logging(log_dir, config.log_level)
    logger.info(f"Supabase URL: {config.supabase_url or '(not set)'}")
    logger.info(f"Cache dir: {config.cache_dir}")
    console.print(f"[dim]Session log: {log_dir}/{LOG_FILE_NAME}[/dim]")

    try:
        app_instance = SongbookApp(config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        console.print(
            Panel.fit(
                f"[bold red]Configuration error[/bold red]\n\n{e}",
                title="Error",
                border_style="red",
            )
        )
        raise typer.Exit(1)

    try:
        logger.info("Launching TUI application")
        app_instance.run()
        logger.info("Application exited normally")
    except KeyboardInterrupt:
        logger.info("Application interrupted by user (Ctrl+C)")
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        logger.exception(f"Application error: {e}")
        console.print(f"[red]Error running app: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def config(
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration",
    ),
) -> None:
    """Show application configuration."""
    config_path = get_app_config_path()

    if config_path.exists():
        config = AppConfig.load(config_path)
        console.print(f"[bold]Config file:[/bold] {config_path}")
        console.print(f"[bold]Supabase URL:[/bold] {config.supabase_url or '(not set)'}")
        key_state = "set" if config.supabase_anon_key else "[yellow]not set[/yellow]"
        console.print(f"[bold]{ENV_SUPABASE_ANON_KEY}:[/bold] {key_state}")
        console.print(f"[bold]Cache dir:[/bold] {config.cache_dir}")
        console.print(f"[bold]Session file:[/bold] {config.session_path}")
        console.print(f"[bold]Log level:[/bold] {config.log_level}")
        if show:
            console.print(f"[bold]Speed step:[/bold] {config.speed_step_percent}%")
            console.print(f"[bold]Toggle debounce:[/bold] {config.toggle_debounce_ms} ms")
            console.print(f"[bold]Frame interval:[/bold] {config.frame_interval_ms} ms")
            console.print(f"[bold]Live speed changes:[/bold] {config.live_speed_changes}")
            console.print(f"[bold]Auto stop at end:[/bold] {config.auto_stop_at_end}")
    else:
        console.print(f"[yellow]No config file at {config_path}[/yellow]")
        console.print("Run [bold]songbook run[/bold] to create default config.")


@app.command()
def logout(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Sign out and remove the saved session."""
    config = _load_config(config_path)

    if not config.session_path.exists():
        console.print("[dim]Not signed in[/dim]")
        return

    try:
        client = SupabaseClient(
            config.supabase_url,
            config.supabase_anon_key,
            timeout=config.request_timeout,
        )
    except ConfigError as e:
        # Without a server configured only the local session can be removed
        console.print(f"[yellow]{e}[/yellow]")
        config.session_path.unlink()
    else:
        AuthService(client, config.session_path).sign_out()
    console.print("[green]Signed out[/green]")


def cli_entry() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli_entry()
