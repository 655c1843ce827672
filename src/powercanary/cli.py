"""CLI entry point for powercanary."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from powercanary.collectors import ProcessJiffiesProvider, host_app_stats, register_host_providers
from powercanary.config import initialize_config
from powercanary.monitor import ProviderRegistry, TraceSession
from powercanary.monitor.scheduler import trace_loop
from powercanary.observability import apply_log_level, configure_logging

app = typer.Typer(
    help="powercanary - windowed resource attribution and thread watchdog",
    no_args_is_help=True,
)
console = Console()


def _print_report(text: str) -> None:
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def _setup(config: Optional[Path]):
    if config is not None and not config.is_file():
        console.print(f"[red]Error:[/red] Config file not found: {config}")
        raise typer.Exit(code=1)
    try:
        manager = initialize_config(config_file=config)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    configure_logging(manager.get("logging.level"), manager.get("logging.json"))
    manager.subscribe(apply_log_level)
    return manager


@app.command()
def trace(
    windows: int = typer.Option(1, "--windows", min=1, help="Number of trace windows to run"),
    window_seconds: Optional[float] = typer.Option(
        None, "--window-seconds", help="Window length (default: monitor.trace_window_seconds)"
    ),
    background: bool = typer.Option(False, "--background", help="Report windows as background"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to TOML config file"),
):
    """Trace this process with the host providers and print one report per window."""
    manager = _setup(config)

    registry = ProviderRegistry()
    registered = register_host_providers(registry, manager.get("monitor.enabled_subsystems"))
    console.print(f"[blue]Providers:[/blue] {', '.join(registered) or 'none'}")

    session = TraceSession(
        registry,
        config_provider=manager.monitor_config,
        sink=_print_report,
        app_stats_provider=host_app_stats,
    )
    emitted = asyncio.run(
        trace_loop(
            session,
            window_seconds=window_seconds,
            is_foreground=lambda: not background,
            cycles=windows,
        )
    )
    console.print(f"[green]✓[/green] {emitted} report(s) emitted")


@app.command()
def threads(
    pid: Optional[int] = typer.Option(None, "--pid", help="Process to inspect (default: this one)"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to TOML config file"),
):
    """Print a one-off thread watchdog report."""
    manager = _setup(config)

    try:
        provider = ProcessJiffiesProvider(pid=pid)
        snapshot = provider.current_snapshot()
    except Exception as e:
        console.print(f"[red]Error reading threads:[/red] {e}")
        raise typer.Exit(code=1)

    session = TraceSession(
        ProviderRegistry(),
        config_provider=manager.monitor_config,
        sink=_print_report,
    )
    if session.watch_threads(snapshot.thread_entries.get_list()) is None:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
