"""
CLI interface for ping-process.

This module provides the command-line interface using Typer and Rich.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import ConfigManager, PingProcessConfig, get_config_manager
from ..executor import CancellationToken, PingProcess
from ..models import FanOutSummary, PingResult
from ..utils import (
    CancellationError,
    PingProcessError,
    clamp_exit_status,
    format_duration,
    get_logger,
    setup_logger,
)

# Initialize Typer app
app = typer.Typer(
    name="ping-process",
    help="Run ping against one or many targets and capture the results",
    add_completion=False,
)
config_app = typer.Typer(help="Manage configuration files")
app.add_typer(config_app, name="config")

# Console for ping output; logs go to stderr
console = Console()

logger = get_logger(__name__)


def _setup(verbose: bool, log_file: Optional[Path]) -> None:
    setup_logger(
        level="DEBUG" if verbose else "WARNING",
        log_file=log_file,
        verbose=verbose,
    )


def _load_config(config_file: Optional[Path]) -> PingProcessConfig:
    config = get_config_manager(config_file).config
    logger.debug(f"Using executable {config.ping.executable} {config.ping.arguments}")
    return config


def _print_result(result: PingResult) -> None:
    if result.std_output:
        console.print(Text(result.std_output), soft_wrap=True)
    style = "green" if result.success else "red"
    console.print(f"[{style}]exit code {result.exit_code}[/{style}]", highlight=False)


def _print_summary(summary: FanOutSummary) -> None:
    table = Table(title="Fan-out summary", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Target")
    table.add_column("Exit code", justify="right")
    table.add_column("Lines", justify="right")
    table.add_column("Duration", justify="right")

    for member in summary.results:
        style = "green" if member.result.success else "red"
        table.add_row(
            str(member.index + 1),
            member.target,
            f"[{style}]{member.result.exit_code}[/{style}]",
            str(member.result.line_count),
            format_duration(member.duration),
        )

    console.print(table)
    console.print(
        f"[dim]{summary.total_runs} run(s), {summary.success_rate:.0f}% succeeded "
        f"in {format_duration(summary.total_duration)}[/dim]"
    )


@app.command()
def run(
    target: str = typer.Argument(..., help="Host name or address to ping"),
    long_running: bool = typer.Option(
        False,
        "--long-running",
        help="Run on the dedicated long-running pool",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Log file path"),
) -> None:
    """
    Ping a single target and print its output.

    The command exits with the exit code of the ping run.
    """
    _setup(verbose, log_file)
    token = CancellationToken()

    try:
        config = _load_config(config_file)
        with PingProcess(config) as pinger:
            if long_running:
                result = asyncio.run(pinger.run_long_running_async(target, token))
            else:
                result = pinger.run(target, token)

    except KeyboardInterrupt:
        token.cancel()
        console.print("\n[yellow]⚠ Ping cancelled by user[/yellow]")
        sys.exit(130)
    except CancellationError:
        console.print("\n[yellow]⚠ Ping cancelled[/yellow]")
        sys.exit(130)
    except (PingProcessError, ValueError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    _print_result(result)
    sys.exit(clamp_exit_status(result.exit_code))


@app.command()
def many(
    targets: list[str] = typer.Argument(..., help="Host names or addresses to ping"),
    summary: bool = typer.Option(False, "--summary", "-s", help="Print a per-target summary"),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Log file path"),
) -> None:
    """
    Ping many targets concurrently and print the combined output.

    Output is printed in the order the targets were given. The command exits
    with the sum of the individual exit codes (capped at 255).
    """
    _setup(verbose, log_file)

    try:
        config = _load_config(config_file)
        with PingProcess(config) as pinger:
            result = asyncio.run(pinger.run_many(*targets))
            fan_out_summary = pinger.last_summary

    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Ping cancelled by user[/yellow]")
        sys.exit(130)
    except (PingProcessError, ValueError) as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    _print_result(result)
    if summary and fan_out_summary is not None:
        _print_summary(fan_out_summary)
    sys.exit(clamp_exit_status(result.exit_code))


@config_app.command("init")
def config_init(
    path: Optional[Path] = typer.Argument(None, help="Where to write the configuration file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a default configuration file."""
    try:
        created = ConfigManager().init_default_config(path, force=force)
    except PingProcessError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Configuration written to {created}")


@config_app.command("show")
def config_show(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="Custom configuration file",
    ),
) -> None:
    """Show the effective configuration."""
    try:
        config = ConfigManager(config_file).config
    except PingProcessError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("ping.executable", config.ping.executable)
    table.add_row("ping.arguments", " ".join(config.ping.arguments) or "(none)")
    table.add_row("ping.working_directory", str(config.ping.working_directory or "(inherit)"))
    table.add_row("executor.max_workers", str(config.executor.max_workers or "(default)"))
    table.add_row("executor.long_running_workers", str(config.executor.long_running_workers))
    table.add_row("executor.drain_timeout", f"{config.executor.drain_timeout}s")

    console.print(Panel.fit(table, title="ping-process configuration", border_style="cyan"))


def main() -> None:
    """Entry point for the console script."""
    app()


if __name__ == "__main__":
    main()
