"""Main CLI implementation using Typer."""

import asyncio
import os
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional

import typer

from jetson_setup.cli.commands import console, run_setup, run_verify, stderr_console
from jetson_setup.core.config import ConfigManager, build_overrides
from jetson_setup.exceptions import (
    ConfigurationError,
    SetupError,
    UserAborted,
    VerificationFailure,
)
from jetson_setup.models.config import SetupConfig
from jetson_setup.utils.logging import setup_logging


# Create Typer app
app = typer.Typer(
    name="jetson-ssd-setup",
    help="Move a Jetson's Docker storage onto an SSD and enable the NVIDIA runtime",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _require_root() -> None:
    """Refuse to run without root privileges."""
    if os.geteuid() != 0:
        raise ConfigurationError("This tool must be run as root (try sudo)")


def _run_cli_command(handler: Callable[..., Coroutine[Any, Any, Any]], *args: Any, **kwargs: Any):
    """Helper to run an async command with error handling and exit codes."""
    try:
        return asyncio.run(handler(*args, **kwargs))
    except UserAborted as e:
        console.print(f"[yellow]Aborted:[/yellow] {e}. Nothing was changed.")
        raise typer.Exit(0) from e
    except VerificationFailure as e:
        stderr_console.print(f"[red]Verification failed:[/red] {e}")
        raise typer.Exit(1) from e
    except SetupError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except OSError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _load_config(
    config_file: Optional[Path],
    device: Optional[str],
    mount_point: Optional[str],
    memory_optimization: bool,
    verbose: bool,
) -> SetupConfig:
    overrides = build_overrides(
        device=device,
        mount_point=mount_point,
        memory_optimization=memory_optimization,
        log_level="DEBUG" if verbose else None,
    )
    return asyncio.run(ConfigManager(config_file).load(overrides))


@app.command()
def setup_command(
    device: Optional[str] = typer.Option(
        None, "--device", "-d", help="Target block device, e.g. /dev/nvme0n1"
    ),
    mount_point: Optional[str] = typer.Option(
        None, "--mounting-point", "-mp", help="Mount point for the device [default: /ssd]"
    ),
    memory_optimization: bool = typer.Option(
        False, "--memory-optimization", "-m",
        help="Disable the desktop and extra services, add a swap file"
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Do not ask for confirmation"
    ),
    verify_only: bool = typer.Option(
        False, "--verify-only", help="Only verify an existing setup"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML configuration file"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"
    ),
):
    """Format DEVICE, mount it and move Docker's data root onto it."""
    try:
        config = _load_config(config_file, device, mount_point, memory_optimization, verbose)
        setup_logging(config.logging.level, config.logging.file)
        if not config.storage.device:
            raise ConfigurationError("A target device is required (--device)")
        _require_root()
    except ConfigurationError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if verify_only:
        _run_cli_command(run_verify, config)
    else:
        _run_cli_command(run_setup, config, assume_yes=yes)


def main():
    """Main entry point for CLI."""
    app()
