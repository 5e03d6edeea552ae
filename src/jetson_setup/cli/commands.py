"""Command implementations for CLI."""

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from jetson_setup.core.engine import SetupEngine
from jetson_setup.core.reporting import Reporter
from jetson_setup.models.config import SetupConfig
from jetson_setup.models.state import SetupState
from jetson_setup.providers import ProviderRegistry


logger = logging.getLogger(__name__)

console = Console()
stderr_console = Console(stderr=True)


class ConsoleReporter(Reporter):
    """Reporter that renders steps and copy progress with rich."""

    def __init__(self, console: Console):
        self.console = console
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def step(self, title: str) -> None:
        super().step(title)
        self.console.print(f"\n[bold cyan]▶ {title}[/bold cyan]")

    def info(self, message: str) -> None:
        super().info(message)
        self.console.print(f"  {message}")

    def success(self, message: str) -> None:
        super().success(message)
        self.console.print(f"  [green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        super().warning(message)
        self.console.print(f"  [yellow]![/yellow] {message}")

    def start_progress(self, description: str) -> None:
        super().start_progress(description)
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self._progress.start()
        self._task = self._progress.add_task(description, total=100)

    def update_progress(self, percent: int) -> None:
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, completed=percent)

    def finish_progress(self) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None


def prompt_confirmation(warning: str) -> str:
    """Show the destructive-action warning and return the raw answer."""
    console.print(Panel(warning, title="[bold red]WARNING[/bold red]", border_style="red"))
    return console.input("Continue? Type [bold]y[/bold] or [bold]yes[/bold] to proceed: ")


async def run_setup(config: SetupConfig, assume_yes: bool = False) -> SetupState:
    """Run the full setup procedure."""
    registry = ProviderRegistry()
    await registry.initialize(config)
    try:
        engine = SetupEngine(
            config,
            registry,
            reporter=ConsoleReporter(console),
            confirm=None if assume_yes else prompt_confirmation,
        )
        state = await engine.run()
        console.print(
            f"\n[bold green]Done.[/bold green] Docker data now lives in "
            f"[cyan]{config.docker_data_root}[/cyan]."
        )
        return state
    finally:
        await registry.close()


async def run_verify(config: SetupConfig) -> None:
    """Run only the verification pass."""
    registry = ProviderRegistry()
    await registry.initialize(config)
    try:
        engine = SetupEngine(config, registry, reporter=ConsoleReporter(console))
        await engine.verify()
        console.print("\n[bold green]All checks passed.[/bold green]")
    finally:
        await registry.close()
