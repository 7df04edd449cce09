"""Console output for the command line interface."""

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Writes user-facing messages as rich text or JSON.

    Regular messages go to stdout, warnings and errors to stderr. In quiet
    mode only warnings, errors and JSON output are shown.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def print(self, message: str = "") -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[cyan]{message}[/cyan]")

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]✓ {message}[/green]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]⚠ {message}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]✗ {message}[/red]")

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def output_json(self, data: Any) -> None:
        """Print data as JSON regardless of the quiet flag."""
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            items: (label, value) rows
        """
        if self.quiet or self.json_output:
            return

        table = Table(title=title, show_header=False, title_justify="left")
        table.add_column("Metric", style="bold cyan", no_wrap=True)
        table.add_column("Value")
        for label, value in items:
            table.add_row(label, value)
        self.console.print(table)
