"""Console output formatting for the CloudVault CLI."""

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Prints CLI messages through rich, or JSON when requested."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress info and success messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def print(self, message: str = "") -> None:
        if not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def print_summary(self, title: str, items: list[tuple[str, Any]]) -> None:
        """Print a two-column key/value table (or a JSON object)."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        table = Table(title=title, show_header=False)
        table.add_column("key", style="bold")
        table.add_column("value")
        for key, value in items:
            table.add_row(key, "-" if value is None else str(value))
        self.console.print(table)
