"""Console output formatting for PyMirror."""

import json
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .sync.journal import SyncAction, SyncEvent

ACTION_STYLES: dict[SyncAction, str] = {
    SyncAction.CREATE_FOLDER: "green",
    SyncAction.ADD_FILE: "yellow",
    SyncAction.UPDATE_FILE: "yellow",
    SyncAction.DELETE_FILE: "blue",
    SyncAction.DELETE_FOLDER: "magenta",
}


class OutputFormatter:
    """Writes colored messages, action lines and summaries to the terminal."""

    def __init__(
        self,
        quiet: bool = False,
        json_output: bool = False,
        no_color: bool = False,
        console: Any = None,
    ):
        """Initialize output formatter.

        Args:
            quiet: Suppress non-essential output
            json_output: Emit machine readable JSON instead of text
            no_color: Disable colors
            console: Optional rich Console (used by tests)
        """
        self.quiet = quiet
        self.json_output = json_output
        self.console = console or Console(
            no_color=no_color, highlight=False, soft_wrap=True, emoji=False
        )
        self.err_console = console or Console(
            stderr=True,
            no_color=no_color,
            highlight=False,
            soft_wrap=True,
            emoji=False,
        )

    def print(self, message: str = "") -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(Text(message, style="bold green"))

    def warning(self, message: str) -> None:
        if self.json_output:
            return
        self.err_console.print(Text(message, style="yellow"))

    def error(self, message: str) -> None:
        """Errors are always shown, even in quiet mode."""
        self.err_console.print(Text(message, style="bold red"))

    def action(self, event: SyncEvent) -> None:
        """Print one sync action with the path highlighted."""
        if self.quiet or self.json_output:
            return
        style = ACTION_STYLES.get(event.action, "white")
        line = Text()
        line.append(f"{event.verb}: '", style=style)
        line.append(str(event.path))
        line.append("'", style=style)
        self.console.print(line)

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table."""
        if self.quiet or self.json_output:
            return
        table = Table(title=title, show_header=False, title_style="bold green")
        table.add_column("Field", style="green")
        table.add_column("Value")
        for field, value in rows:
            table.add_row(field, value)
        self.console.print(table)

    def output_json(self, data: Any) -> None:
        self.console.print(json.dumps(data, indent=2, default=str), markup=False)
