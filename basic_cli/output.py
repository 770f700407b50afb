"""Terminal output for the Basic CLI, built on rich."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.json import JSON
from rich.table import Table


class OutputFormatter:
    """Formats command output as styled text or JSON.

    Messages go to stdout except errors and warnings, which go to stderr so
    that ``--json`` output stays machine readable.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def _emit(self, message: str, style: Optional[str] = None, err: bool = False) -> None:
        target = self.err_console if err else self.console
        target.print(message, style=style, markup=False, soft_wrap=True)

    def info(self, message: str) -> None:
        """Print an informational message (hidden by --quiet and --json)."""
        if self.quiet or self.json_output:
            return
        self._emit(message)

    def success(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self._emit(message, style="green")

    def warning(self, message: str) -> None:
        if self.quiet:
            return
        self._emit(message, style="yellow", err=True)

    def error(self, message: str) -> None:
        """Print an error. Errors are shown even in quiet mode."""
        self._emit(message, style="red", err=True)

    def print(self, message: str = "") -> None:
        if self.json_output:
            return
        self._emit(message)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of label/value pairs."""
        if self.json_output:
            self.output_json({label: value for label, value in items})
            return
        if self.quiet:
            return
        self.console.print(f"\n{title}", style="bold", markup=False)
        self.console.print("=" * len(title), markup=False)
        for label, value in items:
            self.console.print(f"  {label}: {value}", markup=False, soft_wrap=True)

    def output_table(
        self,
        data: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a table, or as a JSON list with --json.

        Args:
            data: Rows keyed by column name
            columns: Keys to show, in order
            headers: Optional display name per column key
            title: Optional table title
        """
        if self.json_output:
            self.output_json([{c: row.get(c) for c in columns} for row in data])
            return

        headers = headers or {}
        table = Table(title=title, show_lines=False)
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in data:
            table.add_row(*("" if row.get(c) is None else str(row.get(c)) for c in columns))
        self.console.print(table)

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON."""
        self.console.print(JSON(json.dumps(data, default=str)), soft_wrap=True)
