"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from covdelta.models.coverage import Metric

if TYPE_CHECKING:
    from covdelta.models.coverage import ReportDelta

console = Console(stderr=True)

_HIGH_COVERAGE = 80.0
_MEDIUM_COVERAGE = 50.0
_MAX_FILES_DISPLAY = 20


def _coverage_color(percentage: float) -> str:
    """Return a Rich color name for a coverage percentage."""
    if percentage >= _HIGH_COVERAGE:
        return "green"
    if percentage >= _MEDIUM_COVERAGE:
        return "yellow"
    return "red"


def _delta_cell(delta: float | None) -> str:
    if delta is None:
        return "[dim]-[/dim]"
    if delta < 0:
        return f"[red]{delta:+.2f}%[/red]"
    if delta > 0:
        return f"[green]{delta:+.2f}%[/green]"
    return "0.00%"


class CLIReporter:
    """Rich terminal output for report runs.

    Writes to stderr so that ``covdelta render`` can keep stdout for the
    Markdown body.
    """

    def __init__(self, target: Console | None = None) -> None:
        self.console = target or console

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_coverage_summary(self, delta: ReportDelta) -> None:
        """Print a per-file coverage table followed by the overall totals."""
        table = Table(title="Coverage Summary", title_style="bold cyan")
        table.add_column("File", style="bold")
        table.add_column("Lines", justify="right")
        table.add_column("Δ Lines", justify="right")
        table.add_column("Branches", justify="right")
        table.add_column("Functions", justify="right")

        for row in delta.files[:_MAX_FILES_DISPLAY]:
            if row.current is None:
                table.add_row(f"[strike]{row.path}[/strike]", "-", "removed", "-", "-")
                continue
            line_pct = row.current.line_percentage
            color = _coverage_color(line_pct)
            table.add_row(
                row.path,
                f"[{color}]{line_pct:.2f}%[/{color}]",
                _delta_cell(row.line_delta),
                f"{row.current.branch_percentage:.2f}%",
                f"{row.current.function_percentage:.2f}%",
            )

        hidden = len(delta.files) - _MAX_FILES_DISPLAY
        if hidden > 0:
            table.add_row(f"[dim]... and {hidden} more[/dim]", "", "", "", "")

        overall = delta.current.line_percentage
        color = _coverage_color(overall)
        table.add_section()
        table.add_row(
            "[bold]Overall[/bold]",
            f"[bold {color}]{overall:.2f}%[/bold {color}]",
            _delta_cell(delta.delta(Metric.LINES)),
            f"{delta.current.branch_percentage:.2f}%",
            f"{delta.current.function_percentage:.2f}%",
        )

        self.console.print(table)


reporter = CLIReporter()
