"""Rich console singleton and helpers for terminal output."""

from rich.console import Console
from rich.table import Table

# Global console instance
console = Console()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def create_sessions_table(title: str) -> Table:
    """Create the table used to list running durable sessions."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Session", style="cyan")
    table.add_column("Created")
    table.add_column("Windows", justify="right")
    table.add_column("Attached")
    return table
