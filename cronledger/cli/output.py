"""Output formatting utilities for the cronledger CLI.

This module provides standardized output formatting for command results,
in both human-readable and JSON form.
"""

import json
from typing import Any, Dict, Optional
from datetime import datetime

from rich.console import Console
from rich.json import JSON as RichJSON

# Default console for output
console = Console()

STATUS_STYLES = {
    "pending": "cyan",
    "running": "yellow",
    "completed": "green",
    "failed": "red",
    "blocked": "magenta",
}


def print_json(data: Any, console_instance: Console | None = None) -> None:
    """Print data as formatted JSON.

    Args:
        data: Data to print (must be JSON-serializable)
        console_instance: Optional custom console instance
    """
    prog_console = console_instance or console

    # Use Rich's built-in JSON support for syntax highlighting
    json_str = json.dumps(data, indent=2, default=str)
    prog_console.print(RichJSON(json_str))


def print_result(
    success: bool,
    message: str,
    details: Dict[str, Any] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print operation result with appropriate styling.

    Args:
        success: Whether the operation succeeded
        message: Result message
        details: Optional dictionary of additional details
        console_instance: Optional custom console instance

    Example:
        print_result(True, "Job 'backup' completed", {"next run": "2026-01-01 00:00"})
        print_result(False, "Job 'backup' failed", {"error": "disk full"})
    """
    prog_console = console_instance or console

    icon = "[green]✓[/green]" if success else "[red]✗[/red]"
    prog_console.print(f"{icon} {message}")

    if details:
        for key, value in details.items():
            if value is not None:
                prog_console.print(f"  [dim]{key}:[/dim] {value}")


def print_key_value(
    data: Dict[str, Any],
    title: str | None = None,
    key_style: str = "cyan",
    console_instance: Console | None = None,
) -> None:
    """Print data as key-value pairs.

    Args:
        data: Dictionary of key-value pairs
        title: Optional title
        key_style: Style for keys
        console_instance: Optional custom console instance
    """
    prog_console = console_instance or console

    if title:
        prog_console.print(f"[bold]{title}[/bold]")
        prog_console.print()

    max_key_len = max(len(str(k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        # Format value based on type
        if isinstance(value, bool):
            formatted = "[green]Yes[/green]" if value else "[red]No[/red]"
        elif isinstance(value, (int, float)):
            formatted = f"[yellow]{value}[/yellow]"
        elif isinstance(value, datetime):
            formatted = format_datetime(value)
        else:
            formatted = str(value) if value is not None else "[dim]N/A[/dim]"

        padded_key = str(key).ljust(max_key_len)
        prog_console.print(f"  [{key_style}]{padded_key}[/{key_style}] : {formatted}")


def format_datetime(value: Optional[datetime], empty: str = "N/A") -> str:
    """Format a wall-clock datetime to the minute, or ``empty`` for None."""
    if value is None:
        return empty
    return value.strftime("%Y-%m-%d %H:%M")


def format_status(status: Optional[str]) -> str:
    """Color an execution status for table output."""
    if status is None:
        return "[dim]none[/dim]"
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format.

    Args:
        seconds: Duration in seconds

    Returns:
        Human-readable duration string

    Example:
        format_duration(90)  # Returns "1m 30s"
        format_duration(3661)  # Returns "1h 1m"
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
