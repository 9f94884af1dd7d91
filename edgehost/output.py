"""
Rich-powered console output for the edgehost CLI.
"""

import sys
from dataclasses import fields

from rich.console import Console
from rich.table import Table

from .config import RouterConfig

console = Console(force_terminal=None, legacy_windows=True)

_USE_ASCII = not sys.stdout.isatty()


def print_success(message: str):
    icon = "+" if _USE_ASCII else "✓"
    console.print(f"[green]{icon}[/green] {message}")


def print_error(message: str):
    icon = "x" if _USE_ASCII else "✗"
    console.print(f"[red]{icon}[/red] {message}", style="red")


def print_warning(message: str):
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str):
    icon = "i" if _USE_ASCII else "ℹ"
    console.print(f"[blue]{icon}[/blue] {message}")


def decision_table(url: str, decision) -> Table:
    """Tabulate a routing decision for display"""
    table = Table(title=url, show_header=True, header_style="bold cyan")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("decision", f"[bold]{decision.name}[/bold]")
    for item in fields(decision):
        value = getattr(decision, item.name)
        if item.name == "fallback":
            value = value.target_url
        elif item.name == "wildcard_paths":
            value = "/".join(value) or "-"
        elif item.name == "kind":
            value = value.value
        table.add_row(item.name, str(value))
    return table


def config_table(config: RouterConfig) -> Table:
    table = Table(title="edgehost configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="dim")
    table.add_column("Value")
    for item in fields(config):
        if not item.init:
            continue
        value = getattr(config, item.name)
        table.add_row(item.name, str(value) if value not in ("", None) else "[dim]-[/dim]")
    table.add_row("sections", ", ".join(sorted(config.subdomains)) or "[dim]-[/dim]")
    return table
