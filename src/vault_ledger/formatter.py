"""Rich console formatter for vault valuations."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .domain import Vault, VaultValuation


def _format_usd(value: float) -> str:
    return f"${value:,.2f}"


def build_valuation_table(vault: Vault, valuation: VaultValuation) -> Table:
    table = Table(show_footer=True, padding=(0, 1))
    table.add_column("Asset", style="cyan", footer="Total")
    table.add_column("Amount", justify="right")
    table.add_column("Price (USD)", justify="right", style="dim")
    table.add_column(
        "Value (USD)",
        justify="right",
        style="green",
        footer=_format_usd(valuation.total_usd),
    )

    for symbol, amount in sorted(vault.assets.items()):
        price = valuation.prices.get(symbol, 0.0)
        price_cell = _format_usd(price) if price else "[yellow]unpriced[/]"
        table.add_row(symbol, f"{amount:,}", price_cell, _format_usd(amount * price))

    return table


def format_valuation(
    vault: Vault, valuation: VaultValuation, console: Console | None = None
) -> None:
    """Print a vault valuation panel to stdout."""
    console = console or Console()
    status = (
        "[bold green]threshold reached[/]"
        if valuation.threshold_reached
        else "[bold yellow]below threshold[/]"
    )
    console.print(
        Panel(
            build_valuation_table(vault, valuation),
            title=f"[bold]Vault {vault.owner}[/]",
            subtitle=f"{status} ({_format_usd(valuation.threshold_usd)})",
            border_style="blue",
        )
    )
