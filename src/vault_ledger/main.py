"""CLI entrypoint for the vault ledger."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer

from .errors import InvalidArgumentError, UpstreamUnavailableError
from .formatter import format_valuation
from .logger import setup_logging
from .onchain import TreasuryVaultMirror
from .server import create_server
from .settings import CONFIG_ENV_VAR, LedgerSettings
from .state import build_state

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Treasury-vault ledger: vault accounting and USD valuation.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to a TOML config file (can include [vault_ledger] table).",
    ),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    ),
]


def _load_settings(config_path: Path | None, **overrides: Any) -> LedgerSettings:
    """Build settings with CLI overrides taking precedence over ENV and file."""
    if config_path:
        os.environ[CONFIG_ENV_VAR] = str(config_path)
    init_kwargs = {k: v for k, v in overrides.items() if v is not None}
    settings = LedgerSettings(**init_kwargs)
    setup_logging(settings.log_level)
    return settings


@app.command()
def serve(
    config_path: ConfigOption = None,
    host: Annotated[
        str | None, typer.Option("--host", help="Interface to bind.")
    ] = None,
    port: Annotated[
        int | None, typer.Option("--port", "-p", help="Port to listen on.")
    ] = None,
    log_level: LogLevelOption = None,
) -> None:
    """Serve the vault HTTP API until interrupted."""
    settings = _load_settings(config_path, host=host, port=port, log_level=log_level)
    state = build_state(settings)
    server = create_server(state.service, settings.host, settings.port)
    bound_host, bound_port = server.server_address[:2]
    state.logger.info("Vault ledger listening on %s:%s", bound_host, bound_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        state.logger.info("Shutting down")
    finally:
        server.server_close()


@app.command()
def price(
    asset_id: Annotated[
        str, typer.Argument(help="Price-service asset id, e.g. 'ethereum'.")
    ],
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Print the current USD price of one asset id."""
    settings = _load_settings(config_path, log_level=log_level)
    state = build_state(settings)
    try:
        quote = asyncio.run(state.accounting.price_in_usd(asset_id))
    except UpstreamUnavailableError as exc:
        typer.echo(f"Price service unavailable: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(json.dumps({"id": asset_id, "usd": quote}, allow_nan=False))


@app.command()
def value(
    assets: Annotated[
        list[str],
        typer.Option(
            "--asset",
            "-a",
            help="Holding as SYMBOL=AMOUNT; repeat for several assets.",
        ),
    ],
    owner: Annotated[str, typer.Option("--owner", help="Owner label.")] = "cli",
    threshold: Annotated[
        float, typer.Option("--threshold", help="USD threshold to compare against.")
    ] = 0.0,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the valuation as JSON.")
    ] = False,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Value a set of holdings at current prices."""
    settings = _load_settings(config_path, log_level=log_level)
    state = build_state(settings)
    accounting = state.accounting

    try:
        vault = accounting.create_vault(owner, threshold)
        for raw in assets:
            symbol, sep, amount = raw.partition("=")
            if not sep:
                raise typer.BadParameter(
                    f"expected SYMBOL=AMOUNT, got {raw!r}", param_hint="--asset"
                )
            try:
                parsed = float(amount)
            except ValueError:
                raise typer.BadParameter(
                    f"amount must be a number, got {amount!r}", param_hint="--asset"
                )
            vault = accounting.record_asset_balance(vault.id, symbol.strip(), parsed)
    except InvalidArgumentError as exc:
        raise typer.BadParameter(exc.message)

    try:
        valuation = asyncio.run(state.service.value_vault(vault.id))
    except InvalidArgumentError as exc:
        raise typer.BadParameter(exc.message, param_hint="--asset")
    except UpstreamUnavailableError as exc:
        typer.echo(f"Price service unavailable: {exc}", err=True)
        raise typer.Exit(code=2)

    if as_json:
        typer.echo(json.dumps(valuation.to_dict(), allow_nan=False))
    else:
        format_valuation(vault, valuation)


@app.command()
def mirror(
    vault_address: Annotated[
        str, typer.Argument(help="Address of the TreasuryVault contract.")
    ],
    owner: Annotated[
        str, typer.Option("--owner", help="Depositor whose balance is mirrored.")
    ],
    threshold: Annotated[
        float, typer.Option("--threshold", help="USD threshold of the mirrored vault.")
    ] = 0.0,
    rpc: Annotated[
        str | None, typer.Option("--rpc", help="JSON-RPC endpoint (overrides vault_rpc).")
    ] = None,
    block: Annotated[
        int | None, typer.Option("--block", help="Block number to read balances at.")
    ] = None,
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Mirror a depositor's on-chain TreasuryVault balance and print the vault."""
    settings = _load_settings(
        config_path, vault_rpc=rpc, block_number=block, log_level=log_level
    )
    if settings.vault_rpc is None:
        raise typer.BadParameter("no RPC endpoint configured", param_hint="--rpc")
    state = build_state(settings)

    try:
        vault = state.accounting.create_vault(owner, threshold)
        treasury = TreasuryVaultMirror.from_settings(
            settings, state.accounting, vault_address
        )
        vault = asyncio.run(treasury.mirror_balance(vault.id))
    except InvalidArgumentError as exc:
        raise typer.BadParameter(exc.message)
    except UpstreamUnavailableError as exc:
        typer.echo(f"Chain unavailable: {exc}", err=True)
        raise typer.Exit(code=2)

    typer.echo(json.dumps(vault.to_dict(), allow_nan=False))


@app.command("show-config")
def show_config(
    config_path: ConfigOption = None,
    log_level: LogLevelOption = None,
) -> None:
    """Print effective config (with secrets redacted) and exit."""
    settings = _load_settings(config_path, log_level=log_level)
    typer.echo(json.dumps(settings.as_safe_dict(), indent=2))


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
