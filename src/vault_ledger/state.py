"""Application state container and composition root."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .accounting import VaultAccounting
from .adapters.price_adapters import CoinGeckoPriceClient, PriceOracleClient
from .service import VaultService
from .settings import LedgerSettings
from .store import InMemoryVaultStore, VaultStore


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Built once at process start; the store it holds is never reset.
    """

    settings: LedgerSettings
    logger: logging.Logger
    accounting: VaultAccounting

    @property
    def service(self) -> VaultService:
        return VaultService(self.accounting, self.settings)


def build_state(
    settings: LedgerSettings,
    *,
    store: VaultStore | None = None,
    price_client: PriceOracleClient | None = None,
) -> AppState:
    accounting = VaultAccounting(
        store if store is not None else InMemoryVaultStore(),
        price_client if price_client is not None else CoinGeckoPriceClient(settings),
    )
    return AppState(
        settings=settings,
        logger=logging.getLogger("vault_ledger"),
        accounting=accounting,
    )
