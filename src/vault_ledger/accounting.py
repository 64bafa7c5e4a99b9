"""Vault business rules and the USD valuation algorithm."""

from __future__ import annotations

import asyncio
import math
import uuid
from typing import Callable, Mapping

from .adapters.price_adapters.base import PriceOracleClient
from .commands import (
    AddRewardAddress,
    CreateVault,
    RecordAssetBalance,
    UpdateThreshold,
    parse_command,
)
from .domain import Vault, VaultValuation
from .errors import InvalidArgumentError, NotFoundError
from .logger import get_logger
from .store import VaultStore

logger = get_logger(__name__)


def _new_vault_id() -> str:
    return str(uuid.uuid4())


def lookup_price(price_map: Mapping[str, float], symbol: str) -> float:
    """Return the price of ``symbol``, or 0 when ``price_map`` has none.

    An unknown price is business policy, not an error: a vault may hold an
    asset nobody quotes right now, and that holding is valued at zero.
    """
    return price_map.get(symbol, 0.0)


def compute_vault_usd_value(vault: Vault, price_map: Mapping[str, float]) -> float:
    """Sum ``amount * price`` over the vault's assets.

    Pure: depends only on its arguments and mutates neither.
    """
    total = 0.0
    for symbol, amount in vault.assets.items():
        total += amount * lookup_price(price_map, symbol)
    return total


class VaultAccounting:
    """Creation, reward-address registration, balance snapshots and valuation.

    All vault mutation goes through this class. Input is validated into a
    command before the store is touched.
    """

    def __init__(
        self,
        store: VaultStore,
        price_client: PriceOracleClient,
        *,
        id_factory: Callable[[], str] = _new_vault_id,
    ):
        self.store = store
        self.price_client = price_client
        self._id_factory = id_factory

    def create_vault(self, owner: str, thresholds_usd: float) -> Vault:
        cmd = parse_command(CreateVault, owner=owner, thresholds_usd=thresholds_usd)
        vault = Vault(
            id=self._id_factory(),
            owner=cmd.owner,
            thresholds_usd=cmd.thresholds_usd,
        )
        self.store.put(vault)
        logger.info("Created vault %s for owner %s", vault.id, vault.owner)
        return vault.snapshot()

    def _update(self, vault_id: str, mutate: Callable[[Vault], None]) -> Vault:
        updated = self.store.update(vault_id, mutate)
        if updated is None:
            raise NotFoundError(f"Vault {vault_id} not found")
        return updated

    def add_reward_address(self, vault_id: str, address: str) -> Vault:
        """Append ``address`` to the vault's reward addresses.

        The list is an append-only log; repeated addresses are kept.
        """
        cmd = parse_command(AddRewardAddress, vault_id=vault_id, address=address)
        vault = self._update(
            cmd.vault_id, lambda v: v.reward_addresses.append(cmd.address)
        )
        logger.info("Registered reward address %s on vault %s", cmd.address, vault.id)
        return vault

    def record_asset_balance(self, vault_id: str, symbol: str, amount: float) -> Vault:
        """Record an observed balance for ``symbol``, replacing any previous one.

        This is a snapshot, not a delta, so replaying an observation is a no-op.
        """
        cmd = parse_command(
            RecordAssetBalance, vault_id=vault_id, symbol=symbol, amount=amount
        )

        def _set(v: Vault) -> None:
            v.assets[cmd.symbol] = cmd.amount

        vault = self._update(cmd.vault_id, _set)
        logger.debug("Vault %s balance %s=%s", vault.id, cmd.symbol, cmd.amount)
        return vault

    def update_threshold(self, vault_id: str, thresholds_usd: float) -> Vault:
        cmd = parse_command(
            UpdateThreshold, vault_id=vault_id, thresholds_usd=thresholds_usd
        )

        def _set(v: Vault) -> None:
            v.thresholds_usd = cmd.thresholds_usd

        vault = self._update(cmd.vault_id, _set)
        logger.info("Vault %s threshold set to %s USD", vault.id, cmd.thresholds_usd)
        return vault

    def get_vault(self, vault_id: str) -> Vault | None:
        return self.store.get(vault_id)

    def list_vaults(self) -> list[Vault]:
        return self.store.list()

    compute_vault_usd_value = staticmethod(compute_vault_usd_value)

    async def price_in_usd(self, asset_id: str) -> float:
        """USD price of one oracle asset id; 0 when the oracle has no quote.

        No retry here: UpstreamUnavailableError reaches the caller unchanged.
        """
        return await self.price_client.fetch_price(asset_id)

    async def value_vault(
        self, vault_id: str, price_ids: Mapping[str, str]
    ) -> VaultValuation:
        """Value a vault at current prices.

        The vault is snapshotted first and no lock is held while prices are in
        flight. ``price_ids`` maps upper-cased symbols to oracle asset ids;
        symbols without an id are left unpriced and count as zero.

        Raises:
            NotFoundError: If the vault does not exist.
            InvalidArgumentError: If the total overflows to a non-finite value.
            UpstreamUnavailableError: If any price request fails.
        """
        vault = self.store.get(vault_id)
        if vault is None:
            raise NotFoundError(f"Vault {vault_id} not found")

        priced: dict[str, str] = {}
        for symbol in vault.assets:
            asset_id = price_ids.get(symbol.upper())
            if asset_id is None:
                logger.warning(
                    "No price id configured for %s on vault %s, valuing at 0",
                    symbol,
                    vault.id,
                )
                continue
            priced[symbol] = asset_id

        quotes = await asyncio.gather(
            *(self.price_in_usd(asset_id) for asset_id in priced.values())
        )
        price_map = dict(zip(priced.keys(), quotes))

        total = compute_vault_usd_value(vault, price_map)
        if not math.isfinite(total):
            raise InvalidArgumentError(
                f"Vault {vault.id} holdings are too large to value in USD"
            )
        logger.info("Vault %s valued at %.2f USD", vault.id, total)
        return VaultValuation(
            vault_id=vault.id,
            total_usd=total,
            prices={symbol: lookup_price(price_map, symbol) for symbol in vault.assets},
            threshold_usd=vault.thresholds_usd,
        )
