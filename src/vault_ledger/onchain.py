"""Off-chain mirror of the on-chain TreasuryVault contract.

The contract tracks one token per vault and a raw ``uint256`` balance per
depositor, emitting ``Deposit(from, amount)``. The mirror reads the current
balance of a depositor and records it as an observed snapshot, so replayed
events only ever re-record the same value.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

import requests
from eth_typing import URI
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from .abi import load_erc20_abi, load_treasury_vault_abi
from .accounting import VaultAccounting
from .domain import Vault
from .errors import InvalidArgumentError, NotFoundError, UpstreamUnavailableError
from .settings import LedgerSettings

logger = logging.getLogger(__name__)

CHAIN_ERRORS = (
    BadFunctionCallOutput,
    ContractLogicError,
    requests.exceptions.RequestException,
)


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    decimals: int


def _checksum(address: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except ValueError as e:
        raise InvalidArgumentError(f"Not an EVM address: {address!r}") from e


class TreasuryVaultMirror:
    """Reads depositor balances from a TreasuryVault and records them in the ledger."""

    def __init__(
        self,
        accounting: VaultAccounting,
        w3: Web3,
        vault_address: str,
        *,
        block_identifier: int | str = "latest",
    ):
        self.accounting = accounting
        self.w3 = w3
        self.block_identifier = block_identifier
        self.contract = w3.eth.contract(
            address=_checksum(vault_address), abi=load_treasury_vault_abi()
        )
        self._token: TokenInfo | None = None

    @classmethod
    def from_settings(
        cls, settings: LedgerSettings, accounting: VaultAccounting, vault_address: str
    ) -> TreasuryVaultMirror:
        w3 = Web3(
            Web3.HTTPProvider(
                URI(settings.vault_rpc_required), request_kwargs={"timeout": 15}
            )
        )
        block = settings.block_number if settings.block_number is not None else "latest"
        return cls(accounting, w3, vault_address, block_identifier=block)

    async def _call(self, fn: Any) -> Any:
        try:
            return await asyncio.to_thread(
                fn.call, block_identifier=self.block_identifier
            )
        except CHAIN_ERRORS as e:
            raise UpstreamUnavailableError(f"Contract call failed: {e}") from e

    async def token_info(self) -> TokenInfo:
        if self._token is None:
            token_address = await self._call(self.contract.functions.token())
            token = self.w3.eth.contract(
                address=_checksum(token_address), abi=load_erc20_abi()
            )
            symbol = await self._call(token.functions.symbol())
            decimals = await self._call(token.functions.decimals())
            self._token = TokenInfo(
                address=token_address, symbol=str(symbol), decimals=int(decimals)
            )
            logger.debug(
                "Vault token %s (%s, %d decimals)", symbol, token_address, decimals
            )
        return self._token

    async def read_balance(self, depositor: str) -> Decimal:
        """Return the depositor's balance in whole token units."""
        token = await self.token_info()
        raw = await self._call(self.contract.functions.balances(_checksum(depositor)))
        return Decimal(int(raw)) / (Decimal(10) ** token.decimals)

    async def mirror_balance(self, vault_id: str, depositor: str | None = None) -> Vault:
        """Record the on-chain balance of ``depositor`` (default: the vault owner)."""
        if depositor is None:
            vault = self.accounting.get_vault(vault_id)
            if vault is None:
                raise NotFoundError(f"Vault {vault_id} not found")
            depositor = vault.owner

        token = await self.token_info()
        amount = await self.read_balance(depositor)
        logger.info(
            "Mirroring %s %s for depositor %s into vault %s",
            amount,
            token.symbol,
            depositor,
            vault_id,
        )
        return self.accounting.record_asset_balance(vault_id, token.symbol, float(amount))

    async def mirror_deposit_events(
        self, vault_id: str, events: Iterable[Any]
    ) -> Vault | None:
        """Refresh the owner's balance if any ``Deposit`` event came from the owner.

        Event amounts are ignored: the contract's current balance is the
        snapshot that gets recorded. Returns the updated vault, or None when no
        event concerned the owner.
        """
        vault = self.accounting.get_vault(vault_id)
        if vault is None:
            raise NotFoundError(f"Vault {vault_id} not found")

        owner = vault.owner.lower()
        relevant = [
            event
            for event in events
            if event.get("event") == "Deposit"
            and str(event["args"]["from"]).lower() == owner
        ]
        if not relevant:
            logger.debug("No owner deposits for vault %s", vault_id)
            return None
        return await self.mirror_balance(vault_id, vault.owner)
