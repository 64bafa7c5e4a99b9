from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError

from vault_ledger.errors import (
    InvalidArgumentError,
    NotFoundError,
    UpstreamUnavailableError,
)
from vault_ledger.onchain import TreasuryVaultMirror
from vault_ledger.settings import LedgerSettings

VAULT_ADDRESS = Web3.to_checksum_address("0x" + "11" * 20)
TOKEN_ADDRESS = Web3.to_checksum_address("0x" + "22" * 20)
OWNER = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20


@pytest.fixture
def contracts():
    vault_contract = MagicMock(name="TreasuryVault")
    vault_contract.functions.token.return_value.call.return_value = TOKEN_ADDRESS
    vault_contract.functions.balances.return_value.call.return_value = 2_500_000

    token_contract = MagicMock(name="ERC20")
    token_contract.functions.symbol.return_value.call.return_value = "USDC"
    token_contract.functions.decimals.return_value.call.return_value = 6

    return vault_contract, token_contract


@pytest.fixture
def mirror(accounting, contracts):
    vault_contract, token_contract = contracts
    w3 = MagicMock(name="Web3")
    w3.eth.contract.side_effect = lambda address, abi: (
        vault_contract if address == VAULT_ADDRESS else token_contract
    )
    return TreasuryVaultMirror(accounting, w3, VAULT_ADDRESS, block_identifier=123)


@pytest.mark.asyncio
async def test_token_info_is_read_once(mirror, contracts):
    _, token_contract = contracts

    first = await mirror.token_info()
    second = await mirror.token_info()

    assert first is second
    assert first.symbol == "USDC"
    assert first.decimals == 6
    assert token_contract.functions.symbol.return_value.call.call_count == 1


@pytest.mark.asyncio
async def test_read_balance_scales_by_decimals(mirror, contracts):
    vault_contract, _ = contracts

    balance = await mirror.read_balance(OWNER)

    assert balance == Decimal("2.5")
    vault_contract.functions.balances.assert_called_with(
        Web3.to_checksum_address(OWNER)
    )
    vault_contract.functions.balances.return_value.call.assert_called_with(
        block_identifier=123
    )


@pytest.mark.asyncio
async def test_mirror_balance_defaults_to_owner_and_is_idempotent(accounting, mirror):
    vault = accounting.create_vault(OWNER, 100)

    first = await mirror.mirror_balance(vault.id)
    second = await mirror.mirror_balance(vault.id)

    assert first.assets == {"USDC": 2.5}
    assert second == first


@pytest.mark.asyncio
async def test_mirror_balance_missing_vault(mirror):
    with pytest.raises(NotFoundError):
        await mirror.mirror_balance("missing")


@pytest.mark.asyncio
async def test_mirror_balance_rejects_non_evm_owner(accounting, mirror):
    vault = accounting.create_vault("alice", 100)

    with pytest.raises(InvalidArgumentError):
        await mirror.mirror_balance(vault.id)


@pytest.mark.asyncio
async def test_contract_failure_is_upstream_unavailable(accounting, mirror, contracts):
    vault_contract, _ = contracts
    vault_contract.functions.balances.return_value.call.side_effect = (
        ContractLogicError("execution reverted")
    )
    vault = accounting.create_vault(OWNER, 100)

    with pytest.raises(UpstreamUnavailableError):
        await mirror.mirror_balance(vault.id)

    assert accounting.get_vault(vault.id).assets == {}


@pytest.mark.asyncio
async def test_mirror_deposit_events_only_reacts_to_owner(accounting, mirror):
    vault = accounting.create_vault(OWNER, 100)
    foreign = [{"event": "Deposit", "args": {"from": OTHER, "amount": 5}}]

    assert await mirror.mirror_deposit_events(vault.id, foreign) is None
    assert accounting.get_vault(vault.id).assets == {}

    events = foreign + [
        {"event": "Transfer", "args": {"from": OWNER}},
        {"event": "Deposit", "args": {"from": Web3.to_checksum_address(OWNER), "amount": 1}},
        {"event": "Deposit", "args": {"from": OWNER, "amount": 1}},
    ]
    updated = await mirror.mirror_deposit_events(vault.id, events)

    assert updated is not None
    assert updated.assets == {"USDC": 2.5}

    replayed = await mirror.mirror_deposit_events(vault.id, events)
    assert replayed == updated


def test_from_settings_requires_rpc(accounting):
    with pytest.raises(ValueError, match="vault_rpc"):
        TreasuryVaultMirror.from_settings(LedgerSettings(), accounting, VAULT_ADDRESS)


def test_from_settings_uses_block_number(accounting):
    settings = LedgerSettings(vault_rpc="http://127.0.0.1:8545", block_number=42)

    mirror = TreasuryVaultMirror.from_settings(settings, accounting, VAULT_ADDRESS)

    assert mirror.block_identifier == 42
    assert mirror.contract.address == VAULT_ADDRESS
