from __future__ import annotations

import pytest

from vault_ledger.accounting import VaultAccounting
from vault_ledger.settings import LedgerSettings
from vault_ledger.store import InMemoryVaultStore

from tests.fakes import FakePriceClient


@pytest.fixture
def settings():
    return LedgerSettings(
        price_endpoint="https://prices.example/simple/price",
        price_timeout=1.0,
        price_retries=2,
        price_retry_backoff=0,
        port=0,
    )


@pytest.fixture
def store():
    return InMemoryVaultStore()


@pytest.fixture
def price_client():
    return FakePriceClient({"ethereum": 1800.0, "bitcoin": 60000.0})


@pytest.fixture
def accounting(store, price_client):
    return VaultAccounting(store, price_client)
