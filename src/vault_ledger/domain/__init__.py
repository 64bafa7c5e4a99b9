"""Domain models for the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Vault:
    """One owner's observed asset balances, reward addresses and USD threshold.

    Instances handed out by the store are snapshots; mutate vaults only through
    ``VaultAccounting``.
    """

    id: str
    owner: str
    thresholds_usd: float
    assets: dict[str, float] = field(default_factory=dict)
    reward_addresses: list[str] = field(default_factory=list)

    def snapshot(self) -> Vault:
        """Return an independent copy of this vault."""
        return Vault(
            id=self.id,
            owner=self.owner,
            thresholds_usd=self.thresholds_usd,
            assets=dict(self.assets),
            reward_addresses=list(self.reward_addresses),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "thresholdsUSD": self.thresholds_usd,
            "assets": dict(self.assets),
            "rewardAddresses": list(self.reward_addresses),
        }


@dataclass(frozen=True)
class VaultValuation:
    """USD valuation of a vault against a set of prices."""

    vault_id: str
    total_usd: float
    prices: dict[str, float]
    threshold_usd: float

    @property
    def threshold_reached(self) -> bool:
        return self.total_usd >= self.threshold_usd

    def to_dict(self) -> dict[str, Any]:
        return {
            "vaultId": self.vault_id,
            "totalUSD": self.total_usd,
            "prices": dict(self.prices),
            "thresholdsUSD": self.threshold_usd,
            "thresholdReached": self.threshold_reached,
        }
