from __future__ import annotations

from abc import ABC, abstractmethod


class PriceOracleClient(ABC):
    """Abstract base class for USD price sources."""

    @property
    @abstractmethod
    def adapter_name(self) -> str:
        """Return the name of this adapter."""
        ...

    @abstractmethod
    async def fetch_price(self, asset_id: str) -> float:
        """Return the current USD price of ``asset_id``.

        A well-formed answer that does not quote the asset yields ``0.0``.

        Raises:
            UpstreamUnavailableError: If the service cannot be reached, times
                out, or answers with a malformed payload.
        """
        ...
