from __future__ import annotations

from .price_adapters import CoinGeckoPriceClient, PriceOracleClient

__all__ = ["CoinGeckoPriceClient", "PriceOracleClient"]
