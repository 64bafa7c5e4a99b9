from __future__ import annotations

from .base import PriceOracleClient
from .coingecko import CoinGeckoPriceClient

__all__ = ["CoinGeckoPriceClient", "PriceOracleClient"]
