from __future__ import annotations

import asyncio
import json
import logging
import math

import requests

from ...constants import PRICE_API_KEY_HEADER, QUOTE_CURRENCY
from ...errors import UpstreamUnavailableError
from ...settings import LedgerSettings
from .base import PriceOracleClient

logger = logging.getLogger(__name__)


class CoinGeckoPriceClient(PriceOracleClient):
    """Adapter for the CoinGecko ``simple/price`` endpoint.

    Request: ``GET <endpoint>?ids=<id>&vs_currencies=usd``.
    Response: ``{"<id>": {"usd": <number>}}``. An id missing from the response
    is a valid "no quote" and maps to ``0.0``; anything that prevents reading
    a response at all raises ``UpstreamUnavailableError``.
    """

    def __init__(self, config: LedgerSettings):
        self.endpoint = config.price_endpoint
        self.timeout = config.price_timeout
        self._headers: dict[str, str] = {}
        if config.price_api_key is not None:
            self._headers[PRICE_API_KEY_HEADER] = (
                config.price_api_key.get_secret_value()
            )

    @property
    def adapter_name(self) -> str:
        return "coingecko"

    def _get(self, asset_id: str) -> requests.Response:
        return requests.get(
            self.endpoint,
            params={"ids": asset_id, "vs_currencies": QUOTE_CURRENCY},
            headers=self._headers,
            timeout=self.timeout,
        )

    async def fetch_price(self, asset_id: str) -> float:
        logger.debug("Requesting %s price for %s", QUOTE_CURRENCY, asset_id)
        try:
            async with asyncio.timeout(self.timeout):
                response = await asyncio.to_thread(self._get, asset_id)
            response.raise_for_status()
            data = response.json()
        except TimeoutError as e:
            raise UpstreamUnavailableError(
                f"Price request for {asset_id} timed out after {self.timeout}s"
            ) from e
        except json.JSONDecodeError as e:
            raise UpstreamUnavailableError(
                f"Invalid JSON from price service for {asset_id}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise UpstreamUnavailableError(
                f"Price service unreachable for {asset_id}: {e}"
            ) from e

        return self._extract_price(asset_id, data)

    def _extract_price(self, asset_id: str, data: object) -> float:
        if not isinstance(data, dict):
            raise UpstreamUnavailableError(f"Invalid response structure: {data!r}")

        quote = data.get(asset_id)
        if quote is None:
            logger.info("Price service has no quote for %s", asset_id)
            return 0.0
        if not isinstance(quote, dict):
            raise UpstreamUnavailableError(
                f"Invalid quote for {asset_id}: {quote!r}"
            )

        price = quote.get(QUOTE_CURRENCY)
        if price is None:
            logger.info("Price service has no %s quote for %s", QUOTE_CURRENCY, asset_id)
            return 0.0
        if (
            isinstance(price, bool)
            or not isinstance(price, (int, float))
            or not math.isfinite(price)
            or price < 0
        ):
            raise UpstreamUnavailableError(
                f"Invalid price value for {asset_id}: {price!r}"
            )

        return float(price)
