from __future__ import annotations

SERVICE_NAME = "vault-ledger"

DEFAULT_PRICE_ENDPOINT = "https://api.coingecko.com/api/v3/simple/price"
PRICE_API_KEY_HEADER = "x-cg-demo-api-key"
QUOTE_CURRENCY = "usd"

# symbol -> CoinGecko asset id
DEFAULT_PRICE_IDS: dict[str, str] = {
    "ETH": "ethereum",
    "WETH": "weth",
    "BTC": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "SOL": "solana",
    "MATIC": "matic-network",
}

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4000

ROUTE_PREFIXES = ("/v1/vaults", "/vaults")
