"""Request boundary: routes raw requests to VaultAccounting and maps errors to statuses."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any
from urllib.parse import unquote

import backoff

from .accounting import VaultAccounting
from .constants import ROUTE_PREFIXES, SERVICE_NAME
from .domain import VaultValuation
from .errors import (
    InvalidArgumentError,
    NotFoundError,
    UpstreamUnavailableError,
    VaultLedgerError,
)
from .logger import get_logger
from .settings import LedgerSettings

logger = get_logger(__name__)


@dataclass(frozen=True)
class Response:
    status: int
    body: Any


def error_response(exc: VaultLedgerError) -> Response:
    return Response(exc.status, {"error": exc.message, "kind": exc.kind})


def _parse_body(raw: bytes | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidArgumentError(f"Malformed JSON body: {e}") from e
    if not isinstance(body, dict):
        raise InvalidArgumentError("Request body must be a JSON object")
    return body


def _split_route(path: str) -> list[str] | None:
    """Return percent-decoded segments below the vaults mount, or None for foreign paths."""
    path = path.split("?", 1)[0].rstrip("/")
    for prefix in ROUTE_PREFIXES:
        if path == prefix:
            return []
        if path.startswith(prefix + "/"):
            return [unquote(s) for s in path[len(prefix) + 1 :].split("/")]
    return None


class VaultService:
    """Exposes vault operations over a method/path/body request surface.

    Every ledger error keeps its kind on the way out; anything else is logged
    and reported as 500.
    """

    def __init__(self, accounting: VaultAccounting, settings: LedgerSettings):
        self.accounting = accounting
        self.settings = settings

    def handle(self, method: str, path: str, raw_body: bytes | None = None) -> Response:
        try:
            return self._dispatch(method.upper(), path, raw_body)
        except VaultLedgerError as exc:
            if exc.status >= 500:
                logger.error("%s %s failed: %s", method, path, exc)
            else:
                logger.debug("%s %s rejected: %s", method, path, exc)
            return error_response(exc)
        except Exception:
            logger.exception("Unhandled error serving %s %s", method, path)
            return Response(500, {"error": "Internal server error", "kind": "internal"})

    def _dispatch(self, method: str, path: str, raw_body: bytes | None) -> Response:
        if method == "GET" and path.split("?", 1)[0] in ("", "/"):
            return Response(200, {"service": SERVICE_NAME})

        segments = _split_route(path)
        if segments is None:
            return Response(404, {"error": f"No route for {path}", "kind": "not_found"})

        match (method, segments):
            case ("POST", []):
                body = _parse_body(raw_body)
                vault = self.accounting.create_vault(
                    body.get("owner"), body.get("thresholdsUSD")
                )
                return Response(201, vault.to_dict())
            case ("GET", []):
                return Response(200, [v.to_dict() for v in self.accounting.list_vaults()])
            case ("GET", [vault_id]):
                vault = self.accounting.get_vault(vault_id)
                if vault is None:
                    raise NotFoundError(f"Vault {vault_id} not found")
                return Response(200, vault.to_dict())
            case ("POST", [vault_id, "reward-address"]):
                body = _parse_body(raw_body)
                vault = self.accounting.add_reward_address(vault_id, body.get("address"))
                return Response(200, vault.to_dict())
            case ("PUT", [vault_id, "assets", symbol]):
                body = _parse_body(raw_body)
                vault = self.accounting.record_asset_balance(
                    vault_id, symbol, body.get("amount")
                )
                return Response(200, vault.to_dict())
            case ("PUT", [vault_id, "threshold"]):
                body = _parse_body(raw_body)
                vault = self.accounting.update_threshold(
                    vault_id, body.get("thresholdsUSD")
                )
                return Response(200, vault.to_dict())
            case ("GET", [vault_id, "value"]):
                valuation = asyncio.run(self.value_vault(vault_id))
                return Response(200, valuation.to_dict())

        return Response(
            404, {"error": f"No route for {method} {path}", "kind": "not_found"}
        )

    async def value_vault(self, vault_id: str) -> VaultValuation:
        """Value a vault, retrying while the price service is unavailable."""
        s = self.settings

        def _on_backoff(details: Any) -> None:
            logger.warning(
                "Price service unavailable (attempt %d of %d): %s",
                details["tries"],
                s.price_retries + 1,
                details.get("exception"),
            )

        def _on_giveup(details: Any) -> None:
            logger.error(
                "Valuation of vault %s failed after %d attempts: %s",
                vault_id,
                details["tries"],
                details.get("exception"),
            )

        @backoff.on_exception(
            backoff.expo,
            UpstreamUnavailableError,
            max_tries=s.price_retries + 1,
            factor=s.price_retry_backoff,
            jitter=backoff.full_jitter,
            on_backoff=_on_backoff,
            on_giveup=_on_giveup,
        )
        async def _value_with_retry() -> VaultValuation:
            return await self.accounting.value_vault(vault_id, s.price_ids)

        return await _value_with_retry()
