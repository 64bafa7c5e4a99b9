"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_PRICE_ENDPOINT,
    DEFAULT_PRICE_IDS,
)

load_dotenv()

CONFIG_ENV_VAR = "VAULT_LEDGER_CONFIG"
SECRET_FIELDS = {"price_api_key"}


class TomlConfigSource(PydanticBaseSettingsSource):
    """Lowest-precedence source reading a TOML file.

    Accepts settings at the top level or under a ``[vault_ledger]`` table.
    """

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def _locate(self) -> Path | None:
        if self._path:
            return self._path if self._path.exists() else None
        local_config = Path("vault-ledger.toml")
        user_config = Path.home() / ".config" / "vault-ledger" / "config.toml"
        if local_config.exists():
            return local_config
        if user_config.exists():
            return user_config
        return None

    def __call__(self) -> dict[str, Any]:
        path = self._locate()
        if path is None:
            return {}

        with path.open("rb") as f:
            data = tomllib.load(f)
        body = data.get("vault_ledger", data)
        if not isinstance(body, dict):
            return {}

        for key in SECRET_FIELDS:
            if key in body:
                raise ValueError(
                    f"Security violation: '{key}' found in TOML config file. "
                    f"Secrets must only be provided via environment variables or CLI flags."
                )

        return body


class LedgerSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with VAULT_LEDGER_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- price oracle ---
    price_endpoint: str = DEFAULT_PRICE_ENDPOINT
    price_api_key: SecretStr | None = None
    price_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound (seconds) on a single price request.",
    )
    price_retries: int = Field(
        default=2,
        ge=0,
        description="Extra attempts the service layer makes when the price service is unavailable.",
    )
    price_retry_backoff: float = Field(
        default=0.5,
        ge=0,
        description="Base delay (seconds) of the exponential backoff between price retries.",
    )
    price_ids: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PRICE_IDS),
        description="Maps vault asset symbols to price-service asset ids.",
    )

    # --- http boundary ---
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)

    # --- on-chain mirror ---
    vault_rpc: str | None = None
    block_number: int | None = None

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="VAULT_LEDGER_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("price_api_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("price_ids", mode="after")
    @classmethod
    def normalize_price_ids(cls, v: dict[str, str]) -> dict[str, str]:
        """Symbols are matched upper-case; empty ids are dropped."""
        return {
            symbol.strip().upper(): asset_id.strip()
            for symbol, asset_id in v.items()
            if symbol.strip() and asset_id.strip()
        }

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get(CONFIG_ENV_VAR)
        cfg_path = Path(env_cfg) if env_cfg else None

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump()
        if self.price_api_key:
            data["price_api_key"] = "***redacted***"
        return data

    @property
    def vault_rpc_required(self) -> str:
        """Get vault_rpc, raising ValueError if not set."""
        if self.vault_rpc is None:
            raise ValueError("vault_rpc must be configured")
        return self.vault_rpc
