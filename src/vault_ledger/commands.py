"""Typed commands: validated caller input for every vault mutation.

Each mutating operation builds its command first, so malformed input is
rejected as ``InvalidArgumentError`` before the store is touched.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
)

from .errors import InvalidArgumentError


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[StrictStr, AfterValidator(_not_blank)]
NonNegativeNumber = Annotated[float, Field(strict=True, ge=0, allow_inf_nan=False)]


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class CreateVault(Command):
    owner: NonBlankStr
    thresholds_usd: NonNegativeNumber = Field(alias="thresholdsUSD")


class AddRewardAddress(Command):
    vault_id: StrictStr
    address: NonBlankStr


class RecordAssetBalance(Command):
    vault_id: StrictStr
    symbol: NonBlankStr
    amount: NonNegativeNumber


class UpdateThreshold(Command):
    vault_id: StrictStr
    thresholds_usd: NonNegativeNumber = Field(alias="thresholdsUSD")


C = TypeVar("C", bound=Command)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "input"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def parse_command(command_cls: type[C], **fields: Any) -> C:
    """Validate ``fields`` into ``command_cls``.

    Raises:
        InvalidArgumentError: If any field is missing or malformed.
    """
    try:
        return command_cls.model_validate(fields)
    except ValidationError as exc:
        raise InvalidArgumentError(_describe(exc)) from exc
