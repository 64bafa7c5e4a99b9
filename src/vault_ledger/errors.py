"""Error taxonomy shared by the accounting core and its boundaries."""

from __future__ import annotations


class VaultLedgerError(Exception):
    """Base class for every error the ledger raises on purpose.

    ``kind`` is a stable identifier the boundary layer exposes to callers,
    ``status`` the HTTP status it maps to.
    """

    kind: str = "internal"
    status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgumentError(VaultLedgerError):
    """Raised when caller input is missing or malformed."""

    kind = "invalid_argument"
    status = 400


class NotFoundError(VaultLedgerError):
    """Raised when a referenced vault does not exist."""

    kind = "not_found"
    status = 404


class DuplicateIdError(VaultLedgerError):
    """Raised when a vault id is already present in the store."""

    kind = "duplicate_id"
    status = 409


class UpstreamUnavailableError(VaultLedgerError):
    """Raised when the price service cannot be reached or answers garbage."""

    kind = "upstream_unavailable"
    status = 502
