"""Identity-keyed vault storage."""

from __future__ import annotations

import threading
from typing import Callable, Protocol

from .domain import Vault
from .errors import DuplicateIdError
from .logger import get_logger

logger = get_logger(__name__)


class VaultStore(Protocol):
    """Port for vault storage.

    Implementations own every stored ``Vault``: reads return snapshots and the
    only write path after ``put`` is ``update``, which serializes writers per
    vault id.
    """

    def put(self, vault: Vault) -> None:
        """Insert a new vault, raising DuplicateIdError if the id exists."""

    def get(self, vault_id: str) -> Vault | None:
        """Return a snapshot of the vault, or None when absent."""

    def list(self) -> list[Vault]:
        """Return snapshots of all vaults in insertion order."""

    def update(self, vault_id: str, mutate: Callable[[Vault], None]) -> Vault | None:
        """Apply ``mutate`` to the stored vault and return a snapshot, or None when absent."""


class _Entry:
    __slots__ = ("vault", "lock")

    def __init__(self, vault: Vault):
        self.vault = vault
        self.lock = threading.Lock()


class InMemoryVaultStore:
    """Process-local ``VaultStore``.

    The registry lock guards the id map only; each vault carries its own lock,
    so writers to different vaults never contend.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._registry_lock = threading.Lock()

    def put(self, vault: Vault) -> None:
        with self._registry_lock:
            if vault.id in self._entries:
                raise DuplicateIdError(f"Vault {vault.id} already exists")
            self._entries[vault.id] = _Entry(vault.snapshot())
        logger.debug("Stored vault %s", vault.id)

    def _entry(self, vault_id: str) -> _Entry | None:
        with self._registry_lock:
            return self._entries.get(vault_id)

    def get(self, vault_id: str) -> Vault | None:
        entry = self._entry(vault_id)
        if entry is None:
            return None
        with entry.lock:
            return entry.vault.snapshot()

    def list(self) -> list[Vault]:
        with self._registry_lock:
            entries = list(self._entries.values())
        snapshots = []
        for entry in entries:
            with entry.lock:
                snapshots.append(entry.vault.snapshot())
        return snapshots

    def update(self, vault_id: str, mutate: Callable[[Vault], None]) -> Vault | None:
        entry = self._entry(vault_id)
        if entry is None:
            return None
        with entry.lock:
            mutate(entry.vault)
            return entry.vault.snapshot()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._entries)
