"""Workflows that drive the reconciler from configuration and the state file."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..domains.config_loader import default_state_path, load_config
from ..domains.errors import NotFoundError
from ..domains.kv_store import ManagedKVStore
from ..domains.models import SecretRecord, Settings
from ..domains.transit import TransitCrypto
from ..domains.vault_client import VaultClientFactory
from .reconciler import SecretReconciler
from .state import StateFile

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of a refresh: the new record plus which keys moved."""
    record: SecretRecord
    added: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def drifted(self) -> bool:
        return bool(self.added or self.changed or self.removed)


def build_reconciler(settings: Settings) -> SecretReconciler:
    """Wire transit and KV clients from settings into a reconciler."""
    transit_client = VaultClientFactory(settings.transit_vault_config, label="transit").client
    kv_client = VaultClientFactory(settings.kv_vault_config, label="kv").client

    crypto = TransitCrypto(transit_client, settings.transit_path, settings.transit_key)
    store = ManagedKVStore(kv_client, settings.kv_path, settings.managed_by)
    return SecretReconciler(crypto, store)


def open_state(settings: Settings) -> StateFile:
    return StateFile(Path(settings.state_path) if settings.state_path else default_state_path())


class Operations:
    """
    Record-level operations backed by a reconciler and a state file.

    Settings are loaded on first use so commands that never touch Vault
    (help, config) work without a config file.
    """

    def __init__(self, reconciler: Optional[SecretReconciler] = None, state: Optional[StateFile] = None):
        self._reconciler = reconciler
        self._state = state
        self._settings: Optional[Settings] = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_config()
        return self._settings

    @property
    def reconciler(self) -> SecretReconciler:
        if self._reconciler is None:
            self._reconciler = build_reconciler(self.settings)
        return self._reconciler

    @property
    def state(self) -> StateFile:
        if self._state is None:
            self._state = open_state(self.settings)
        return self._state

    def apply(self, path: str, declared: Dict[str, str]) -> SecretRecord:
        """Create the record if the state has none for ``path``, update it otherwise."""
        record = SecretRecord(path, dict(declared))
        if self.state.get_record(path) is None:
            logger.info(f"Creating {path!r}")
            stored = self.reconciler.create_record(record)
        else:
            logger.info(f"Updating {path!r}")
            stored = self.reconciler.update_record(record)
        self.state.put_record(stored)
        return stored

    def refresh(self, path: str) -> RefreshResult:
        """
        Reconcile the stored record for ``path`` against live KV data.

        Raises:
            NotFoundError: If the state file has no record for ``path``
        """
        previous = self.state.get_record(path)
        if previous is None:
            raise NotFoundError(path, "state record")

        current = self.reconciler.read_record(previous)
        self.state.put_record(current)

        before, after = previous.encrypted_secrets, current.encrypted_secrets
        return RefreshResult(
            record=current,
            added=sorted(set(after) - set(before)),
            changed=sorted(k for k in after if k in before and after[k] != before[k]),
            removed=sorted(set(before) - set(after)),
        )

    def destroy(self, path: str) -> None:
        self.reconciler.destroy_record(self.state.get_record(path) or SecretRecord(path))
        self.state.remove_record(path)

    def import_(self, path: str) -> SecretRecord:
        record = self.reconciler.import_record(path)
        self.state.put_record(record)
        return record

    def show(self, path: str) -> Optional[SecretRecord]:
        return self.state.get_record(path)

    def encrypt(self, plaintext: str) -> str:
        return self.reconciler.crypto.encrypt(plaintext)

    def decrypt(self, ciphertext: str) -> str:
        return self.reconciler.crypto.decrypt(ciphertext)
