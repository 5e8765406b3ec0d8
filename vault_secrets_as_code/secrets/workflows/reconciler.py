"""Ownership-aware reconciliation of declared ciphertexts against Vault KV."""
import logging
from typing import Callable, Dict, Protocol

from ..domains.errors import SecretsAsCodeError
from ..domains.models import SecretRecord, coerce_plaintext

logger = logging.getLogger(__name__)


class SecretLifecycle(Protocol):
    """The five lifecycle events an orchestrator drives for one record."""

    def create_record(self, record: SecretRecord) -> SecretRecord: ...

    def read_record(self, record: SecretRecord) -> SecretRecord: ...

    def update_record(self, record: SecretRecord) -> SecretRecord: ...

    def destroy_record(self, record: SecretRecord) -> None: ...

    def import_record(self, path: str) -> SecretRecord: ...


def _for_key(key: str, call: Callable[[str], str], value: str) -> str:
    """Run one transit call, tagging any failure with the secret key."""
    try:
        return call(value)
    except SecretsAsCodeError as e:
        if e.key is None:
            e.key = key
        raise


class SecretReconciler(SecretLifecycle):
    """
    Keeps a KV path in sync with a map of transit ciphertexts.

    Holds no state between calls: the declared or cached ciphertexts come in
    as arguments, everything else lives in Vault.

    Args:
        crypto: Object with encrypt(str) -> str and decrypt(str) -> str
        store: Object with put/get/destroy/overwrite_ownership_tag by path
    """

    def __init__(self, crypto, store):
        self.crypto = crypto
        self.store = store

    def _decrypt_all(self, ciphertexts: Dict[str, str]) -> Dict[str, str]:
        return {
            key: _for_key(key, self.crypto.decrypt, ciphertext)
            for key, ciphertext in ciphertexts.items()
        }

    def create(self, path: str, declared: Dict[str, str]) -> Dict[str, str]:
        """
        Decrypt ``declared`` and write the plaintexts to ``path``.

        Nothing is written if any decryption fails.

        Returns:
            The declared ciphertexts, unchanged
        """
        plaintexts = self._decrypt_all(declared)
        self.store.put(path, plaintexts)
        logger.info(f"Applied {len(declared)} secret(s) to {path!r}")
        return dict(declared)

    def update(self, path: str, declared: Dict[str, str]) -> Dict[str, str]:
        """Replace everything at ``path``; same algorithm as create."""
        return self.create(path, declared)

    def read(self, path: str, cached: Dict[str, str]) -> Dict[str, str]:
        """
        Rebuild the ciphertext map from what is live at ``path``.

        Live values equal to the decrypted cache keep their cached
        ciphertext. New or drifted values are re-encrypted. Keys gone from
        the store are dropped.

        Raises:
            UnexpectedValueType: If a live value is not a string
        """
        cached_plaintexts = self._decrypt_all(cached)
        live = self.store.get(path)

        reconciled: Dict[str, str] = {}
        for key, raw_value in live.items():
            value = coerce_plaintext(key, raw_value)
            if key in cached_plaintexts and cached_plaintexts[key] == value:
                reconciled[key] = cached[key]
            else:
                logger.debug(f"{path!r}: {key!r} changed remotely, re-encrypting")
                reconciled[key] = _for_key(key, self.crypto.encrypt, value)

        dropped = set(cached) - set(live)
        if dropped:
            logger.debug(f"{path!r}: dropping keys gone from the store: {sorted(dropped)}")
        return reconciled

    def destroy(self, path: str) -> None:
        self.store.destroy(path)

    def import_(self, path: str) -> SecretRecord:
        """
        Claim an existing KV entry without touching its data.

        The returned record has no cached secrets, so the next read reports
        every live field as changed.
        """
        self.store.overwrite_ownership_tag(path)
        logger.info(f"Imported {path!r}")
        return SecretRecord(path=path)

    def create_record(self, record: SecretRecord) -> SecretRecord:
        return SecretRecord(record.path, self.create(record.path, record.encrypted_secrets))

    def read_record(self, record: SecretRecord) -> SecretRecord:
        return SecretRecord(record.path, self.read(record.path, record.encrypted_secrets))

    def update_record(self, record: SecretRecord) -> SecretRecord:
        return SecretRecord(record.path, self.update(record.path, record.encrypted_secrets))

    def destroy_record(self, record: SecretRecord) -> None:
        self.destroy(record.path)

    def import_record(self, path: str) -> SecretRecord:
        return self.import_(path)
