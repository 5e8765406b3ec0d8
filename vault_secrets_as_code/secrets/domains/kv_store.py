"""Vault KV v2 wrapper that only mutates entries it owns."""
import logging
from typing import Any, Dict, Optional

import hvac

from .errors import NotFoundError
from .models import MANAGED_BY_FIELD, KVMetadata
from .ownership import require_ownership
from .vault_client import normalize_mount, translate_errors

logger = logging.getLogger(__name__)


class ManagedKVStore:
    """
    KV v2 store scoped to one mount and tagged with a managed_by identity.

    Every mutation checks the entry's ``managed_by`` custom metadata first.
    Writes claim the key (metadata) before the data lands.
    """

    def __init__(self, client, mount_path: str, managed_by: str):
        self.client = client
        self.mount = normalize_mount(mount_path)
        self.managed_by = managed_by

    @property
    def _kv(self):
        return self.client.secrets.kv.v2

    def get_metadata(self, key: str) -> KVMetadata:
        """
        Read metadata for ``key``.

        Raises:
            NotFoundError: If the key has no metadata
            TransportError: On any other Vault failure
        """
        with translate_errors(f"read metadata for {key!r}"):
            try:
                response = self._kv.read_secret_metadata(path=key, mount_point=self.mount)
            except hvac.exceptions.InvalidPath as e:
                raise NotFoundError(key, "metadata") from e
        return KVMetadata.from_response((response or {}).get("data") or {})

    def overwrite_ownership_tag(self, key: str, metadata: Optional[KVMetadata] = None) -> None:
        """
        Set ``managed_by`` on ``key`` without checking the current owner.

        Other custom metadata fields are kept, as is the key's
        delete_version_after setting.

        Args:
            key: KV path relative to the mount
            metadata: Already-read metadata, to skip a second lookup
        """
        if metadata is None:
            try:
                metadata = self.get_metadata(key)
            except NotFoundError:
                metadata = KVMetadata()

        custom_metadata = dict(metadata.custom_metadata)
        custom_metadata[MANAGED_BY_FIELD] = self.managed_by

        options: Dict[str, Any] = {}
        if metadata.delete_version_after:
            options["delete_version_after"] = metadata.delete_version_after

        with translate_errors(f"write metadata for {key!r}"):
            self._kv.update_metadata(
                path=key,
                custom_metadata=custom_metadata,
                mount_point=self.mount,
                **options,
            )
        logger.info(f"Tagged {key!r} as managed_by {self.managed_by!r}")

    def put(self, key: str, values: Dict[str, Any]) -> None:
        """
        Write ``values`` as the current version of ``key``.

        A key without metadata is claimed first. An existing key must
        already carry this store's managed_by tag.

        Raises:
            NotManagedError: If the key exists and is not ours
            TransportError: On Vault failure
        """
        try:
            metadata = self.get_metadata(key)
        except NotFoundError:
            metadata = KVMetadata()
            logger.debug(f"{key!r} has no metadata, claiming it")
        else:
            require_ownership(key, metadata.managed_by, self.managed_by)

        self.overwrite_ownership_tag(key, metadata)

        with translate_errors(f"write secret {key!r}"):
            self._kv.create_or_update_secret(path=key, secret=values, mount_point=self.mount)
        logger.info(f"Wrote {len(values)} value(s) to {key!r}")

    def get(self, key: str) -> Dict[str, Any]:
        """
        Read the current version's data for ``key``.

        Raises:
            NotFoundError: If the key is absent or its current version is deleted
        """
        with translate_errors(f"read secret {key!r}"):
            try:
                response = self._kv.read_secret_version(
                    path=key,
                    mount_point=self.mount,
                    raise_on_deleted_version=True,
                )
            except hvac.exceptions.InvalidPath as e:
                raise NotFoundError(key) from e
        data = ((response or {}).get("data") or {}).get("data")
        if data is None:
            raise NotFoundError(key)
        return dict(data)

    def destroy(self, key: str) -> None:
        """
        Delete all metadata and every version of ``key``.

        Raises:
            NotFoundError: If the key has no metadata
            NotManagedError: If the key is untagged or tagged by someone else
        """
        metadata = self.get_metadata(key)
        require_ownership(key, metadata.managed_by, self.managed_by)

        with translate_errors(f"delete metadata for {key!r}"):
            self._kv.delete_metadata_and_all_versions(path=key, mount_point=self.mount)
        logger.info(f"Destroyed {key!r} and all of its versions")
