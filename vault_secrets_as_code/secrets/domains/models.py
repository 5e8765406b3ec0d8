"""Domain models for secret reconciliation."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import UnexpectedValueType

MANAGED_BY_FIELD = "managed_by"


@dataclass
class SecretRecord:
    """Persisted representation of one managed KV path.

    ``path`` never changes for a record; declaring a different path means a
    different record.
    """
    path: str
    encrypted_secrets: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "encrypted_secrets": dict(self.encrypted_secrets)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecretRecord":
        return cls(
            path=data["path"],
            encrypted_secrets=dict(data.get("encrypted_secrets") or {}),
        )


@dataclass
class KVMetadata:
    """Subset of KV v2 metadata the store cares about."""
    custom_metadata: Dict[str, Any] = field(default_factory=dict)
    versions: Dict[str, Any] = field(default_factory=dict)
    current_version: int = 0
    delete_version_after: Optional[str] = None

    @property
    def managed_by(self) -> Optional[str]:
        return self.custom_metadata.get(MANAGED_BY_FIELD)

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "KVMetadata":
        """Build from the ``data`` block of a read-metadata response."""
        return cls(
            custom_metadata=dict(data.get("custom_metadata") or {}),
            versions=dict(data.get("versions") or {}),
            current_version=data.get("current_version") or 0,
            delete_version_after=data.get("delete_version_after"),
        )


@dataclass
class AuthLoginCert:
    """TLS certificate login against a Vault cert auth mount."""
    mount: str
    name: str
    cert_file: str
    key_file: str


@dataclass
class VaultConfig:
    """Connection settings for one Vault server."""
    endpoint: str
    token: Optional[str] = None
    ca_cert_file: Optional[str] = None
    timeout: int = 30
    auth_login_cert: Optional[AuthLoginCert] = None


@dataclass
class Settings:
    """Everything needed to build a reconciler."""
    transit_vault_config: VaultConfig
    kv_vault_config: VaultConfig
    transit_path: str
    transit_key: str
    kv_path: str
    managed_by: str
    state_path: Optional[str] = None


def coerce_plaintext(key: str, value: Any) -> str:
    """Return a live KV value as a plaintext string.

    Raises:
        UnexpectedValueType: If the value is anything but a ``str``.
    """
    if not isinstance(value, str):
        raise UnexpectedValueType(key, value)
    return value
