"""Shared fixtures: an in-memory Vault speaking the hvac transit and KV v2 API."""
import base64
import itertools
from pathlib import Path
from types import SimpleNamespace

import hvac
import pytest

from vault_secrets_as_code.secrets.domains import preferences
from vault_secrets_as_code.secrets.domains.kv_store import ManagedKVStore
from vault_secrets_as_code.secrets.domains.transit import TransitCrypto
from vault_secrets_as_code.secrets.workflows.reconciler import SecretReconciler

MANAGED_BY = "team-a"


class FakeTransit:
    """Transit engine whose ciphertexts embed a counter, so re-encryption is visible."""

    def __init__(self):
        self._counter = itertools.count(1)
        self.calls = []

    def encrypt_data(self, name, plaintext, mount_point="transit", **kwargs):
        self.calls.append(("encrypt", mount_point, name))
        base64.b64decode(plaintext, validate=True)
        return {"data": {"ciphertext": f"vault:v1:{next(self._counter)}:{plaintext}"}}

    def decrypt_data(self, name, ciphertext, mount_point="transit", **kwargs):
        self.calls.append(("decrypt", mount_point, name))
        parts = ciphertext.split(":", 3)
        if len(parts) != 4 or parts[0] != "vault":
            raise hvac.exceptions.InvalidRequest("invalid ciphertext")
        return {"data": {"plaintext": parts[3]}}

    def count(self, operation):
        return sum(1 for call in self.calls if call[0] == operation)


class FakeKVv2:
    """KV v2 engine keeping metadata and version lists per (mount, path)."""

    def __init__(self):
        self.metadata = {}
        self.versions = {}
        self.calls = []

    def read_secret_metadata(self, path, mount_point="secret"):
        self.calls.append(("read_metadata", path))
        meta = self.metadata.get((mount_point, path))
        if meta is None:
            raise hvac.exceptions.InvalidPath()
        versions = self.versions.get((mount_point, path), [])
        return {"data": {
            "custom_metadata": dict(meta["custom_metadata"]) or None,
            "versions": {str(i): {} for i in range(1, len(versions) + 1)},
            "current_version": len(versions),
            "delete_version_after": meta["delete_version_after"],
        }}

    def update_metadata(self, path, max_versions=None, cas_required=None,
                        delete_version_after="0s", mount_point="secret", custom_metadata=None):
        self.calls.append(("update_metadata", path))
        self.metadata[(mount_point, path)] = {
            "custom_metadata": dict(custom_metadata or {}),
            "delete_version_after": delete_version_after,
        }

    def create_or_update_secret(self, path, secret, cas=None, mount_point="secret"):
        self.calls.append(("write", path))
        self.metadata.setdefault((mount_point, path), {"custom_metadata": {}, "delete_version_after": "0s"})
        self.versions.setdefault((mount_point, path), []).append(dict(secret))

    def read_secret_version(self, path, version=None, mount_point="secret", raise_on_deleted_version=None):
        self.calls.append(("read", path))
        versions = self.versions.get((mount_point, path))
        if not versions:
            raise hvac.exceptions.InvalidPath()
        return {"data": {"data": dict(versions[-1]), "metadata": {"version": len(versions)}}}

    def delete_metadata_and_all_versions(self, path, mount_point="secret"):
        self.calls.append(("delete_metadata", path))
        self.metadata.pop((mount_point, path), None)
        self.versions.pop((mount_point, path), None)

    # Test helpers, not part of the hvac API

    def seed(self, path, data=None, custom_metadata=None, mount_point="secret"):
        """Create an entry as some other tool would, bypassing ownership."""
        self.metadata[(mount_point, path)] = {
            "custom_metadata": dict(custom_metadata or {}),
            "delete_version_after": "0s",
        }
        if data is not None:
            self.versions.setdefault((mount_point, path), []).append(dict(data))

    def custom_metadata(self, path, mount_point="secret"):
        return self.metadata[(mount_point, path)]["custom_metadata"]

    def current(self, path, mount_point="secret"):
        return self.versions[(mount_point, path)][-1]


class FakeVaultClient:
    def __init__(self):
        self.secrets = SimpleNamespace(
            transit=FakeTransit(),
            kv=SimpleNamespace(v2=FakeKVv2()),
        )

    @property
    def transit(self):
        return self.secrets.transit

    @property
    def kv(self):
        return self.secrets.kv.v2


def ciphertext_of(plaintext):
    """A ciphertext FakeTransit will decrypt to ``plaintext``."""
    return "vault:v1:0:" + base64.b64encode(plaintext.encode("utf-8")).decode("ascii")


@pytest.fixture
def vault():
    return FakeVaultClient()


@pytest.fixture
def crypto(vault):
    return TransitCrypto(vault, "transit/", "secrets-as-code")


@pytest.fixture
def store(vault):
    return ManagedKVStore(vault, "secret/", MANAGED_BY)


@pytest.fixture
def reconciler(crypto, store):
    return SecretReconciler(crypto, store)


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("VAULT_TOKEN", raising=False)

    fake_app_dir = fake_home / ".config" / "vault-secrets-as-code"
    monkeypatch.setattr(preferences, "APP_DIR", fake_app_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_app_dir / "preferences.json")

    return fake_home
