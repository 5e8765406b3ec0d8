"""ManagedKVStore ownership guard and write ordering."""
from unittest import mock

import hvac
import pytest
import requests

from conftest import MANAGED_BY
from vault_secrets_as_code.secrets.domains.errors import NotFoundError, NotManagedError, TransportError
from vault_secrets_as_code.secrets.domains.kv_store import ManagedKVStore
from vault_secrets_as_code.secrets.domains.ownership import check_ownership


class TestCheckOwnership:

    def test_matching_tag_is_allowed(self):
        assert check_ownership("team-a", "team-a").allowed

    def test_missing_tag_is_denied(self):
        decision = check_ownership(None, "team-a")
        assert not decision.allowed
        assert "no managed_by" in decision.reason

    def test_foreign_tag_is_denied_with_owner(self):
        decision = check_ownership("team-b", "team-a")
        assert not decision.allowed
        assert "team-b" in decision.reason

    def test_comparison_is_exact(self):
        assert not check_ownership("Team-A", "team-a").allowed
        assert not check_ownership("", "team-a").allowed


class TestPut:

    def test_fresh_key_is_claimed_then_written(self, store, vault):
        store.put("app/db", {"user": "svc"})

        assert vault.kv.custom_metadata("app/db") == {"managed_by": MANAGED_BY}
        assert vault.kv.current("app/db") == {"user": "svc"}
        writes = [call for call in vault.kv.calls if call[0] in ("update_metadata", "write")]
        assert writes == [("update_metadata", "app/db"), ("write", "app/db")]
        assert vault.kv.calls.count(("read_metadata", "app/db")) == 1

    def test_untagged_existing_key_is_refused(self, store, vault):
        vault.kv.seed("app/db", {"user": "other"})

        with pytest.raises(NotManagedError) as exc_info:
            store.put("app/db", {"user": "svc"})

        assert exc_info.value.key == "app/db"
        assert exc_info.value.owner is None
        assert exc_info.value.reason == "entry has no managed_by tag"
        assert "no managed_by tag" in str(exc_info.value)
        assert vault.kv.current("app/db") == {"user": "other"}

    def test_foreign_key_is_refused_with_owner(self, store, vault):
        vault.kv.seed("app/db", {"user": "other"}, {"managed_by": "team-b"})

        with pytest.raises(NotManagedError) as exc_info:
            store.put("app/db", {"user": "svc"})

        assert exc_info.value.owner == "team-b"
        assert "team-b" in str(exc_info.value)
        assert vault.kv.custom_metadata("app/db") == {"managed_by": "team-b"}

    def test_owned_key_is_overwritten(self, store, vault):
        vault.kv.seed("app/db", {"user": "old"}, {"managed_by": MANAGED_BY})

        store.put("app/db", {"user": "new"})

        assert vault.kv.current("app/db") == {"user": "new"}
        assert vault.kv.calls.count(("read_metadata", "app/db")) == 1

    def test_metadata_lookup_failure_propagates(self):
        client = mock.MagicMock()
        client.secrets.kv.v2.read_secret_metadata.side_effect = hvac.exceptions.Forbidden("permission denied")
        store = ManagedKVStore(client, "secret", MANAGED_BY)

        with pytest.raises(TransportError) as exc_info:
            store.put("app/db", {"user": "svc"})

        assert isinstance(exc_info.value.__cause__, hvac.exceptions.Forbidden)
        client.secrets.kv.v2.create_or_update_secret.assert_not_called()

    def test_mount_path_is_normalized(self):
        client = mock.MagicMock()
        client.secrets.kv.v2.read_secret_metadata.side_effect = hvac.exceptions.InvalidPath()
        store = ManagedKVStore(client, "/kv/", MANAGED_BY)

        store.put("app/db", {"user": "svc"})

        client.secrets.kv.v2.create_or_update_secret.assert_called_once_with(
            path="app/db", secret={"user": "svc"}, mount_point="kv"
        )


class TestOwnershipTag:

    def test_overwrite_keeps_other_custom_metadata(self, store, vault):
        vault.kv.seed("legacy/api", {"token": "abc"}, {"owner_team": "payments", "managed_by": "old"})

        store.overwrite_ownership_tag("legacy/api")

        assert vault.kv.custom_metadata("legacy/api") == {"owner_team": "payments", "managed_by": MANAGED_BY}

    def test_overwrite_keeps_delete_version_after(self, store, vault):
        vault.kv.seed("legacy/api", {"token": "abc"})
        vault.kv.metadata[("secret", "legacy/api")]["delete_version_after"] = "720h"

        store.overwrite_ownership_tag("legacy/api")

        assert vault.kv.metadata[("secret", "legacy/api")]["delete_version_after"] == "720h"


class TestGetAndDestroy:

    def test_get_missing_key(self, store):
        with pytest.raises(NotFoundError):
            store.get("app/none")

    def test_get_metadata_missing_key(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.get_metadata("app/none")
        assert exc_info.value.key == "app/none"

    def test_destroy_requires_metadata(self, store):
        with pytest.raises(NotFoundError):
            store.destroy("app/none")

    def test_destroy_refuses_untagged_key(self, store, vault):
        vault.kv.seed("app/db", {"user": "other"})

        with pytest.raises(NotManagedError):
            store.destroy("app/db")

        assert vault.kv.current("app/db") == {"user": "other"}

    def test_destroy_refuses_foreign_key(self, store, vault):
        vault.kv.seed("app/db", {"user": "other"}, {"managed_by": "team-b"})

        with pytest.raises(NotManagedError) as exc_info:
            store.destroy("app/db")

        assert exc_info.value.owner == "team-b"

    def test_destroy_owned_key_deletes_everything(self, store, vault):
        store.put("app/db", {"user": "svc"})
        store.put("app/db", {"user": "svc2"})

        store.destroy("app/db")

        assert ("secret", "app/db") not in vault.kv.metadata
        assert ("secret", "app/db") not in vault.kv.versions

    def test_connection_error_becomes_transport_error(self):
        client = mock.MagicMock()
        client.secrets.kv.v2.read_secret_version.side_effect = requests.exceptions.ConnectionError("refused")
        store = ManagedKVStore(client, "secret", MANAGED_BY)

        with pytest.raises(TransportError):
            store.get("app/db")
