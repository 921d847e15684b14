"""Tests for the GCP Secret Manager backend against a mocked client."""
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gcp_exceptions

from mysterio_toolkit.configs.domains.errors import ValidationError
from mysterio_toolkit.configs.domains.gcp_client import GCPSecretClient, secret_id_for
from mysterio_toolkit.configs.domains.secret_store import RemoteErrorKind, SecretStoreError

SECRET_PATH = "projects/test-project/secrets/my-service--staging"


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def store(api):
    return GCPSecretClient("test-project", client=api)


def _version(number, data=None):
    response = SimpleNamespace(name=f"{SECRET_PATH}/versions/{number}")
    if data is not None:
        response.payload = SimpleNamespace(data=data.encode("UTF-8"))
    return response


def test_secret_id_maps_separator():
    assert secret_id_for("my-service/staging") == "my-service--staging"


def test_missing_project_is_validation_error(api):
    store = GCPSecretClient(None, client=api)

    with pytest.raises(ValidationError) as exc_info:
        store.get("my-service/staging")

    assert "GCP_PROJECT" in str(exc_info.value)
    api.access_secret_version.assert_not_called()


class TestGet:
    def test_reads_latest_version(self, store, api):
        api.access_secret_version.return_value = _version(3, '{"a": 1}')

        secret = store.get("my-service/staging")

        assert secret.text == '{"a": 1}'
        assert secret.version == "3"
        api.access_secret_version.assert_called_once_with(
            request={"name": f"{SECRET_PATH}/versions/latest"}
        )

    def test_not_found(self, store, api):
        api.access_secret_version.side_effect = gcp_exceptions.NotFound("missing")

        with pytest.raises(SecretStoreError) as exc_info:
            store.get("my-service/staging")

        assert exc_info.value.kind == RemoteErrorKind.NOT_FOUND

    def test_destroyed_version_is_not_found(self, store, api):
        api.access_secret_version.side_effect = gcp_exceptions.FailedPrecondition("destroyed")

        with pytest.raises(SecretStoreError) as exc_info:
            store.get("my-service/staging")

        assert exc_info.value.kind == RemoteErrorKind.NOT_FOUND

    def test_permission_denied_carries_remediation(self, store, api):
        api.access_secret_version.side_effect = gcp_exceptions.PermissionDenied("denied")

        with pytest.raises(SecretStoreError) as exc_info:
            store.get("my-service/staging")

        assert exc_info.value.kind == RemoteErrorKind.CREDENTIALS
        assert any("GOOGLE_APPLICATION_CREDENTIALS" in line for line in exc_info.value.remediation)

    def test_timeout_is_unavailable(self, store, api):
        api.access_secret_version.side_effect = gcp_exceptions.DeadlineExceeded("slow")

        with pytest.raises(SecretStoreError) as exc_info:
            store.get("my-service/staging")

        assert exc_info.value.kind == RemoteErrorKind.UNAVAILABLE


class TestWrite:
    def test_create_secret_then_first_version(self, store, api):
        api.add_secret_version.return_value = _version(1)

        write = store.create("my-service/staging", '{"a": 1}', "Secrets for my-service")

        request = api.create_secret.call_args.kwargs["request"]
        assert request["parent"] == "projects/test-project"
        assert request["secret_id"] == "my-service--staging"
        assert request["secret"]["annotations"] == {
            "secret-name": "my-service/staging",
            "description": "Secrets for my-service",
        }
        api.add_secret_version.assert_called_once_with(
            request={"parent": SECRET_PATH, "payload": {"data": b'{"a": 1}'}}
        )
        assert write.version == "1"

    def test_create_existing(self, store, api):
        api.create_secret.side_effect = gcp_exceptions.AlreadyExists("exists")

        with pytest.raises(SecretStoreError) as exc_info:
            store.create("my-service/staging", "{}", "d")

        assert exc_info.value.kind == RemoteErrorKind.ALREADY_EXISTS
        api.add_secret_version.assert_not_called()

    def test_update_adds_version(self, store, api):
        api.add_secret_version.return_value = _version(4)

        write = store.update("my-service/staging", '{"b": 2}')

        assert write.version == "4"
        api.create_secret.assert_not_called()

    def test_update_missing(self, store, api):
        api.add_secret_version.side_effect = gcp_exceptions.NotFound("missing")

        with pytest.raises(SecretStoreError) as exc_info:
            store.update("my-service/staging", "{}")

        assert exc_info.value.kind == RemoteErrorKind.NOT_FOUND


class TestDelete:
    def test_force_deletes_secret(self, store, api):
        deletion = store.delete("my-service/staging", force=True)

        api.delete_secret.assert_called_once_with(request={"name": SECRET_PATH})
        api.update_secret.assert_not_called()
        assert deletion.deletion_date is None

    def test_window_sets_ttl(self, store, api):
        expiry = datetime(2030, 1, 8, tzinfo=timezone.utc)
        api.update_secret.return_value = SimpleNamespace(expire_time=expiry)

        deletion = store.delete("my-service/staging", recovery_days=7)

        api.update_secret.assert_called_once_with(
            request={
                "secret": {"name": SECRET_PATH, "ttl": {"seconds": 7 * 86400}},
                "update_mask": {"paths": ["ttl"]},
            }
        )
        api.delete_secret.assert_not_called()
        assert deletion.deletion_date == expiry

    def test_window_without_expire_time(self, store, api):
        api.update_secret.return_value = SimpleNamespace(expire_time=None)

        deletion = store.delete("my-service/staging", recovery_days=10)

        days = (deletion.deletion_date - datetime.now(timezone.utc)).days
        assert days in (9, 10)

    def test_delete_missing(self, store, api):
        api.delete_secret.side_effect = gcp_exceptions.NotFound("missing")

        with pytest.raises(SecretStoreError) as exc_info:
            store.delete("my-service/staging", force=True)

        assert exc_info.value.kind == RemoteErrorKind.NOT_FOUND
