"""Shared fixtures: temporary config directories and an in-memory secret store."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from mysterio_toolkit.configs.domains.config_loader import Settings
from mysterio_toolkit.configs.domains.config_store import ConfigStore
from mysterio_toolkit.configs.domains.models import DeletionPolicy
from mysterio_toolkit.configs.domains.secret_store import (
    RemoteErrorKind,
    SecretStoreError,
    StoreDeletion,
    StoredSecret,
    StoreWrite,
)
from mysterio_toolkit.configs.workflows.operations import build_context


class FakeSecretStore:
    """In-memory secret store honouring the backend contract."""

    backend = "fake"

    def __init__(self):
        self.secrets = {}
        self.descriptions = {}
        self.versions = {}
        self.deleted = {}
        self.calls = []
        self.fail_with = None

    def _check(self, operation):
        self.calls.append(operation)
        if self.fail_with is not None:
            raise SecretStoreError(self.fail_with, f"{operation} failed", ["configure credentials"])

    def seed(self, name, payload):
        self.secrets[name] = json.dumps(payload)
        self.versions[name] = 1

    def payload(self, name):
        return json.loads(self.secrets[name])

    def get(self, name):
        self._check("get")
        if name not in self.secrets:
            raise SecretStoreError(RemoteErrorKind.NOT_FOUND, f"{name} not found")
        return StoredSecret(name=name, text=self.secrets[name], version=f"v{self.versions[name]}")

    def create(self, name, text, description):
        self._check("create")
        if name in self.secrets:
            raise SecretStoreError(RemoteErrorKind.ALREADY_EXISTS, f"{name} exists")
        self.secrets[name] = text
        self.descriptions[name] = description
        self.versions[name] = 1
        return StoreWrite(version="v1", arn=f"arn:fake:{name}")

    def update(self, name, text):
        self._check("update")
        if name not in self.secrets:
            raise SecretStoreError(RemoteErrorKind.NOT_FOUND, f"{name} not found")
        self.secrets[name] = text
        self.versions[name] += 1
        return StoreWrite(version=f"v{self.versions[name]}", arn=f"arn:fake:{name}")

    def delete(self, name, force=False, recovery_days=None):
        self._check("delete")
        if name not in self.secrets:
            raise SecretStoreError(RemoteErrorKind.NOT_FOUND, f"{name} not found")
        del self.secrets[name]
        if force:
            self.deleted[name] = None
            return StoreDeletion(arn=f"arn:fake:{name}")
        deadline = datetime.now(timezone.utc) + timedelta(days=recovery_days)
        self.deleted[name] = deadline
        return StoreDeletion(arn=f"arn:fake:{name}", deletion_date=deadline)


class RecordingDecider:
    """Fixed answers, remembering what it was asked."""

    def __init__(self, overwrite=False, deletion=DeletionPolicy(recovery_days=7)):
        self.overwrite = overwrite
        self.deletion = deletion
        self.conflicts = []
        self.deletion_requests = []

    def confirm_overwrite(self, conflict):
        self.conflicts.append(conflict)
        return self.overwrite

    def choose_deletion(self, secret_name):
        self.deletion_requests.append(secret_name)
        return self.deletion


def write_doc(config_dir, env, document):
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / f"{env}.json").write_text(json.dumps(document))


def read_doc(config_dir, env):
    return json.loads((config_dir / f"{env}.json").read_text())


@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "config"
    path.mkdir()
    return path


@pytest.fixture
def config_store(config_dir):
    return ConfigStore(config_dir)


@pytest.fixture
def secret_store():
    return FakeSecretStore()


@pytest.fixture
def settings(config_dir):
    return Settings(package_name="my-service", config_dir=config_dir, project_id="test-project")


@pytest.fixture
def context(settings, secret_store):
    return build_context(settings, secret_store=secret_store)
