"""
Sync Engine -- moves configuration between the local store and the secret store.

    push  ->  local document -> secret (create, or update after confirmation)
    pull  ->  secret -> local document (overwrite after confirmation)
    sync  ->  union of both with a preferred side, written to both

Sync never deletes keys that exist on one side only. Deletions do not
propagate through sync; remove the key on both sides explicitly.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..domains.config_store import ConfigStore
from ..domains.errors import MysterioError, PartialFailureError, ValidationError
from ..domains.models import (
    NEVER_OVERRIDE,
    Cancelled,
    ConfigDocument,
    Conflict,
    ConflictKind,
    Decider,
    SecretWriteResult,
    SyncPreference,
    validate_environment_name,
)
from ..domains.secret_store import secret_name
from .resolver import Resolver
from .secret_lifecycle import SecretLifecycle

logger = logging.getLogger(__name__)


@dataclass
class PullResult:
    environment: str
    path: Path
    version: Optional[str]


@dataclass
class SyncResult:
    environment: str
    document: ConfigDocument
    path: Path
    remote: SecretWriteResult


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Reconciles local configuration documents with remote secrets."""

    def __init__(
        self,
        config_store: ConfigStore,
        lifecycle: SecretLifecycle,
        resolver: Resolver,
        package_name: Optional[str],
        decider: Optional[Decider] = None,
    ):
        self.config_store = config_store
        self.lifecycle = lifecycle
        self.resolver = resolver
        self.package_name = package_name
        self.decider = decider or NEVER_OVERRIDE

    def push(
        self,
        env: str,
        override: bool = False,
        include_defaults: bool = False,
        decider: Optional[Decider] = None,
    ) -> Union[SecretWriteResult, Cancelled]:
        """
        Write the local document for `env` as the secret payload.

        Args:
            env: Environment to push
            override: Replace an existing secret without asking
            include_defaults: Push the default-overlaid view instead of the env document alone
            decider: Consulted when the secret exists and override is False

        Returns:
            SecretWriteResult, or Cancelled if the overwrite was declined

        Raises:
            NotFoundError: If there is no local document to push
        """
        validate_environment_name(env)
        name = secret_name(self.package_name, env)
        if include_defaults:
            document = self.resolver.get_local(env)
        else:
            document = self.config_store.read(env)

        logger.debug(f"Pushing local config for '{env}' to {name}")
        return self.lifecycle.upsert(
            name,
            document,
            description=f"Pushed from local config - {_timestamp()}",
            override=override,
            decider=decider or self.decider,
        )

    def pull(
        self,
        env: str,
        override: bool = False,
        decider: Optional[Decider] = None,
    ) -> Union[PullResult, Cancelled]:
        """
        Overwrite the local document for `env` with the secret payload.

        Returns:
            PullResult, or Cancelled if overwriting the local document was declined

        Raises:
            NotFoundError: If the secret does not exist
        """
        validate_environment_name(env)
        name = secret_name(self.package_name, env)
        record = self.lifecycle.read(name)

        if not override and self.config_store.exists(env):
            conflict = Conflict(
                kind=ConflictKind.LOCAL_EXISTS,
                target=str(self.config_store.path_for(env)),
                message=f"Local config exists for '{env}'. Override?",
            )
            if not (decider or self.decider).confirm_overwrite(conflict):
                logger.info(f"Overwrite of local config for '{env}' declined")
                return Cancelled(operation="pull", reason=f"local config for '{env}' exists")

        path = self.config_store.write(env, record.payload)
        logger.debug(f"Pulled {name} version {record.version} to {path}")
        return PullResult(environment=env, path=path, version=record.version)

    def sync(self, env: str, prefer: SyncPreference = SyncPreference.LOCAL) -> SyncResult:
        """
        Union both sides with `prefer` winning collisions and write the result to both.

        A missing side counts as empty. The local write happens first; a
        remote failure after it raises PartialFailureError naming the local side.

        Raises:
            ValidationError: If `prefer` is not a known preference
        """
        validate_environment_name(env)
        try:
            prefer = SyncPreference(prefer)
        except ValueError as e:
            raise ValidationError(f"Invalid preference: {prefer}. Use 'local' or 'remote'") from e
        name = secret_name(self.package_name, env)

        local = self.config_store.read_or_empty(env)
        remote = self.lifecycle.read_or_empty(name)

        if prefer == SyncPreference.LOCAL:
            merged = {**remote, **local}
        else:
            merged = {**local, **remote}
        logger.debug(f"Syncing '{env}' with preference {prefer.value}: {len(merged)} keys")

        path = self.config_store.write(env, merged)
        try:
            write = self.lifecycle.write(name, merged, description=f"Synced - {_timestamp()}")
        except MysterioError as e:
            raise PartialFailureError("sync", succeeded="local", failed="remote", cause=e) from e

        return SyncResult(environment=env, document=merged, path=path, remote=write)
