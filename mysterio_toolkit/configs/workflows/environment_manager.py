"""Create, list and delete environments."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from ..domains.config_store import ConfigStore
from ..domains.errors import ConflictError, MysterioError, NotFoundError, PartialFailureError
from ..domains.models import (
    Cancelled,
    ConfigDocument,
    Conflict,
    ConflictKind,
    Decider,
    DeletionResult,
    EnvironmentStatus,
    RemoteStatus,
    SecretWriteResult,
    validate_environment_name,
)
from ..domains.secret_store import secret_name
from .secret_lifecycle import SecretLifecycle

logger = logging.getLogger(__name__)


@dataclass
class CreateResult:
    environment: str
    path: Path
    document: ConfigDocument
    remote: Optional[Union[SecretWriteResult, Cancelled]] = None


@dataclass
class DeleteResult:
    environment: str
    path: Optional[Path]
    remote: Optional[DeletionResult] = None


class EnvironmentManager:
    """Manages environments as local documents, optionally cascading to secrets."""

    def __init__(self, config_store: ConfigStore, lifecycle: SecretLifecycle, package_name: Optional[str]):
        self.config_store = config_store
        self.lifecycle = lifecycle
        self.package_name = package_name

    def create(
        self,
        name: str,
        template: Optional[str] = None,
        with_remote: bool = False,
        decider: Optional[Decider] = None,
    ) -> Union[CreateResult, Cancelled]:
        """
        Create an environment document, optionally cloned from a template.

        Args:
            name: New environment name
            template: Existing environment whose document is copied
            with_remote: Also push the new document to the secret store
            decider: Consulted if the secret already exists

        Returns:
            CreateResult, or Cancelled if overwriting an existing secret was declined.
            Nothing is written in that case.

        Raises:
            ConflictError: If a local document for `name` already exists
            NotFoundError: If the template environment does not exist
        """
        validate_environment_name(name)
        if self.config_store.exists(name):
            raise ConflictError(f"Environment '{name}' already exists")

        if template:
            validate_environment_name(template)
            try:
                document = self.config_store.read(template)
            except NotFoundError as e:
                raise NotFoundError(f"Template environment '{template}' not found") from e
            document = {**document, "environment": name}
            logger.debug(f"Using template from: {template}")
        else:
            document = {"environment": name}

        remote_name = secret_name(self.package_name, name) if with_remote else None

        # the overwrite decision is taken before anything is written
        override = False
        if remote_name and self.lifecycle.exists(remote_name):
            conflict = Conflict(
                kind=ConflictKind.REMOTE_EXISTS,
                target=remote_name,
                message=f"Secret '{remote_name}' already exists. Override it?",
            )
            if not (decider or self.lifecycle.decider).confirm_overwrite(conflict):
                logger.info(f"Overwrite of secret {remote_name} declined")
                return Cancelled(operation="environment create", reason=f"secret '{remote_name}' already exists")
            override = True

        path = self.config_store.write(name, document)
        logger.info(f"Created environment: {name}")

        remote = None
        if remote_name:
            try:
                remote = self.lifecycle.upsert(
                    remote_name,
                    document,
                    description=f"Secrets for {self.package_name} - {name} environment",
                    override=override,
                    decider=decider,
                )
            except MysterioError as e:
                raise PartialFailureError("environment create", succeeded="local", failed="remote", cause=e) from e

        return CreateResult(environment=name, path=path, document=document, remote=remote)

    def list(self, include_remote_status: bool = False) -> List[EnvironmentStatus]:
        """
        List environments, never including the default document.

        With include_remote_status each environment is probed in the secret
        store. Probe failures are recorded on the row and do not stop the listing.
        """
        statuses = []
        for env in self.config_store.list_environments():
            status = EnvironmentStatus(name=env)
            if include_remote_status:
                try:
                    present = self.lifecycle.exists(secret_name(self.package_name, env))
                    status.remote = RemoteStatus.PRESENT if present else RemoteStatus.ABSENT
                except MysterioError as e:
                    logger.warning(f"Remote status probe failed for {env}: {e}")
                    status.remote = RemoteStatus.ERROR
                    status.error = str(e)
            statuses.append(status)
        return statuses

    def delete(
        self,
        name: str,
        cascade_remote: bool = False,
        force: bool = False,
        recovery_days: Optional[int] = None,
        decider: Optional[Decider] = None,
    ) -> Union[DeleteResult, Cancelled]:
        """
        Remove an environment document, and its secret when cascading.

        The deletion policy is settled before anything is removed. The local
        removal is not rolled back if the remote deletion fails.

        Raises:
            NotFoundError: If no local document exists
            ValidationError: If the recovery window is invalid
            PartialFailureError: If the local document was removed but the secret deletion failed
        """
        validate_environment_name(name)
        if not self.config_store.exists(name):
            raise NotFoundError(f"Environment '{name}' not found")

        policy = None
        remote_name = None
        if cascade_remote:
            remote_name = secret_name(self.package_name, name)
            resolved = self.lifecycle.resolve_policy(remote_name, force, recovery_days, decider)
            if isinstance(resolved, Cancelled):
                return resolved
            policy = resolved

        path = self.config_store.delete(name)
        logger.info(f"Deleted local environment: {name}")

        remote = None
        if remote_name:
            try:
                remote = self.lifecycle.delete(remote_name, policy=policy)
            except MysterioError as e:
                raise PartialFailureError("environment delete", succeeded="local", failed="remote", cause=e) from e

        return DeleteResult(environment=name, path=path, remote=remote)
