"""Create, update, read and delete remote secrets.

State machine:
    ACTIVE --upsert--> ACTIVE (new version)
    ACTIVE --delete(force)--> DELETED (terminal)
    ACTIVE --delete(recovery_days)--> PENDING_DELETION(deadline)

Recovery from PENDING_DELETION happens in the remote system directly.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from ..domains.errors import (
    ConflictError,
    CredentialsError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from ..domains.models import (
    NEVER_OVERRIDE,
    Cancelled,
    ConfigDocument,
    Conflict,
    ConflictKind,
    Decider,
    DeletionPolicy,
    DeletionResult,
    SecretRecord,
    SecretState,
    SecretWriteResult,
)
from ..domains.secret_store import RemoteErrorKind, SecretStore, SecretStoreError

logger = logging.getLogger(__name__)


def translate_store_error(error: SecretStoreError):
    """Map a tagged backend error onto the toolkit error taxonomy."""
    message = str(error)
    if error.kind == RemoteErrorKind.NOT_FOUND:
        return NotFoundError(message)
    if error.kind == RemoteErrorKind.ALREADY_EXISTS:
        return ConflictError(message)
    if error.kind == RemoteErrorKind.CREDENTIALS:
        return CredentialsError(message, error.remediation)
    if error.kind == RemoteErrorKind.INVALID:
        return ValidationError(message)
    return RemoteError(message)


def encode_payload(payload: ConfigDocument) -> str:
    return json.dumps(payload, ensure_ascii=False)


class SecretLifecycle:
    """Owns every mutation of the remote secret store."""

    def __init__(self, store: SecretStore, decider: Optional[Decider] = None):
        self.store = store
        self.decider = decider or NEVER_OVERRIDE

    def read(self, name: str) -> SecretRecord:
        """
        Fetch and parse a secret payload.

        Raises:
            NotFoundError: If the secret does not exist
            CredentialsError: If the store rejected our credentials
            RemoteError: For any other remote failure, timeouts included
            ValidationError: If the payload is not a JSON object
        """
        try:
            stored = self.store.get(name)
        except SecretStoreError as e:
            raise translate_store_error(e) from e

        try:
            payload = json.loads(stored.text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Secret {name} does not hold valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise ValidationError(f"Secret {name} must hold a JSON object")

        return SecretRecord(name=name, payload=payload, version=stored.version)

    def read_or_empty(self, name: str) -> ConfigDocument:
        try:
            return self.read(name).payload
        except NotFoundError:
            logger.debug(f"No remote secret found for {name}")
            return {}

    def exists(self, name: str) -> bool:
        try:
            self.read(name)
        except NotFoundError:
            return False
        return True

    def _update(self, name: str, payload: ConfigDocument) -> SecretWriteResult:
        try:
            write = self.store.update(name, encode_payload(payload))
        except SecretStoreError as e:
            raise translate_store_error(e) from e
        logger.debug(f"Updated secret {name}, version {write.version}")
        return SecretWriteResult(name=name, version=write.version, arn=write.arn, created=False)

    def _create(self, name: str, payload: ConfigDocument, description: str) -> SecretWriteResult:
        # SecretStoreError propagates so callers can branch on ALREADY_EXISTS
        write = self.store.create(name, encode_payload(payload), description)
        logger.debug(f"Created secret {name}, version {write.version}")
        return SecretWriteResult(name=name, version=write.version, arn=write.arn, created=True)

    def upsert(
        self,
        name: str,
        payload: ConfigDocument,
        description: str,
        override: bool = False,
        decider: Optional[Decider] = None,
    ) -> Union[SecretWriteResult, Cancelled]:
        """
        Create a secret, or update it after an explicit conflict checkpoint.

        Args:
            name: Secret name
            payload: Full document to store
            description: Description used when the secret is created
            override: Update an existing secret without consulting the decider
            decider: Overrides the lifecycle's default decider for this call

        Returns:
            SecretWriteResult, or Cancelled if the overwrite was declined
        """
        try:
            return self._create(name, payload, description)
        except SecretStoreError as e:
            if e.kind != RemoteErrorKind.ALREADY_EXISTS:
                raise translate_store_error(e) from e

        if not override:
            conflict = Conflict(
                kind=ConflictKind.REMOTE_EXISTS,
                target=name,
                message=f"Secret '{name}' already exists. Override it?",
            )
            if not (decider or self.decider).confirm_overwrite(conflict):
                logger.info(f"Overwrite of secret {name} declined")
                return Cancelled(operation="upsert", reason=f"secret '{name}' already exists")

        return self._update(name, payload)

    def write(self, name: str, payload: ConfigDocument, description: str) -> SecretWriteResult:
        """Update a secret, creating it when it does not exist yet. No conflict checkpoint."""
        try:
            return self._update(name, payload)
        except NotFoundError:
            logger.debug(f"Secret {name} not found, creating it")

        try:
            return self._create(name, payload, description)
        except SecretStoreError as e:
            raise translate_store_error(e) from e

    def resolve_policy(
        self,
        name: str,
        force: bool = False,
        recovery_days: Optional[int] = None,
        decider: Optional[Decider] = None,
    ) -> Union[DeletionPolicy, Cancelled]:
        """
        Settle how a secret will be deleted, consulting the decider when no flag was given.

        Raises:
            ValidationError: If the flags conflict or the window is outside 7-30 days
        """
        if force or recovery_days is not None:
            return DeletionPolicy.resolve(force, recovery_days)

        chosen = (decider or self.decider).choose_deletion(name)
        if chosen is None:
            return Cancelled(operation="delete", reason="no deletion policy chosen")
        return DeletionPolicy.resolve(chosen.force, chosen.recovery_days)

    def delete(
        self,
        name: str,
        force: bool = False,
        recovery_days: Optional[int] = None,
        decider: Optional[Decider] = None,
        policy: Optional[DeletionPolicy] = None,
    ) -> Union[DeletionResult, Cancelled]:
        """
        Delete a secret immediately or schedule it for deletion.

        Args:
            name: Secret name
            force: Delete immediately and irreversibly
            recovery_days: Days (7-30) the secret stays recoverable
            decider: Consulted when neither force nor recovery_days is given
            policy: Already-resolved policy; skips validation and the decider

        Returns:
            DeletionResult, or Cancelled if the decider declined to choose
        """
        if policy is None:
            resolved = self.resolve_policy(name, force, recovery_days, decider)
            if isinstance(resolved, Cancelled):
                return resolved
            policy = resolved

        try:
            deletion = self.store.delete(name, force=policy.force, recovery_days=policy.recovery_days)
        except SecretStoreError as e:
            raise translate_store_error(e) from e

        if policy.force:
            logger.info(f"Secret {name} deleted immediately, it cannot be recovered")
            return DeletionResult(name=name, state=SecretState.DELETED, arn=deletion.arn)

        deadline = deletion.deletion_date
        if deadline is None:
            deadline = datetime.now(timezone.utc) + timedelta(days=policy.recovery_days)
        logger.info(f"Secret {name} scheduled for deletion at {deadline.isoformat()}")
        return DeletionResult(
            name=name,
            state=SecretState.PENDING_DELETION,
            deadline=deadline,
            arn=deletion.arn,
        )
