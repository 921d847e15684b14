"""Remote secret store contract shared by the GCP and AWS backends."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

from .errors import ValidationError
from .models import PACKAGE_PATTERN, validate_environment_name


class RemoteErrorKind(str, Enum):
    """Closed set of remote failure kinds the core branches on."""
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    CREDENTIALS = "credentials"
    UNAVAILABLE = "unavailable"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class SecretStoreError(Exception):
    """Failure raised by a secret store backend, tagged with its kind."""

    def __init__(self, kind: RemoteErrorKind, message: str, remediation: Optional[List[str]] = None):
        super().__init__(message)
        self.kind = kind
        self.remediation = list(remediation or [])


@dataclass
class StoredSecret:
    """Raw secret text as returned by a backend."""
    name: str
    text: str
    version: Optional[str] = None


@dataclass
class StoreWrite:
    version: Optional[str]
    arn: Optional[str]


@dataclass
class StoreDeletion:
    arn: Optional[str]
    deletion_date: Optional[datetime] = None


class SecretStore(Protocol):
    """
    Versioned name -> JSON text store.

    Every method raises SecretStoreError on failure: NOT_FOUND from get,
    update and delete when the name is absent, ALREADY_EXISTS from create
    when the name is taken.
    """

    backend: str

    def get(self, name: str) -> StoredSecret:
        ...

    def create(self, name: str, text: str, description: str) -> StoreWrite:
        ...

    def update(self, name: str, text: str) -> StoreWrite:
        ...

    def delete(self, name: str, force: bool = False, recovery_days: Optional[int] = None) -> StoreDeletion:
        ...


def secret_name(package_name: Optional[str], environment: str) -> str:
    """
    Build the secret name for an environment: "<package>/<environment>".

    Raises:
        ValidationError: If no package identity is configured or either part is malformed
    """
    if not package_name:
        raise ValidationError(
            "Package name is required for secret store operations. "
            "Use --package-name or set packageName in .mysteriorc"
        )
    if not PACKAGE_PATTERN.match(package_name):
        raise ValidationError(f"Invalid package name '{package_name}'")
    validate_environment_name(environment)
    return f"{package_name}/{environment}"
