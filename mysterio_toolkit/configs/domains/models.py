"""Domain models for environments, secrets and decisions."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from .errors import ValidationError

# Reserved record holding the shared base document
DEFAULT_ENVIRONMENT = "default"

MIN_RECOVERY_DAYS = 7
MAX_RECOVERY_DAYS = 30
DEFAULT_RECOVERY_DAYS = 7

ENVIRONMENT_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
PACKAGE_PATTERN = re.compile(r"^[a-zA-Z0-9_.@-]+$")

ConfigDocument = Dict[str, Any]


def validate_environment_name(name: str, allow_default: bool = False) -> str:
    """
    Check an environment identifier is usable as a record name.

    Raises:
        ValidationError: If the name is empty, has path-unsafe characters,
            or is the reserved default record when that is not allowed
    """
    if not name:
        raise ValidationError("Environment name cannot be empty")
    if not ENVIRONMENT_PATTERN.match(name):
        raise ValidationError(
            f"Invalid environment name '{name}'. "
            "Allowed characters: letters, numbers, underscores (_), hyphens (-)"
        )
    if name == DEFAULT_ENVIRONMENT and not allow_default:
        raise ValidationError(
            f"'{DEFAULT_ENVIRONMENT}' is the shared base document, not an environment"
        )
    return name


class SyncPreference(str, Enum):
    """Which side wins a key collision during sync."""
    LOCAL = "local"
    REMOTE = "remote"


class SecretState(str, Enum):
    """Lifecycle state of a remote secret."""
    ACTIVE = "active"
    PENDING_DELETION = "pending_deletion"
    DELETED = "deleted"


class RemoteStatus(str, Enum):
    """Remote presence annotation for a listed environment."""
    PRESENT = "present"
    ABSENT = "absent"
    ERROR = "error"


class ConflictKind(str, Enum):
    REMOTE_EXISTS = "remote_exists"
    LOCAL_EXISTS = "local_exists"


@dataclass
class SecretRecord:
    """A remote secret payload with its version token."""
    name: str
    payload: ConfigDocument
    version: Optional[str] = None


@dataclass
class SecretWriteResult:
    """Outcome of a create or update against the secret store."""
    name: str
    version: Optional[str]
    arn: Optional[str]
    created: bool


@dataclass
class DeletionResult:
    """Outcome of a secret deletion."""
    name: str
    state: SecretState
    deadline: Optional[datetime] = None
    arn: Optional[str] = None

    @property
    def recoverable(self) -> bool:
        return self.state == SecretState.PENDING_DELETION


@dataclass
class EnvironmentStatus:
    """One row of an environment listing."""
    name: str
    remote: Optional[RemoteStatus] = None
    error: Optional[str] = None


@dataclass
class Cancelled:
    """An operation declined at a decision point. Nothing was written."""
    operation: str
    reason: str = "declined"


@dataclass
class Conflict:
    """Description handed to a decider when an overwrite needs confirmation."""
    kind: ConflictKind
    target: str
    message: str


@dataclass(frozen=True)
class DeletionPolicy:
    """Immediate deletion or a recovery window, never both."""
    force: bool = False
    recovery_days: Optional[int] = None

    @classmethod
    def resolve(cls, force: bool = False, recovery_days: Optional[int] = None) -> "DeletionPolicy":
        """
        Build a validated policy from call-site flags.

        Raises:
            ValidationError: If both flags are given or the window is outside 7-30 days
        """
        if force and recovery_days is not None:
            raise ValidationError("Use either force deletion or a recovery window, not both")
        if recovery_days is not None:
            if isinstance(recovery_days, bool) or not isinstance(recovery_days, int):
                raise ValidationError(f"Recovery window must be an integer, got {recovery_days!r}")
            if recovery_days < MIN_RECOVERY_DAYS or recovery_days > MAX_RECOVERY_DAYS:
                raise ValidationError(
                    f"Recovery window must be between {MIN_RECOVERY_DAYS} and "
                    f"{MAX_RECOVERY_DAYS} days, got {recovery_days}"
                )
        if not force and recovery_days is None:
            recovery_days = DEFAULT_RECOVERY_DAYS
        return cls(force=bool(force), recovery_days=None if force else recovery_days)


class Decider(Protocol):
    """
    Decision capability consulted at suspension points.

    Interactive callers back this with prompts; unattended callers supply a
    fixed policy.
    """

    def confirm_overwrite(self, conflict: Conflict) -> bool:
        ...

    def choose_deletion(self, secret_name: str) -> Optional[DeletionPolicy]:
        ...


@dataclass
class StaticDecider:
    """Answers every decision with a fixed policy."""
    overwrite: bool = False
    deletion: Optional[DeletionPolicy] = field(
        default_factory=lambda: DeletionPolicy(recovery_days=DEFAULT_RECOVERY_DAYS)
    )

    def confirm_overwrite(self, conflict: Conflict) -> bool:
        return self.overwrite

    def choose_deletion(self, secret_name: str) -> Optional[DeletionPolicy]:
        return self.deletion


ALWAYS_OVERRIDE = StaticDecider(overwrite=True)
NEVER_OVERRIDE = StaticDecider(overwrite=False)
