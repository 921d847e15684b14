"""Error taxonomy for configuration and secret operations."""
from typing import List, Optional


class MysterioError(Exception):
    """Base class for all toolkit errors."""
    pass


class ValidationError(MysterioError):
    """Malformed input: bad recovery window, missing identity, bad name."""
    pass


class ConfigError(ValidationError):
    """Settings file is missing, unreadable or invalid."""
    pass


class NotFoundError(MysterioError):
    """Secret, environment or template does not exist."""
    pass


class ConflictError(MysterioError):
    """Secret or environment already exists and no override was given."""
    pass


class StorageError(MysterioError):
    """Local configuration storage failed or holds an unreadable document."""
    pass


class RemoteError(MysterioError):
    """Remote secret store failure other than not-found or credentials."""
    pass


class CredentialsError(MysterioError):
    """
    Remote authentication or authorization failed.

    Carries remediation guidance listing the credential sources the active
    backend understands. Never retried.
    """

    def __init__(self, message: str, remediation: Optional[List[str]] = None):
        super().__init__(message)
        self.remediation = list(remediation or [])

    def __str__(self) -> str:
        text = super().__str__()
        if not self.remediation:
            return text
        lines = "\n".join(f"   - {option}" for option in self.remediation)
        return f"{text}\nConfigure credentials using one of:\n{lines}"


class PartialFailureError(MysterioError):
    """
    A two-sided operation failed after one side was already written.

    Attributes:
        succeeded: Side that was written ("local" or "remote")
        failed: Side that failed
        cause: The underlying error from the failed side
    """

    def __init__(self, operation: str, succeeded: str, failed: str, cause: Exception):
        super().__init__(
            f"{operation} partially failed: {succeeded} side was written, "
            f"{failed} side failed ({cause}). Retry the {failed} side only."
        )
        self.operation = operation
        self.succeeded = succeeded
        self.failed = failed
        self.cause = cause
