"""GCP Secret Manager backend for the secret store contract."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from .errors import ValidationError
from .secret_store import (
    RemoteErrorKind,
    SecretStoreError,
    StoreDeletion,
    StoredSecret,
    StoreWrite,
)

logger = logging.getLogger(__name__)

GCP_REMEDIATION = [
    "Set GOOGLE_APPLICATION_CREDENTIALS to a service account JSON file",
    "Or set credentialsPath in .mysteriorc",
    "Or run: gcloud auth application-default login",
]

# Order matters: subclasses before their bases
_ERROR_KINDS = (
    (auth_exceptions.DefaultCredentialsError, RemoteErrorKind.CREDENTIALS),
    (auth_exceptions.RefreshError, RemoteErrorKind.CREDENTIALS),
    (gcp_exceptions.NotFound, RemoteErrorKind.NOT_FOUND),
    (gcp_exceptions.AlreadyExists, RemoteErrorKind.ALREADY_EXISTS),
    (gcp_exceptions.Unauthenticated, RemoteErrorKind.CREDENTIALS),
    (gcp_exceptions.PermissionDenied, RemoteErrorKind.CREDENTIALS),
    (gcp_exceptions.InvalidArgument, RemoteErrorKind.INVALID),
    (gcp_exceptions.DeadlineExceeded, RemoteErrorKind.UNAVAILABLE),
    (gcp_exceptions.ServiceUnavailable, RemoteErrorKind.UNAVAILABLE),
    (gcp_exceptions.RetryError, RemoteErrorKind.UNAVAILABLE),
)


def secret_id_for(name: str) -> str:
    """Map "<package>/<environment>" to a valid Secret Manager id."""
    return name.replace("/", "--")


def _translate(exc: Exception, name: str) -> SecretStoreError:
    for exc_type, kind in _ERROR_KINDS:
        if isinstance(exc, exc_type):
            break
    else:
        kind = RemoteErrorKind.UNKNOWN
    remediation = GCP_REMEDIATION if kind == RemoteErrorKind.CREDENTIALS else None
    return SecretStoreError(kind, f"GCP Secret Manager request failed for {name}: {exc}", remediation)


class GCPSecretClient:
    """Wrapper around GCP Secret Manager client."""

    backend = "gcp"

    def __init__(self, project_id: Optional[str], credentials_path: Optional[str] = None, client=None):
        self.project_id = project_id
        self.credentials_path = credentials_path
        self._client = client

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            try:
                if self.credentials_path:
                    logger.debug(f"Using service account: {self.credentials_path}")
                    self._client = secretmanager.SecretManagerServiceClient.from_service_account_file(
                        self.credentials_path
                    )
                else:
                    self._client = secretmanager.SecretManagerServiceClient()
            except Exception as e:
                raise _translate(e, "client") from e
        return self._client

    @property
    def project_path(self) -> str:
        if not self.project_id:
            raise ValidationError(
                "Project ID not found. Please set GCP_PROJECT environment variable "
                "or configure projectId in .mysteriorc"
            )
        return f"projects/{self.project_id}"

    def _secret_path(self, name: str) -> str:
        return f"{self.project_path}/secrets/{secret_id_for(name)}"

    def get(self, name: str) -> StoredSecret:
        """
        Fetch the latest version of a secret.

        Args:
            name: Logical secret name

        Returns:
            StoredSecret with the decoded payload and version number
        """
        path = f"{self._secret_path(name)}/versions/latest"
        client = self.client
        try:
            response = client.access_secret_version(request={"name": path})
        except gcp_exceptions.FailedPrecondition as e:
            # latest version disabled or destroyed
            raise SecretStoreError(RemoteErrorKind.NOT_FOUND, f"Secret {name} has no active version: {e}") from e
        except Exception as e:
            raise _translate(e, name) from e

        version = response.name.rsplit("/", 1)[-1]
        logger.debug(f"Fetched secret {name} version {version}")
        return StoredSecret(name=name, text=response.payload.data.decode("UTF-8"), version=version)

    def _add_version(self, client, parent: str, text: str) -> StoreWrite:
        response = client.add_secret_version(
            request={
                "parent": parent,
                "payload": {"data": text.encode("UTF-8")},
            }
        )
        return StoreWrite(version=response.name.rsplit("/", 1)[-1], arn=response.name)

    def create(self, name: str, text: str, description: str) -> StoreWrite:
        """Create the secret and its first version."""
        parent = self._secret_path(name)
        client = self.client
        try:
            client.create_secret(
                request={
                    "parent": self.project_path,
                    "secret_id": secret_id_for(name),
                    "secret": {
                        "replication": {"automatic": {}},
                        "labels": {"managed-by": "mysterio"},
                        "annotations": {"secret-name": name, "description": description},
                    },
                }
            )
            write = self._add_version(client, parent, text)
        except Exception as e:
            raise _translate(e, name) from e

        logger.debug(f"Created secret {name} version {write.version}")
        return write

    def update(self, name: str, text: str) -> StoreWrite:
        """Add a new version to an existing secret."""
        parent = self._secret_path(name)
        client = self.client
        try:
            write = self._add_version(client, parent, text)
        except Exception as e:
            raise _translate(e, name) from e

        logger.debug(f"Updated secret {name} to version {write.version}")
        return write

    def delete(self, name: str, force: bool = False, recovery_days: Optional[int] = None) -> StoreDeletion:
        """
        Delete a secret now, or schedule its expiry after the recovery window.

        A scheduled secret can be recovered by clearing its expiration.
        """
        path = self._secret_path(name)
        client = self.client
        try:
            if force:
                client.delete_secret(request={"name": path})
                return StoreDeletion(arn=path)

            days = recovery_days or 7
            response = client.update_secret(
                request={
                    "secret": {"name": path, "ttl": {"seconds": days * 86400}},
                    "update_mask": {"paths": ["ttl"]},
                }
            )
        except Exception as e:
            raise _translate(e, name) from e

        deadline = getattr(response, "expire_time", None)
        if not deadline:
            deadline = datetime.now(timezone.utc) + timedelta(days=days)
        return StoreDeletion(arn=path, deletion_date=deadline)
