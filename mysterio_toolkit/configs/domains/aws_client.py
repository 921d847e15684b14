"""AWS Secrets Manager backend for the secret store contract."""
import logging
from typing import Optional

from .secret_store import (
    RemoteErrorKind,
    SecretStoreError,
    StoreDeletion,
    StoredSecret,
    StoreWrite,
)

logger = logging.getLogger(__name__)

AWS_REMEDIATION = [
    "Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY environment variables",
    "Or configure AWS CLI: aws configure",
    "Or use IAM roles if running on AWS infrastructure",
]

_ERROR_CODES = {
    "ResourceNotFoundException": RemoteErrorKind.NOT_FOUND,
    "ResourceExistsException": RemoteErrorKind.ALREADY_EXISTS,
    "AccessDeniedException": RemoteErrorKind.CREDENTIALS,
    "UnrecognizedClientException": RemoteErrorKind.CREDENTIALS,
    "InvalidClientTokenId": RemoteErrorKind.CREDENTIALS,
    "ExpiredTokenException": RemoteErrorKind.CREDENTIALS,
    "InvalidParameterException": RemoteErrorKind.INVALID,
    "InvalidRequestException": RemoteErrorKind.INVALID,
    "ThrottlingException": RemoteErrorKind.UNAVAILABLE,
    "InternalServiceError": RemoteErrorKind.UNAVAILABLE,
}


def _translate(exc: Exception, name: str) -> SecretStoreError:
    from botocore.exceptions import (
        ClientError,
        ConnectionError as BotoConnectionError,
        NoCredentialsError,
        PartialCredentialsError,
    )

    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        kind = _ERROR_CODES.get(code, RemoteErrorKind.UNKNOWN)
    elif isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        kind = RemoteErrorKind.CREDENTIALS
    elif isinstance(exc, BotoConnectionError):
        kind = RemoteErrorKind.UNAVAILABLE
    else:
        kind = RemoteErrorKind.UNKNOWN

    remediation = AWS_REMEDIATION if kind == RemoteErrorKind.CREDENTIALS else None
    return SecretStoreError(kind, f"AWS Secrets Manager request failed for {name}: {exc}", remediation)


class AWSSecretClient:
    """Wrapper around a boto3 Secrets Manager client."""

    backend = "aws"

    def __init__(self, region: str = "us-east-1", client=None):
        self.region = region
        self._client = client

    @property
    def client(self):
        """Create a boto3 Secrets Manager client on first use.

        Raises:
            RuntimeError: If boto3 is not installed.
        """
        if self._client is None:
            try:
                import boto3
            except ImportError:
                raise RuntimeError(
                    "AWS backend requires boto3: pip install 'mysterio-toolkit[aws]'"
                )
            self._client = boto3.client("secretsmanager", region_name=self.region)
        return self._client

    def get(self, name: str) -> StoredSecret:
        client = self.client
        try:
            response = client.get_secret_value(SecretId=name)
        except Exception as e:
            raise _translate(e, name) from e

        text = response.get("SecretString")
        if text is None:
            raise SecretStoreError(RemoteErrorKind.INVALID, f"Secret {name} holds binary data, expected a JSON string")

        logger.debug(f"Fetched secret {name} version {response.get('VersionId')}")
        return StoredSecret(name=name, text=text, version=response.get("VersionId"))

    def create(self, name: str, text: str, description: str) -> StoreWrite:
        client = self.client
        try:
            response = client.create_secret(Name=name, Description=description, SecretString=text)
        except Exception as e:
            raise _translate(e, name) from e

        logger.debug(f"Created secret {name} ({response.get('ARN')})")
        return StoreWrite(version=response.get("VersionId"), arn=response.get("ARN"))

    def update(self, name: str, text: str) -> StoreWrite:
        client = self.client
        try:
            response = client.update_secret(SecretId=name, SecretString=text)
        except Exception as e:
            raise _translate(e, name) from e

        logger.debug(f"Updated secret {name} to version {response.get('VersionId')}")
        return StoreWrite(version=response.get("VersionId"), arn=response.get("ARN"))

    def delete(self, name: str, force: bool = False, recovery_days: Optional[int] = None) -> StoreDeletion:
        params = {"SecretId": name}
        if force:
            params["ForceDeleteWithoutRecovery"] = True
        else:
            params["RecoveryWindowInDays"] = recovery_days or 7

        client = self.client
        try:
            response = client.delete_secret(**params)
        except Exception as e:
            raise _translate(e, name) from e

        # DeletionDate is present for forced deletions too; only a window makes it a deadline
        deadline = None if force else response.get("DeletionDate")
        return StoreDeletion(arn=response.get("ARN"), deletion_date=deadline)
