"""Merged configuration views and their output projections."""
import json
import logging
import re
from typing import Any, Optional

from ..domains.config_store import ConfigStore
from ..domains.errors import NotFoundError
from ..domains.models import DEFAULT_ENVIRONMENT, ConfigDocument, validate_environment_name
from ..domains.secret_store import secret_name
from .secret_lifecycle import SecretLifecycle

logger = logging.getLogger(__name__)

_UPPERCASE = re.compile(r"([A-Z])")


class Resolver:
    """
    Computes configuration views.

    Precedence for the merged view, lowest first:
    default document < environment document < remote secret.
    Merges are shallow: a later source replaces a whole top-level key.
    """

    def __init__(self, config_store: ConfigStore, lifecycle: SecretLifecycle, package_name: Optional[str]):
        self.config_store = config_store
        self.lifecycle = lifecycle
        self.package_name = package_name

    def get_local(self, env: str) -> ConfigDocument:
        """
        Default document overlaid by the environment document.

        Raises:
            NotFoundError: If neither document exists
        """
        validate_environment_name(env)
        found = False
        merged: ConfigDocument = {}
        for record in (DEFAULT_ENVIRONMENT, env):
            try:
                merged.update(self.config_store.read(record))
                found = True
            except NotFoundError:
                logger.debug(f"No local document for '{record}'")

        if not found:
            raise NotFoundError(
                f"No local configuration for '{env}' in {self.config_store.config_dir}"
            )
        return merged

    def get_remote(self, env: str) -> ConfigDocument:
        """
        Payload of the environment's secret.

        Raises:
            NotFoundError: If the secret does not exist
            CredentialsError: If remote authentication fails
        """
        return self.lifecycle.read(secret_name(self.package_name, env)).payload

    def get_merged(self, env: str) -> ConfigDocument:
        """
        default < env < remote. A missing remote secret counts as empty.

        Raises:
            NotFoundError: If no local document and no remote secret exist
        """
        try:
            merged = self.get_local(env)
            local_found = True
        except NotFoundError:
            merged, local_found = {}, False

        name = secret_name(self.package_name, env)
        try:
            remote = self.lifecycle.read(name).payload
        except NotFoundError:
            if not local_found:
                raise NotFoundError(f"No configuration found for '{env}' locally or in secret {name}")
            remote = {}

        merged.update(remote)
        return merged


def to_json(document: ConfigDocument) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


def env_key(key: str) -> str:
    """camelCase -> CAMEL_CASE; every uppercase letter gets a leading underscore."""
    return _UPPERCASE.sub(r"_\1", key).upper()


def env_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(value)


def to_env_format(document: ConfigDocument) -> str:
    """Render KEY=value lines; objects, arrays and null are compact JSON."""
    return "\n".join(f"{env_key(key)}={env_value(value)}" for key, value in document.items())
