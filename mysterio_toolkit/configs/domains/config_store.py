"""Local configuration store.

One JSON document per environment under the config directory:
<config_dir>/<environment>.json. The shared base document lives in
default.json and is never listed as an environment.
"""
import json
import logging
from pathlib import Path
from typing import List, Union

from .errors import NotFoundError, StorageError
from .models import (
    DEFAULT_ENVIRONMENT,
    ENVIRONMENT_PATTERN,
    ConfigDocument,
    validate_environment_name,
)

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".json"


class ConfigStore:
    """Reads and writes whole per-environment documents. Never patches."""

    def __init__(self, config_dir: Union[str, Path]):
        self.config_dir = Path(config_dir).resolve()

    def path_for(self, environment: str) -> Path:
        validate_environment_name(environment, allow_default=True)
        return self.config_dir / f"{environment}{DOCUMENT_SUFFIX}"

    def exists(self, environment: str) -> bool:
        return self.path_for(environment).is_file()

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create config directory {self.config_dir}: {e}") from e

    def read(self, environment: str) -> ConfigDocument:
        """
        Load an environment document.

        Returns:
            The document as a dict

        Raises:
            NotFoundError: If no document exists for the environment
            StorageError: If the file cannot be read or is not a JSON object
        """
        path = self.path_for(environment)
        if not path.is_file():
            raise NotFoundError(f"Local config not found for '{environment}': {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Failed to parse config file {path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Failed to read config file {path}: {e}") from e

        if not isinstance(document, dict):
            raise StorageError(f"Config file {path} must contain a JSON object")
        return document

    def read_or_empty(self, environment: str) -> ConfigDocument:
        try:
            return self.read(environment)
        except NotFoundError:
            return {}

    def write(self, environment: str, document: ConfigDocument) -> Path:
        """
        Replace an environment document with `document`.

        Returns:
            Path of the written file
        """
        path = self.path_for(environment)
        self._ensure_config_dir()

        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StorageError(f"Failed to write config file {path}: {e}") from e

        logger.debug(f"Wrote local config: {path}")
        return path

    def delete(self, environment: str) -> Path:
        path = self.path_for(environment)
        if not path.is_file():
            raise NotFoundError(f"Local config not found for '{environment}': {path}")

        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete config file {path}: {e}") from e

        logger.debug(f"Deleted local config: {path}")
        return path

    def list_environments(self) -> List[str]:
        """
        List environment names with a local document, excluding default.

        Returns:
            Sorted environment names, or an empty list if the directory is missing
        """
        if not self.config_dir.is_dir():
            return []

        try:
            paths = list(self.config_dir.glob(f"*{DOCUMENT_SUFFIX}"))
        except OSError as e:
            raise StorageError(f"Failed to list config directory {self.config_dir}: {e}") from e

        return sorted(
            path.stem for path in paths
            if path.is_file()
            and path.stem != DEFAULT_ENVIRONMENT
            and ENVIRONMENT_PATTERN.match(path.stem)
        )
