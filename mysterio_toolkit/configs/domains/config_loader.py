"""Settings loader for mysterio-toolkit.

Settings are resolved once and passed explicitly into every component.
"""
import os
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

RC_FILENAME = ".mysteriorc"
SUPPORTED_BACKENDS = ("gcp", "aws")

# rc keys written by earlier releases of the tool
_RC_ALIASES = {
    "packageName": "package_name",
    "configDirPath": "config_dir",
    "configDir": "config_dir",
    "awsRegion": "region",
    "projectId": "project_id",
    "credentialsPath": "credentials_path",
}

_ENV_VARS = {
    "MYSTERIO_ENV": "env",
    "MYSTERIO_PACKAGE_NAME": "package_name",
    "MYSTERIO_CONFIG_DIR": "config_dir",
    "MYSTERIO_BACKEND": "backend",
    "GCP_PROJECT": "project_id",
    "AWS_REGION": "region",
}


@dataclass(frozen=True)
class Settings:
    """Explicit process configuration shared by all components."""
    package_name: Optional[str] = None
    config_dir: Path = Path("./config")
    env: str = "local"
    backend: str = "gcp"
    project_id: Optional[str] = None
    region: str = "us-east-1"
    credentials_path: Optional[str] = None
    debug: bool = False

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "config_dir" in values:
            values["config_dir"] = Path(values["config_dir"])
        return replace(self, **values)


def _read_rc_file(rc_path: Path) -> Dict[str, Any]:
    try:
        with open(rc_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse settings file at {rc_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read settings file at {rc_path}: {e}")

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(
            f"Settings file at {rc_path} must be a mapping, for example:\n"
            f"packageName: my-service\n"
            f"configDirPath: ./config\n"
            f"backend: gcp"
        )

    known = {f.name for f in fields(Settings)}
    values = {}
    for key, value in data.items():
        name = _RC_ALIASES.get(key, key)
        if name in known:
            values[name] = value
        else:
            logger.debug(f"Ignoring unknown settings key '{key}' in {rc_path}")
    return values


def _env_values() -> Dict[str, Any]:
    values = {}
    for var, name in _ENV_VARS.items():
        value = os.getenv(var)
        if value:
            logger.debug(f"Using {var} from environment: {value}")
            values[name] = value
    if os.getenv("DEBUG") == "mysterio":
        values["debug"] = True
    return values


def load_settings(rc_path: Optional[Union[str, Path]] = None, **overrides: Any) -> Settings:
    """
    Resolve settings from defaults, rc file, environment and overrides.

    Args:
        rc_path: Settings file to read. Defaults to ./.mysteriorc, which may be absent.
        **overrides: Explicit values (e.g. CLI flags); None values are ignored

    Returns:
        Settings instance

    Raises:
        ConfigError: If an explicit rc_path is missing, or the file or any value is invalid
    """
    values: Dict[str, Any] = {}

    if rc_path is not None:
        path = Path(rc_path)
        if not path.is_file():
            raise ConfigError(
                f"Settings file not found at: {path}\n"
                f"Create it with 'mysterio init' or pass an existing file."
            )
        values.update(_read_rc_file(path))
        logger.info(f"Settings loaded from {path}")
    else:
        path = Path.cwd() / RC_FILENAME
        if path.is_file():
            values.update(_read_rc_file(path))
            logger.info(f"Settings loaded from {path}")

    values.update(_env_values())

    try:
        settings = Settings().with_overrides(**values).with_overrides(**overrides)
    except TypeError as e:
        raise ConfigError(f"Invalid settings: {e}")

    if settings.backend not in SUPPORTED_BACKENDS:
        raise ConfigError(
            f"Unsupported secret store backend: {settings.backend}\n"
            f"Supported backends: {', '.join(SUPPORTED_BACKENDS)}"
        )

    if settings.credentials_path and not os.path.isfile(settings.credentials_path):
        raise ConfigError(
            f"Service account file not found at: {settings.credentials_path}\n"
            f"Please ensure the file exists or update credentialsPath in your settings"
        )

    if isinstance(settings.debug, str):
        settings = replace(settings, debug=settings.debug.lower() in ("1", "true", "yes"))

    logger.debug(f"Using package name: {settings.package_name}")
    logger.debug(f"Using config dir: {settings.config_dir}")
    logger.debug(f"Using backend: {settings.backend}")
    return settings
