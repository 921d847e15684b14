"""Programmatic surface consumed by the CLI and embedding programs."""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..domains.aws_client import AWSSecretClient
from ..domains.config_loader import RC_FILENAME, Settings
from ..domains.config_store import ConfigStore
from ..domains.errors import MysterioError, PartialFailureError, StorageError, ValidationError
from ..domains.gcp_client import GCPSecretClient
from ..domains.models import (
    DEFAULT_ENVIRONMENT,
    NEVER_OVERRIDE,
    ConfigDocument,
    Decider,
    SyncPreference,
    validate_environment_name,
)
from ..domains.secret_store import SecretStore, secret_name
from .environment_manager import EnvironmentManager
from .resolver import Resolver, to_env_format, to_json
from .secret_lifecycle import SecretLifecycle
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)

SOURCES = ("local", "remote", "merged")
SOURCE_ALIASES = {"aws": "remote", "all": "merged"}
FORMATS = ("json", "env")
TARGETS = ("local", "remote", "both")
TARGET_ALIASES = {"aws": "remote"}
ENV_ACTIONS = ("create", "list", "delete")
REMOTE_ACTIONS = ("push", "pull", "sync", "delete")


def create_secret_store(settings: Settings) -> SecretStore:
    """Instantiate the configured backend. Clients connect lazily."""
    if settings.backend == "aws":
        return AWSSecretClient(region=settings.region)
    return GCPSecretClient(project_id=settings.project_id, credentials_path=settings.credentials_path)


@dataclass
class Context:
    """All components wired from one Settings value."""
    settings: Settings
    config_store: ConfigStore
    lifecycle: SecretLifecycle
    resolver: Resolver
    sync_engine: SyncEngine
    environments: EnvironmentManager


def build_context(
    settings: Settings,
    secret_store: Optional[SecretStore] = None,
    decider: Optional[Decider] = None,
) -> Context:
    decider = decider or NEVER_OVERRIDE
    config_store = ConfigStore(settings.config_dir)
    lifecycle = SecretLifecycle(secret_store or create_secret_store(settings), decider)
    resolver = Resolver(config_store, lifecycle, settings.package_name)
    return Context(
        settings=settings,
        config_store=config_store,
        lifecycle=lifecycle,
        resolver=resolver,
        sync_engine=SyncEngine(config_store, lifecycle, resolver, settings.package_name, decider),
        environments=EnvironmentManager(config_store, lifecycle, settings.package_name),
    )


def _normalize(value: str, allowed: Iterable[str], aliases: Dict[str, str], label: str) -> str:
    value = aliases.get(value, value)
    if value not in allowed:
        raise ValidationError(f"Invalid {label}: {value}. Use {', '.join(repr(a) for a in allowed)}")
    return value


def render(document: ConfigDocument, fmt: str = "json") -> str:
    fmt = _normalize(fmt, FORMATS, {}, "format")
    return to_env_format(document) if fmt == "env" else to_json(document)


def get_config(
    context: Context,
    env: Optional[str] = None,
    source: str = "merged",
    fmt: str = "json",
    save: Optional[Union[str, Path]] = None,
) -> str:
    """
    Read configuration from one source and render it.

    Args:
        env: Environment (defaults to settings.env)
        source: "local", "remote" ("aws") or "merged"
        fmt: "json" or "env"
        save: Also write the rendered output to this file

    Returns:
        Rendered output
    """
    env = env or context.settings.env
    source = _normalize(source, SOURCES, SOURCE_ALIASES, "source")

    if source == "local":
        document = context.resolver.get_local(env)
    elif source == "remote":
        document = context.resolver.get_remote(env)
    else:
        document = context.resolver.get_merged(env)

    output = render(document, fmt)
    if save:
        try:
            Path(save).write_text(output, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to save configuration to {save}: {e}") from e
        logger.info(f"Configuration saved to: {save}")
    return output


def set_many(
    context: Context,
    values: Dict[str, Any],
    env: Optional[str] = None,
    target: str = "local",
) -> None:
    """
    Assign typed values to keys with one read-modify-write per target side.

    Values must already be JSON-typed; strings are stored as strings.

    Raises:
        PartialFailureError: If target is "both" and the remote write failed after the local one
    """
    env = env or context.settings.env
    validate_environment_name(env)
    target = _normalize(target, TARGETS, TARGET_ALIASES, "target")
    if not values:
        raise ValidationError("Key is required")

    name = None
    if target in ("remote", "both"):
        name = secret_name(context.settings.package_name, env)

    if target in ("local", "both"):
        document = context.config_store.read_or_empty(env)
        document.update(values)
        context.config_store.write(env, document)
        logger.debug(f"Updated local config for '{env}': {', '.join(values)}")

    if name:
        try:
            payload = context.lifecycle.read_or_empty(name)
            payload.update(values)
            context.lifecycle.write(
                name,
                payload,
                description=f"Secrets for {context.settings.package_name} - {env} environment",
            )
        except MysterioError as e:
            if target == "both":
                raise PartialFailureError("set", succeeded="local", failed="remote", cause=e) from e
            raise
        logger.debug(f"Updated secret {name}: {', '.join(values)}")


def set_config(context: Context, key: str, value: Any, env: Optional[str] = None, target: str = "local") -> None:
    if not key:
        raise ValidationError("Key is required")
    set_many(context, {key: value}, env=env, target=target)


def env_command(
    context: Context,
    action: str,
    name: Optional[str] = None,
    template: Optional[str] = None,
    with_remote: bool = False,
    show_remote: bool = False,
    force: bool = False,
    recovery_days: Optional[int] = None,
    decider: Optional[Decider] = None,
):
    """Dispatch an environment action: create, list or delete."""
    action = _normalize(action, ENV_ACTIONS, {}, "environment action")
    manager = context.environments

    if action == "list":
        return manager.list(include_remote_status=show_remote)

    if not name:
        raise ValidationError(f"Environment name is required for '{action}'")

    if action == "create":
        return manager.create(name, template=template, with_remote=with_remote, decider=decider)

    return manager.delete(
        name,
        cascade_remote=with_remote,
        force=force,
        recovery_days=recovery_days,
        decider=decider,
    )


def remote_command(
    context: Context,
    action: str,
    env: Optional[str] = None,
    override: bool = False,
    prefer: Union[str, SyncPreference] = SyncPreference.LOCAL,
    force: bool = False,
    recovery_days: Optional[int] = None,
    include_defaults: bool = False,
    decider: Optional[Decider] = None,
):
    """Dispatch a secret store action: push, pull, sync or delete."""
    action = _normalize(action, REMOTE_ACTIONS, {}, "remote action")
    env = env or context.settings.env
    engine = context.sync_engine

    if action == "push":
        return engine.push(env, override=override, include_defaults=include_defaults, decider=decider)
    if action == "pull":
        return engine.pull(env, override=override, decider=decider)
    if action == "sync":
        if prefer == "aws":
            prefer = SyncPreference.REMOTE
        return engine.sync(env, prefer=prefer)

    validate_environment_name(env)
    return context.lifecycle.delete(
        secret_name(context.settings.package_name, env),
        force=force,
        recovery_days=recovery_days,
        decider=decider,
    )


def init_project(
    settings: Settings,
    package_name: str,
    environments: Iterable[str] = ("local", "development", "production"),
    rc_path: Optional[Union[str, Path]] = None,
) -> List[Path]:
    """
    Scaffold a config directory and rc file for a new project.

    Returns:
        Paths of every file written
    """
    if not package_name:
        raise ValidationError("Package name is required")
    secret_name(package_name, "local")  # validates the package identity
    environments = list(environments)
    for env in environments:
        validate_environment_name(env)

    store = ConfigStore(settings.config_dir)
    written = []
    for env in environments:
        written.append(store.write(env, {"environment": env, "debug": env == "local"}))

    written.append(store.write(DEFAULT_ENVIRONMENT, {"packageName": package_name, "region": settings.region}))

    rc = Path(rc_path) if rc_path else Path.cwd() / RC_FILENAME
    rc_data = {
        "packageName": package_name,
        "configDirPath": str(settings.config_dir),
        "awsRegion": settings.region,
        "backend": settings.backend,
    }
    if settings.project_id:
        rc_data["projectId"] = settings.project_id
    try:
        rc.write_text(json.dumps(rc_data, indent=2), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write settings file {rc}: {e}") from e
    written.append(rc)

    logger.info(f"Initialized project {package_name} in {store.config_dir}")
    return written
