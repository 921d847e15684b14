"""CLI entrypoint for mysterio-toolkit."""
import sys
import argparse
import logging
from pathlib import Path

from .validators import VALUE_TYPES, parse_value, validate_env_name, validate_recovery_days

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr
    )


def _settings(args):
    """Resolve settings once from rc file, environment and CLI flags."""
    from mysterio_toolkit.configs.domains.config_loader import load_settings

    return load_settings(
        rc_path=getattr(args, "rc", None),
        package_name=getattr(args, "package_name", None),
        config_dir=getattr(args, "config_dir", None),
        backend=getattr(args, "backend", None),
        project_id=getattr(args, "project_id", None),
        region=getattr(args, "region", None),
    )


def _decider():
    """Prompt on a terminal, fall back to the unattended policy otherwise."""
    from mysterio_toolkit.configs.domains.models import NEVER_OVERRIDE
    from .prompts import PromptDecider

    if sys.stdin.isatty():
        return PromptDecider()
    return NEVER_OVERRIDE


def _context(args):
    from mysterio_toolkit.configs.workflows.operations import build_context

    settings = _settings(args)
    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    return build_context(settings, decider=_decider())


def _print_deletion(result) -> None:
    print("Success: Secret deletion initiated")
    print(f"Secret name: {result.name}")
    if result.arn:
        print(f"Secret ARN: {result.arn}")
    if result.recoverable:
        print(f"Scheduled deletion: {result.deadline.isoformat()}")
        print("Tip: The secret can be recovered before this date from the secret store console or CLI")
    else:
        print("Warning: Secret was deleted immediately and cannot be recovered")


def _print_cancelled(result) -> None:
    print(f"Operation cancelled: {result.reason}")


def cmd_version(args):
    """Show version information."""
    print(f"mysterio-toolkit {VERSION}")


def cmd_init(args):
    """Scaffold config directory and settings file."""
    from mysterio_toolkit.configs.workflows.operations import init_project

    settings = _settings(args)
    package_name = args.package_name or settings.package_name
    if not package_name:
        default_name = Path.cwd().name
        if sys.stdin.isatty():
            package_name = input(f"Enter package name [{default_name}]: ").strip() or default_name
        else:
            package_name = default_name

    for env in args.environments:
        validate_env_name(env)

    written = init_project(settings, package_name, args.environments, rc_path=args.rc)
    print(f"Success: Initialized project: {package_name}")
    print(f"Configuration directory: {Path(settings.config_dir).resolve()}")
    print(f"Environments created: {', '.join(args.environments)}")
    logger.debug(f"Files written: {', '.join(str(p) for p in written)}")


def cmd_get(args):
    """Get configuration from any source."""
    from mysterio_toolkit.configs.workflows.operations import get_config

    context = _context(args)
    output = get_config(context, env=args.env, source=args.source, fmt=args.format, save=args.save)
    if args.save:
        print(f"Success: Configuration saved to: {args.save}")
    else:
        print(output)


def cmd_set(args):
    """Set configuration values."""
    from mysterio_toolkit.configs.workflows.operations import set_many

    context = _context(args)
    env = args.env or context.settings.env

    if args.interactive:
        values = {}
        print("Interactive configuration mode (enter empty key to finish)")
        while True:
            key = input("Key (empty to finish): ").strip()
            if not key:
                break
            values[key] = parse_value(input(f"Value for '{key}': "), args.type)
        if not values:
            print("No values entered")
            return
    else:
        if not args.key:
            print("Error: Key is required", file=sys.stderr)
            sys.exit(2)
        values = {args.key: parse_value(args.value, args.type)}

    set_many(context, values, env=env, target=args.target)
    print(f"Success: Configuration updated for environment: {env}")


def cmd_env(args):
    """Manage environments."""
    from mysterio_toolkit.configs.domains.models import Cancelled, RemoteStatus
    from mysterio_toolkit.configs.workflows.operations import env_command
    from .prompts import ask_yes_no

    if args.action in ("create", "delete"):
        if not args.name:
            print(f"Error: Environment name is required for '{args.action}'", file=sys.stderr)
            sys.exit(2)
        validate_env_name(args.name)
    validate_recovery_days(args.days)

    if args.action == "delete" and not args.yes:
        if not sys.stdin.isatty():
            print("Error: Refusing to delete without confirmation. Pass --yes", file=sys.stderr)
            sys.exit(2)
        if not ask_yes_no(f"Delete environment '{args.name}'?", default=False):
            print("Operation cancelled")
            return

    context = _context(args)
    result = env_command(
        context,
        args.action,
        args.name,
        template=args.template,
        with_remote=args.with_remote,
        show_remote=args.show_remote,
        force=args.force,
        recovery_days=args.days,
    )

    if isinstance(result, Cancelled):
        _print_cancelled(result)
        return

    if args.action == "list":
        print("Environments:")
        markers = {RemoteStatus.PRESENT: "[remote: yes]", RemoteStatus.ABSENT: "[remote: no]"}
        for status in result:
            line = f"  - {status.name}"
            if status.remote == RemoteStatus.ERROR:
                line += f" [remote: error - {status.error}]"
            elif status.remote is not None:
                line += f" {markers[status.remote]}"
            print(line)
        return

    if args.action == "create":
        print(f"Success: Created environment: {result.environment}")
        print(f"Config file: {result.path}")
        if isinstance(result.remote, Cancelled):
            _print_cancelled(result.remote)
        elif result.remote is not None:
            print(f"Secret: {result.remote.name}")
        return

    print(f"Success: Deleted local environment: {result.environment}")
    if result.remote is not None:
        _print_deletion(result.remote)


def cmd_remote(args):
    """Secret store operations."""
    from mysterio_toolkit.configs.domains.models import Cancelled
    from mysterio_toolkit.configs.workflows.operations import remote_command

    if args.env:
        validate_env_name(args.env)
    validate_recovery_days(args.days)
    if args.force and args.days is not None:
        print("Error: Use either --force or --days, not both", file=sys.stderr)
        sys.exit(2)

    context = _context(args)
    result = remote_command(
        context,
        args.action,
        env=args.env,
        override=args.override,
        prefer=args.prefer,
        force=args.force,
        recovery_days=args.days,
        include_defaults=args.include_defaults,
    )

    if isinstance(result, Cancelled):
        _print_cancelled(result)
        return

    if args.action == "push":
        verb = "Created" if result.created else "Updated"
        print(f"Success: {verb} secret {result.name} from local config")
        if result.version:
            print(f"Version: {result.version}")
    elif args.action == "pull":
        print(f"Success: Pulled secret to local config: {result.path}")
    elif args.action == "sync":
        print(f"Success: Synced configuration with preference: {args.prefer}")
        print(f"Local: {result.path}")
        print(f"Remote: {result.remote.name}")
    else:
        _print_deletion(result)


def _common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-d", "--config-dir",
        help="Configuration directory (default: ./config or configDirPath from .mysteriorc)"
    )
    common.add_argument(
        "--rc",
        help="Settings file to load instead of ./.mysteriorc"
    )
    common.add_argument(
        "--backend",
        choices=["gcp", "aws"],
        help="Secret store backend (default: gcp)"
    )
    common.add_argument(
        "--project-id",
        help="GCP project ID (overrides GCP_PROJECT and .mysteriorc)"
    )
    common.add_argument(
        "-r", "--region",
        help="AWS region (overrides AWS_REGION and .mysteriorc)"
    )
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging to stderr"
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_parser()

    parser = argparse.ArgumentParser(
        prog="mysterio",
        description="Mysterio CLI - layered configuration and secrets management",
        epilog="""
Exit codes:
  0 - Success (or operation cancelled)
  1 - Runtime error (authentication, network, missing config, etc.)
  2 - Usage error (invalid arguments, invalid names, invalid recovery window, etc.)

Environment variables:
  MYSTERIO_ENV          - Default environment (default: local)
  MYSTERIO_PACKAGE_NAME - Package name used in secret names
  MYSTERIO_BACKEND      - Secret store backend: gcp or aws
  GCP_PROJECT           - GCP project ID
  AWS_REGION            - AWS region
  DEBUG=mysterio        - Enable debug logging

Configuration:
  Settings are read from ./.mysteriorc (created by 'mysterio init').
  Secrets are named <packageName>/<environment>.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of mysterio-toolkit"
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        parents=[common],
        help="Initialize a new project",
        description="Create the config directory, one document per environment, default.json and .mysteriorc"
    )
    init_parser.add_argument(
        "-p", "--package-name",
        help="Package name for the project (default: current directory name)"
    )
    init_parser.add_argument(
        "-e", "--environments",
        nargs="+",
        default=["local", "development", "production"],
        help="Initial environments to create"
    )

    # get command
    get_parser = subparsers.add_parser(
        "get",
        parents=[common],
        help="Get configuration from any source",
        description="""
Read configuration for an environment.

Sources:
  local  - default.json overlaid by <env>.json
  remote - the environment's secret (alias: aws)
  merged - default < env < remote (default)
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    get_parser.add_argument("-e", "--env", help="Environment (default: local)")
    get_parser.add_argument(
        "-s", "--source",
        default="merged",
        choices=["local", "remote", "aws", "merged"],
        help="Source: local|remote|merged (default: merged)"
    )
    get_parser.add_argument(
        "-f", "--format",
        default="json",
        choices=["json", "env"],
        help="Output format: json|env (default: json)"
    )
    get_parser.add_argument("-p", "--package-name", help="Package name")
    get_parser.add_argument("--save", help="Save output to file")

    # set command
    set_parser = subparsers.add_parser(
        "set",
        parents=[common],
        help="Set configuration values",
        description="Assign a value to a key in local config, the secret store, or both"
    )
    set_parser.add_argument("key", nargs="?", help="Configuration key")
    set_parser.add_argument("value", nargs="?", help="Configuration value")
    set_parser.add_argument("-e", "--env", help="Target environment (default: local)")
    set_parser.add_argument(
        "-t", "--target",
        default="local",
        choices=["local", "remote", "aws", "both"],
        help="Target: local|remote|both (default: local)"
    )
    set_parser.add_argument(
        "--type",
        default="string",
        choices=VALUE_TYPES,
        help="How to read the value: string (as-is) or json (parsed)"
    )
    set_parser.add_argument("-p", "--package-name", help="Package name")
    set_parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Interactive mode for multiple values"
    )

    # env command
    env_parser = subparsers.add_parser(
        "env",
        parents=[common],
        help="Manage environments (create|list|delete)",
        description="Create, list or delete environments"
    )
    env_parser.add_argument("action", choices=["create", "list", "delete"])
    env_parser.add_argument("name", nargs="?", help="Environment name")
    env_parser.add_argument("--from", dest="template", help="Use existing environment as template")
    env_parser.add_argument(
        "--with-remote", "--with-aws",
        dest="with_remote",
        action="store_true",
        help="Also manage the environment's secret"
    )
    env_parser.add_argument(
        "--show-remote", "--show-aws",
        dest="show_remote",
        action="store_true",
        help="Show secret store status when listing"
    )
    env_parser.add_argument("--force", action="store_true", help="Delete the secret without recovery")
    env_parser.add_argument("--days", type=int, help="Recovery window days for the secret (7-30)")
    env_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask before deleting")
    env_parser.add_argument("-p", "--package-name", help="Package name")

    # remote command
    remote_parser = subparsers.add_parser(
        "remote",
        aliases=["aws"],
        parents=[common],
        help="Secret store operations (push|pull|sync|delete)",
        description="""
Move configuration between local documents and the secret store.

  push   - local <env>.json -> secret (asks before replacing unless --override)
  pull   - secret -> local <env>.json (asks before replacing unless --override)
  sync   - union of both, --prefer side wins collisions, written to both
  delete - delete the secret (--force, or --days 7-30 recovery window)
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    remote_parser.add_argument("action", choices=["push", "pull", "sync", "delete"])
    remote_parser.add_argument("-e", "--env", help="Target environment (default: local)")
    remote_parser.add_argument("-p", "--package-name", help="Package name")
    remote_parser.add_argument("--override", action="store_true", help="Override existing without prompting")
    remote_parser.add_argument(
        "--prefer",
        default="local",
        choices=["local", "remote", "aws"],
        help="For sync: which side wins collisions (default: local)"
    )
    remote_parser.add_argument(
        "--include-defaults",
        action="store_true",
        help="For push: include default.json keys in the pushed document"
    )
    remote_parser.add_argument("--force", action="store_true", help="For delete: immediate deletion without recovery")
    remote_parser.add_argument("--days", type=int, help="For delete: recovery window days (7-30)")

    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success or cancelled
        1 - Runtime errors (authentication, network, storage, not found, etc.)
        2 - Usage errors (invalid arguments, invalid names, invalid recovery window, etc.)
    """
    from mysterio_toolkit.configs.domains.errors import ValidationError

    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging(getattr(args, "verbose", False))

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    handlers = {
        "version": cmd_version,
        "init": cmd_init,
        "get": cmd_get,
        "set": cmd_set,
        "env": cmd_env,
        "remote": cmd_remote,
        "aws": cmd_remote,
    }

    try:
        handlers[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
