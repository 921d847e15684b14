"""Input validation and value typing for CLI arguments."""
import json
import sys
from typing import Any, Optional

from mysterio_toolkit.configs.domains.errors import ValidationError
from mysterio_toolkit.configs.domains.models import (
    MAX_RECOVERY_DAYS,
    MIN_RECOVERY_DAYS,
    validate_environment_name,
)

VALUE_TYPES = ("string", "json")


def validate_env_name(name: str) -> None:
    """
    Validate an environment name is usable as a config record.

    Raises:
        SystemExit with code 2 if validation fails
    """
    try:
        validate_environment_name(name)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ production", file=sys.stderr)
        print("  ✓ staging-eu", file=sys.stderr)
        print("  ✓ qa_2", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ default (reserved for the shared base document)", file=sys.stderr)
        print("  ✗ ../prod (contains path characters)", file=sys.stderr)
        sys.exit(2)


def validate_recovery_days(days: Optional[int]) -> None:
    """
    Validate a recovery window before anything is contacted.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if days is None:
        return
    if days < MIN_RECOVERY_DAYS or days > MAX_RECOVERY_DAYS:
        print(
            f"Error: Recovery window must be between {MIN_RECOVERY_DAYS} and {MAX_RECOVERY_DAYS} days",
            file=sys.stderr,
        )
        sys.exit(2)


def parse_value(raw: Optional[str], value_type: str = "string") -> Any:
    """
    Turn a raw CLI string into a typed JSON value.

    With value_type "string" the text is kept as-is. With "json" it must
    parse as JSON (objects, arrays, numbers, booleans, null and quoted strings).

    Raises:
        SystemExit with code 2 if the value is missing or is not valid JSON
    """
    if raw is None:
        print("Error: Value is required (or use --interactive)", file=sys.stderr)
        sys.exit(2)

    if value_type == "string":
        return raw

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON value: {e}", file=sys.stderr)
        print("\nQuote JSON strings, for example:", file=sys.stderr)
        print("  ✓ --type json '{\"host\": \"db\"}'", file=sys.stderr)
        print("  ✓ --type json 42", file=sys.stderr)
        print("  ✓ --type json '\"text\"'", file=sys.stderr)
        sys.exit(2)
