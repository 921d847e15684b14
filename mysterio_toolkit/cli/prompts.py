"""Terminal-backed decision capability."""
import sys
from typing import Optional

from mysterio_toolkit.configs.domains.models import (
    DEFAULT_RECOVERY_DAYS,
    MAX_RECOVERY_DAYS,
    MIN_RECOVERY_DAYS,
    Conflict,
    DeletionPolicy,
)


def ask_yes_no(message: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    response = input(f"{message} ({hint}): ").strip().lower()
    if not response:
        return default
    return response in ("y", "yes")


class PromptDecider:
    """Asks the user on the terminal at every suspension point."""

    def confirm_overwrite(self, conflict: Conflict) -> bool:
        return ask_yes_no(conflict.message, default=False)

    def choose_deletion(self, secret_name: str) -> Optional[DeletionPolicy]:
        if not ask_yes_no(f"Are you sure you want to delete secret '{secret_name}'?", default=False):
            return None

        if ask_yes_no(f"Force immediate deletion of '{secret_name}' without recovery window?", default=False):
            return DeletionPolicy(force=True)

        while True:
            response = input(
                f"Recovery window in days ({MIN_RECOVERY_DAYS}-{MAX_RECOVERY_DAYS}) [{DEFAULT_RECOVERY_DAYS}]: "
            ).strip()
            if not response:
                return DeletionPolicy(recovery_days=DEFAULT_RECOVERY_DAYS)
            if response.isdigit() and MIN_RECOVERY_DAYS <= int(response) <= MAX_RECOVERY_DAYS:
                return DeletionPolicy(recovery_days=int(response))
            print(
                f"Please enter a number between {MIN_RECOVERY_DAYS} and {MAX_RECOVERY_DAYS}",
                file=sys.stderr,
            )
