from __future__ import annotations

import getpass
import logging

logger = logging.getLogger(__name__)


class UserAbort(RuntimeError):
    """The user declined a confirmation."""


def answered_yes(message: str, question: str = 'Type "YES" to continue: ') -> bool:
    print(f"\n{message}")
    return input(question).strip() == "YES"


def confirm_yes(message: str, *, assume_yes: bool = False) -> None:
    """Require the literal answer YES before a destructive action."""

    if assume_yes:
        logger.info("Auto-confirmed: %s", message)
        return

    if not answered_yes(message):
        logger.info("Confirmation refused: %s", message)
        raise UserAbort("Canceled by user.")


def ask(prompt: str, default: str) -> str:
    answer = input(f"{prompt} [{default}]: ").strip()
    return answer or default


def ask_choice(prompt: str, choices: list[str]) -> str | None:
    """Return the typed choice if it is one of choices, else None."""

    answer = input(f"{prompt} ({'/'.join(choices)}): ").strip()
    return answer if answer in choices else None


def ask_secret_nonempty(prompt: str) -> str:
    while True:
        secret = getpass.getpass(prompt)
        if secret:
            return secret
        print("[!] Password cannot be empty. Please try again.")


def ask_secret_confirmed(prompt: str) -> str:
    while True:
        first = ask_secret_nonempty(prompt)
        second = getpass.getpass("Repeat: ")
        if first == second:
            return first
        print("[!] Entries do not match. Please try again.")
