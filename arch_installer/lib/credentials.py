from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict

from .env import ENV_LUKS_PASSPHRASE, ENV_ROOT_PASSWORD, ENV_USER_PASSWORD
from .prompt import ask_secret_confirmed, ask_secret_nonempty

logger = logging.getLogger(__name__)

ROOT_PASSWORD = "root_password"
USER_PASSWORD = "user_password"
LUKS_PASSPHRASE = "luks_passphrase"

_ENV_VARS = {
    ROOT_PASSWORD: ENV_ROOT_PASSWORD,
    USER_PASSWORD: ENV_USER_PASSWORD,
    LUKS_PASSPHRASE: ENV_LUKS_PASSPHRASE,
}


def require_secret(
    state: Dict[str, Any],
    key: str,
    prompt: str,
    *,
    confirm: bool = False,
) -> str:
    """Return a secret from memory, the environment or the terminal, in that order.

    Secrets are kept in state["secrets"], which save_state never writes.
    """

    secrets = state.setdefault("secrets", {})
    if secrets.get(key):
        return secrets[key]

    value = os.environ.get(_ENV_VARS[key], "")
    if value:
        logger.info("Using %s from %s", key, _ENV_VARS[key])
    else:
        if not (state.get("config") or {}).get("interactive", True):
            raise RuntimeError(f"{key} missing: set {_ENV_VARS[key]} for non-interactive installs")
        value = ask_secret_confirmed(prompt) if confirm else ask_secret_nonempty(prompt)

    secrets[key] = value
    return value


def luks_passphrase_provider(state: Dict[str, Any]) -> Callable[[int], str]:
    """Passphrase per cryptsetup open attempt; a failed attempt asks again."""

    def provide(attempt: int) -> str:
        if attempt == 1:
            return require_secret(state, LUKS_PASSPHRASE, "LUKS passphrase: ", confirm=True)
        if not (state.get("config") or {}).get("interactive", True):
            raise RuntimeError("LUKS passphrase rejected and no terminal to ask again")
        value = ask_secret_nonempty("Wrong passphrase. LUKS passphrase: ")
        state.setdefault("secrets", {})[LUKS_PASSPHRASE] = value
        return value

    return provide
