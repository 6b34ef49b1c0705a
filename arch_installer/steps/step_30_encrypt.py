from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from ..lib.block import get_uuid, mapper_path
from ..lib.credentials import LUKS_PASSPHRASE, luks_passphrase_provider, require_secret
from ..lib.luks import is_luks, luks_format, luks_open
from ..lib.prompt import UserAbort, ask_choice
from ..state_store import record_decision

logger = logging.getLogger(__name__)


def _existing_action(policy: str, dev: str, *, interactive: bool) -> str:
    """format or reuse for a partition that already has a LUKS header."""

    if policy != "ask":
        return policy
    if not interactive:
        raise RuntimeError(f"{dev} already contains LUKS and luks.existing=ask needs a terminal")
    choice = ask_choice(
        f"{dev} already contains a LUKS header. Type REUSE to open it, FORMAT to reformat (destroys contents)",
        ["REUSE", "FORMAT"],
    )
    if choice is None:
        raise UserAbort(f"Aborted due to existing LUKS on {dev}.")
    return choice.lower()


class EncryptStep:
    step_id = "30_encrypt"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        parts = exe.get("partitions") or {}
        dry_run = bool(cfg.get("dry_run", False))
        interactive = bool(cfg.get("interactive", True))

        if not parts.get("root"):
            raise RuntimeError("Missing execution.partitions.root; run partition step first")

        luks_cfg = cfg.get("luks") or {}
        policy = str(luks_cfg.get("existing", "format"))
        attempts = int(luks_cfg.get("open_attempts", 0) or 0)

        passphrase: Optional[str] = None
        provider: Optional[Callable[[int], str]] = None
        if luks_cfg.get("mode") == "passphrase":
            passphrase = require_secret(state, LUKS_PASSPHRASE, "LUKS passphrase: ", confirm=True)
            provider = luks_passphrase_provider(state)

        mappings: Dict[str, str] = {}
        for name in ("root", "home"):
            dev = parts.get(name)
            if not dev:
                continue

            action = "format"
            if is_luks(dev, dry_run=dry_run):
                action = _existing_action(policy, dev, interactive=interactive)
                logger.info("%s already contains LUKS (action=%s)", dev, action)

            if action == "format":
                if passphrase is None:
                    print(f"[!] Enter LUKS passphrase for {name.upper()} ({mapper_path(name)}):")
                luks_format(dev, passphrase=passphrase, dry_run=dry_run)

            luks_open(dev, name, passphrase_provider=provider, max_attempts=attempts, dry_run=dry_run)
            mappings[name] = mapper_path(name)
            record_decision(state, f"{name}_uuid", get_uuid(dev, dry_run=dry_run))
            record_decision(state, f"{name}_luks_action", action)

        exe["mappings"] = mappings
        return state
