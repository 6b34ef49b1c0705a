from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.block import is_block_device
from ..lib.command import run_cmd
from ..lib.credentials import LUKS_PASSPHRASE, ROOT_PASSWORD, USER_PASSWORD, require_secret
from ..lib.prompt import ask

logger = logging.getLogger(__name__)


class GatherConfigStep:
    step_id = "18_gather_config"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.setdefault("config", {})
        dry_run = bool(cfg.get("dry_run", False))

        if cfg.get("interactive", True):
            r = run_cmd(["lsblk", "-o", "NAME,SIZE,TYPE,MOUNTPOINT,FSTYPE"], check=False)
            if r.stdout:
                print(r.stdout)
            cfg["target_disk"] = ask("Target disk (e.g. /dev/nvme0n1)", str(cfg["target_disk"]))
            cfg["hostname"] = ask("Hostname", str(cfg["hostname"]))
            cfg["username"] = ask("Username", str(cfg["username"]))

        disk = str(cfg.get("target_disk") or "")
        if not disk:
            raise RuntimeError("config.target_disk is required")
        if not dry_run and not is_block_device(disk):
            raise RuntimeError(f"Block device not found: {disk}")

        hostname = str(cfg.get("hostname") or "").strip()
        username = str(cfg.get("username") or "").strip()
        if not hostname or not username:
            raise RuntimeError("config.hostname and config.username must not be empty")

        require_secret(state, USER_PASSWORD, f"Password for user {username}: ")
        require_secret(state, ROOT_PASSWORD, "Password for root: ")
        if (cfg.get("luks") or {}).get("mode") == "passphrase":
            require_secret(state, LUKS_PASSPHRASE, "LUKS passphrase (root and home): ", confirm=True)
        else:
            logger.info("cryptsetup will ask for the LUKS passphrases while formatting")

        logger.info("Install target disk=%s hostname=%s user=%s", disk, hostname, username)
        return state
