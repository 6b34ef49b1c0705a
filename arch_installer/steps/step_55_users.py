from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import chroot_cmd, write_target_file
from ..lib.credentials import ROOT_PASSWORD, USER_PASSWORD, require_secret
from ..lib.system_files import render_sudoers_wheel
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)


class UsersStep:
    step_id = "55_users"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)

        username = str(cfg.get("username") or "").strip()
        if not username:
            raise RuntimeError("Missing config.username")
        shell = str(cfg.get("user_shell") or "/bin/bash")

        write_target_file(root, "/etc/sudoers.d/99-wheel", render_sudoers_wheel(), mode=0o440, dry_run=dry_run)

        exists = chroot_cmd(root, ["id", "-u", username], check=False, dry_run=dry_run).returncode == 0
        if exists and not dry_run:
            logger.info("User %s already exists", username)
        else:
            chroot_cmd(root, ["useradd", "-m", "-G", "wheel", "-s", shell, username], dry_run=dry_run)

        user_pw = require_secret(state, USER_PASSWORD, f"Password for {username}: ", confirm=True)
        root_pw = require_secret(state, ROOT_PASSWORD, "Password for root: ", confirm=True)
        chroot_cmd(root, ["chpasswd"], input_text=f"root:{root_pw}\n{username}:{user_pw}\n", dry_run=dry_run)

        logger.info("Passwords set for root and %s", username)
        return state
