from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

from ..lib.command import run_cmd
from ..lib.prompt import answered_yes
from ..lib.teardown import teardown_target
from .step_20_cleanup_previous import MAPPING_NAMES
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)


def copy_log(log_path: Optional[str], root: str, *, dry_run: bool = False) -> Optional[Path]:
    if not log_path or not Path(log_path).exists():
        return None
    dest_dir = Path(root) / "var/log/installer"
    dest = dest_dir / Path(log_path).name
    if dry_run:
        logger.info("Would copy %s to %s", log_path, str(dest))
        return dest
    dest_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(log_path, dest)
    logger.info("Copied install log to %s", str(dest))
    return dest


def wants_reboot(policy: str, *, interactive: bool, assume_yes: bool) -> bool:
    if policy == "always":
        return True
    if policy == "never":
        return False
    if assume_yes:
        return True
    if not interactive:
        return False
    return answered_yes("Installation finished. Unmount everything, close LUKS and reboot now?")


class FinalizeStep:
    step_id = "90_finalize"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        fin = cfg.get("finalize") or {}
        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)

        if fin.get("copy_log", True):
            log_path = ((state.get("execution") or {}).get("paths") or {}).get("log_path_actual")
            copy_log(log_path, root, dry_run=dry_run)

        reboot = wants_reboot(
            str(fin.get("reboot", "ask")),
            interactive=bool(cfg.get("interactive", True)),
            assume_yes=bool(cfg.get("assume_yes", False)),
        )
        if not reboot:
            logger.info("Left mounted at %s; reboot when ready.", root)
            return state

        teardown_target(root, MAPPING_NAMES, dry_run=dry_run)
        state.setdefault("execution", {})["mounts"] = {}
        run_cmd(["reboot"], dry_run=dry_run)
        return state
