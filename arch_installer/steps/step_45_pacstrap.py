from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.pkg import genfstab, pacstrap, resolve_packages
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class PacstrapStep:
    step_id = "45_pacstrap"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        hw = state.get("hardware") or {}
        mounts = (state.get("execution") or {}).get("mounts") or {}
        target_root = mounts.get("target_root")
        if not target_root or not mounts.get("mounted"):
            raise RuntimeError("Target filesystems are not mounted; run mount step first")

        dry_run = bool(cfg.get("dry_run", False))

        packages = resolve_packages(cfg, hw)
        logger.info("pacstrap: installing %d packages", len(packages))
        pacstrap(target_root, packages, dry_run=dry_run)
        genfstab(target_root, dry_run=dry_run)

        record_decision(state, "packages", packages)
        return state
