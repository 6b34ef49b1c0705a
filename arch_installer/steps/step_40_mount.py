from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.btrfs import DEFAULT_MOUNT_OPTIONS, mount_volumes, resolve_volumes
from ..lib.command import run_cmd
from ..lib.env import PATHS

logger = logging.getLogger(__name__)


class MountStep:
    step_id = "40_mount"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        parts = exe.get("partitions") or {}
        mappings = exe.get("mappings") or {}
        dry_run = bool(cfg.get("dry_run", False))
        target_root = str(cfg.get("target_root") or PATHS.target_root)

        if not parts.get("esp") or "root" not in mappings:
            raise RuntimeError("Missing ESP partition or root mapping; run partition/encrypt steps first")

        options = str((cfg.get("btrfs") or {}).get("mount_options") or DEFAULT_MOUNT_OPTIONS)
        volumes = resolve_volumes(cfg, separate_home="home" in mappings)
        mounted = mount_volumes(volumes, target_root, options=options, dry_run=dry_run)

        boot = f"{target_root.rstrip('/')}/boot"
        run_cmd(["mkdir", "-p", boot], dry_run=dry_run)
        run_cmd(["mount", parts["esp"], boot], dry_run=dry_run)
        mounted.append(boot)

        exe["mounts"] = {"target_root": target_root, "mounted": mounted}
        logger.info("Mounted target_root=%s with %s", target_root, options)
        return state
