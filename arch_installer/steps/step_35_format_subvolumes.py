from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.btrfs import create_subvolumes, mkfs_btrfs, resolve_volumes
from ..lib.env import PATHS
from ..lib.storage import format_esp
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class FormatSubvolumesStep:
    step_id = "35_format_subvolumes"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.get("execution") or {}
        parts = exe.get("partitions") or {}
        mappings = exe.get("mappings") or {}
        dry_run = bool(cfg.get("dry_run", False))
        target_root = str(cfg.get("target_root") or PATHS.target_root)

        if not parts.get("esp") or "root" not in mappings:
            raise RuntimeError("Missing ESP partition or root mapping; run partition/encrypt steps first")

        format_esp(parts["esp"], dry_run=dry_run)

        volumes = resolve_volumes(cfg, separate_home="home" in mappings)
        layout: Dict[str, Any] = {}
        for volume in volumes:
            mkfs_btrfs(volume.device, volume.label, dry_run=dry_run)
            created = create_subvolumes(volume, target_root, dry_run=dry_run)
            layout[volume.mapping] = {s.name: s.mountpoint for s in volume.subvolumes}
            logger.info("Volume %s: created subvolumes %s", volume.mapping, created)

        record_decision(state, "btrfs_layout", layout)
        return state
