from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.btrfs import resolve_volumes, snapshot_targets
from ..lib.chroot import read_target_file, write_target_file
from ..lib.services import enable_units
from ..lib.snapper import (
    SNAPPER_CONFIGS_FILE,
    SNAPPER_TIMERS,
    SnapperConfig,
    create_config,
    create_snapshot,
    merge_snapper_configs,
    render_snapper_config,
    restrict_snapshot_dir,
)
from ..state_store import record_decision
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)


def _snapshot_dir(mountpoint: str) -> str:
    return "/.snapshots" if mountpoint == "/" else f"{mountpoint.rstrip('/')}/.snapshots"


class SnapperStep:
    step_id = "75_snapper"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        snap_cfg = cfg.get("snapper") or {}
        if not snap_cfg.get("enabled", True):
            logger.info("Snapper disabled; skipping")
            return state

        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)
        mappings = (state.get("execution") or {}).get("mappings") or {}
        volumes = resolve_volumes(cfg, separate_home="home" in mappings)
        timeline = bool(snap_cfg.get("timeline", True))

        configured: List[str] = []
        manual: List[str] = []
        for name, mountpoint, has_subvol in snapshot_targets(volumes):
            if has_subvol:
                # create-config refuses an existing .snapshots
                conf = SnapperConfig(
                    name=name,
                    subvolume=mountpoint,
                    allow_groups=str(snap_cfg.get("allow_groups", "wheel")),
                    timeline_create=timeline,
                )
                write_target_file(root, conf.path, render_snapper_config(conf), mode=0o600, dry_run=dry_run)
                manual.append(name)
                configured.append(name)
            elif create_config(root, name, mountpoint, check=(name == "root"), dry_run=dry_run):
                configured.append(name)
            else:
                logger.warning("snapper create-config failed for %s; continuing without it", mountpoint)
                continue
            restrict_snapshot_dir(root, _snapshot_dir(mountpoint), dry_run=dry_run)

        if manual:
            merged = merge_snapper_configs(read_target_file(root, SNAPPER_CONFIGS_FILE), manual)
            write_target_file(root, SNAPPER_CONFIGS_FILE, merged, mode=0o644, dry_run=dry_run)

        if timeline:
            enable_units(root, SNAPPER_TIMERS, dry_run=dry_run)

        if snap_cfg.get("baseline_snapshot") and "root" in configured:
            create_snapshot(root, "root", "baseline-0 post-install", dry_run=dry_run)

        record_decision(state, "snapper_configs", configured)
        return state
