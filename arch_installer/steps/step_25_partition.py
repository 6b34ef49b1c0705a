from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.block import child_partitions
from ..lib.prompt import confirm_yes
from ..lib.storage import build_plan, partition_disk, wipe_signatures

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "25_partition"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        dry_run = bool(cfg.get("dry_run", False))

        disk = cfg.get("target_disk")
        if not disk:
            raise RuntimeError("config.target_disk is required for partitioning")

        plan = build_plan(disk, cfg.get("partitions") or {})
        roles = ", ".join(f"{p.name} {p.size}" for p in plan.partitions)
        confirm_yes(
            f"WARNING: This will DESTROY the partition table of {disk} ({roles}).",
            assume_yes=bool(cfg.get("assume_yes", False)),
        )

        if cfg.get("wipe_signatures", True):
            existing = (cfg.get("luks") or {}).get("existing", "format")
            # keep LUKS headers when they may be reused
            parts = [] if existing in {"reuse", "ask"} else child_partitions(disk)
            wipe_signatures(disk, parts, dry_run=dry_run)

        result = partition_disk(plan, dry_run=dry_run)
        exe["partitions"] = {
            "esp": result.esp_part,
            "root": result.root_part,
            "home": result.home_part,
        }
        logger.info("Partitions: esp=%s root=%s home=%s", result.esp_part, result.root_part, result.home_part)
        return state
