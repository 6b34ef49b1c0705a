from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import write_target_file
from ..lib.services import DEFAULT_UNITS, enable_units, render_zram_config
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)


class ServicesStep:
    step_id = "70_services"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)

        zram = cfg.get("zram") or {}
        if zram.get("enabled", True):
            write_target_file(
                root,
                "/etc/systemd/zram-generator.conf",
                render_zram_config(
                    size=str(zram.get("size", "ram / 2")),
                    algorithm=str(zram.get("algorithm", "zstd")),
                    priority=int(zram.get("priority", 100)),
                ),
                mode=0o644,
                dry_run=dry_run,
            )

        units = [str(u) for u in (cfg.get("services") or DEFAULT_UNITS)]
        enable_units(root, units, dry_run=dry_run)
        logger.info("Enabled units: %s", ", ".join(units))
        return state
