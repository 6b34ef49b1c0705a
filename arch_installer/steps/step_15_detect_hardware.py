from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.hwdetect import detect_hardware

logger = logging.getLogger(__name__)


class DetectHardwareStep:
    step_id = "15_detect_hardware"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        hw_cfg = cfg.get("hardware") or {}
        dry_run = bool(cfg.get("dry_run", False))

        state["hardware"] = detect_hardware(
            dry_run=dry_run,
            cpu_vendor=str(hw_cfg.get("cpu_vendor", "auto")),
            gpu=str(hw_cfg.get("gpu", "auto")),
        )
        return state
