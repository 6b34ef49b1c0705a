from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.env import PATHS
from ..lib.teardown import teardown_target

logger = logging.getLogger(__name__)

MAPPING_NAMES = ("root", "home")


class CleanupPreviousStep:
    step_id = "20_cleanup_previous"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))
        target_root = str(cfg.get("target_root") or PATHS.target_root)

        teardown_target(target_root, MAPPING_NAMES, dry_run=dry_run)

        exe = state.setdefault("execution", {})
        exe["mappings"] = {}
        exe["mounts"] = {"target_root": target_root, "mounted": []}
        return state
