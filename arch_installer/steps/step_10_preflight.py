from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.preflight import check_network, ensure_tools, require_root, require_uefi
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class PreflightStep:
    step_id = "10_preflight"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        pf = cfg.get("preflight") or {}
        dry_run = bool(cfg.get("dry_run", False))

        if pf.get("require_root", True) and not dry_run:
            require_root()
        if pf.get("require_uefi", True) and not dry_run:
            require_uefi()

        installed = ensure_tools(install_missing=bool(pf.get("install_missing_tools", True)), dry_run=dry_run)
        record_decision(state, "live_tools_installed", installed)

        if pf.get("check_network", True):
            check_network(str(pf.get("network_host") or "archlinux.org"), dry_run=dry_run)

        logger.info("Preflight checks passed")
        return state
