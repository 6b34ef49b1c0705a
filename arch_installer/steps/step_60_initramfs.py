from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import read_target_file, write_target_file
from ..lib.initramfs import apply_mkinitcpio_settings, regenerate_initramfs, settings_for
from ..lib.system_files import render_nvidia_modprobe
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)

MKINITCPIO_CONF = "/etc/mkinitcpio.conf"


class InitramfsStep:
    step_id = "60_initramfs"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        hw = state.get("hardware") or {}
        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)
        nvidia = bool(hw.get("nvidia"))

        if nvidia:
            write_target_file(root, "/etc/modprobe.d/nvidia.conf", render_nvidia_modprobe(), mode=0o644, dry_run=dry_run)

        settings = settings_for(nvidia=nvidia)
        conf = apply_mkinitcpio_settings(read_target_file(root, MKINITCPIO_CONF), settings)
        write_target_file(root, MKINITCPIO_CONF, conf, mode=0o644, dry_run=dry_run)
        regenerate_initramfs(root, dry_run=dry_run)

        logger.info("initramfs regenerated (nvidia=%s)", nvidia)
        return state
