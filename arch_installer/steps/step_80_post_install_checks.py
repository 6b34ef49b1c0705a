from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.chroot import read_target_file, target_file
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)


def find_problems(root: str, *, bootloader: str, has_home: bool) -> List[str]:
    """Sanity checks on the installed tree; empty when it looks bootable."""

    problems: List[str] = []

    fstab = read_target_file(root, "/etc/fstab")
    if not fstab.strip():
        problems.append("etc/fstab is missing or empty")
    elif "subvol=/@" not in fstab and "subvol=@" not in fstab:
        problems.append("etc/fstab has no entry for the @ subvolume")

    if not target_file(root, "/boot/initramfs-linux.img").exists():
        problems.append("boot/initramfs-linux.img is missing")

    if bootloader == "grub":
        if not target_file(root, "/boot/grub/grub.cfg").exists():
            problems.append("boot/grub/grub.cfg is missing")
    elif not target_file(root, "/boot/loader/entries/arch.conf").exists():
        problems.append("boot/loader/entries/arch.conf is missing")

    if has_home and not target_file(root, "/etc/crypttab").exists():
        problems.append("etc/crypttab is missing")

    return problems


class PostInstallChecksStep:
    step_id = "80_post_install_checks"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        if cfg.get("dry_run"):
            logger.info("Dry run: skipping post-install checks")
            return state

        root = _target_root(state)
        mappings = (state.get("execution") or {}).get("mappings") or {}
        problems = find_problems(
            root,
            bootloader=str(cfg.get("bootloader") or "systemd-boot"),
            has_home="home" in mappings,
        )
        if problems:
            raise RuntimeError("Post-install checks failed:\n- " + "\n- ".join(problems))

        logger.info("Post-install checks passed")
        return state
