from __future__ import annotations

import logging
from typing import Iterable, List

from .chroot import chroot_cmd

logger = logging.getLogger(__name__)

DEFAULT_UNITS = ["NetworkManager.service", "fstrim.timer"]


def render_zram_config(size: str = "ram / 2", algorithm: str = "zstd", priority: int = 100) -> str:
    return (
        "[zram0]\n"
        f"zram-size = {size}\n"
        f"compression-algorithm = {algorithm}\n"
        f"swap-priority = {priority}\n"
    )


def enable_units(
    target_root: str,
    units: Iterable[str],
    *,
    optional: bool = False,
    dry_run: bool = False,
) -> List[str]:
    """systemctl enable each unit in the target; returns units that failed.

    Only optional units may fail without raising.
    """

    failed: List[str] = []
    for unit in units:
        r = chroot_cmd(target_root, ["systemctl", "enable", unit], check=not optional, dry_run=dry_run)
        if r.returncode != 0:
            logger.warning("Optional unit %s could not be enabled", unit)
            failed.append(unit)
    return failed
