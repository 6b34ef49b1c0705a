from __future__ import annotations

import logging
from typing import Iterable

from .block import is_mountpoint, mapping_exists
from .command import run_cmd
from .luks import luks_close

logger = logging.getLogger(__name__)


def teardown_target(
    target_root: str,
    mapping_names: Iterable[str],
    *,
    dry_run: bool = False,
) -> None:
    """Undo mounts, swap and LUKS mappings left by a previous or failed run.

    Every command is best-effort: a clean system is not an error.
    """

    names = list(mapping_names)
    logger.info("Tearing down %s and mappings %s", target_root, names)
    run_cmd(["swapoff", "-a"], check=False, dry_run=dry_run)

    if dry_run or is_mountpoint(target_root):
        run_cmd(["umount", "-R", target_root], check=False, dry_run=dry_run)

    for name in names:
        if dry_run or mapping_exists(name):
            if not luks_close(name, dry_run=dry_run):
                logger.warning("cryptsetup close %s failed or already closed", name)

    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)
