from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from .command import run_cmd
from .env import PATHS

logger = logging.getLogger(__name__)


def partition_path(disk: str, n: int) -> str:
    # nvme0n1 / mmcblk0 / loop0 style names take a "p" separator
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def mapper_path(name: str) -> str:
    return f"{PATHS.mapper_dir}/{name}"


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Return filesystem (or LUKS header) UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev], check=False, dry_run=dry_run)
    uuid = (r.stdout or "").strip()
    if uuid:
        return uuid
    if dry_run:
        return f"DRY-RUN-UUID-{dev.rsplit('/', 1)[-1]}"
    raise RuntimeError(f"Unable to determine UUID for {dev}")


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def is_mountpoint(path: str) -> bool:
    r = run_cmd(["mountpoint", "-q", path], check=False)
    return r.returncode == 0


def mapping_exists(name: str) -> bool:
    return Path(mapper_path(name)).exists()


def child_partitions(disk: str) -> list[str]:
    """Partitions currently known to the kernel for disk (best-effort)."""

    r = run_cmd(["lsblk", "-ln", "-o", "NAME", disk], check=False)
    if r.returncode != 0:
        return []
    names = [ln.strip() for ln in r.stdout.splitlines() if ln.strip()]
    # first line is the disk itself
    return [f"/dev/{n}" for n in names[1:]]
