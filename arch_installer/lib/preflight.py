from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from .command import command_exists, run_cmd
from .env import PATHS

logger = logging.getLogger(__name__)

# command -> package providing it on the live ISO
REQUIRED_TOOLS: dict[str, str] = {
    "sgdisk": "gptfdisk",
    "partprobe": "parted",
    "wipefs": "util-linux",
    "cryptsetup": "cryptsetup",
    "mkfs.fat": "dosfstools",
    "mkfs.btrfs": "btrfs-progs",
    "btrfs": "btrfs-progs",
    "pacstrap": "arch-install-scripts",
    "genfstab": "arch-install-scripts",
    "arch-chroot": "arch-install-scripts",
    "blkid": "util-linux",
    "lspci": "pciutils",
}


def require_root() -> None:
    if os.geteuid() != 0:
        raise RuntimeError("Run this installer as root.")


def require_uefi(efivars: str = PATHS.efivars) -> None:
    if not Path(efivars).is_dir():
        raise RuntimeError("UEFI environment not detected. Reboot the live ISO in UEFI mode.")


def missing_tools(tools: Mapping[str, str] = REQUIRED_TOOLS) -> dict[str, str]:
    return {cmd: pkg for cmd, pkg in tools.items() if not command_exists(cmd)}


def ensure_tools(
    tools: Mapping[str, str] = REQUIRED_TOOLS,
    *,
    install_missing: bool = True,
    dry_run: bool = False,
) -> list[str]:
    """Make sure every required command exists; returns packages installed."""

    missing = missing_tools(tools)
    if not missing:
        return []
    if not install_missing:
        raise RuntimeError(f"Required tools missing in live image: {', '.join(sorted(missing))}")

    packages = sorted(set(missing.values()))
    logger.info("Installing missing tools: %s", ", ".join(packages))
    run_cmd(["pacman", "-Sy", "--noconfirm", "--needed", *packages], dry_run=dry_run)
    return packages


def check_network(host: str = "archlinux.org", *, dry_run: bool = False) -> None:
    r = run_cmd(["ping", "-c", "1", "-W", "2", host], check=False, dry_run=dry_run)
    if r.returncode != 0:
        raise RuntimeError("No internet connectivity. Configure networking in the live ISO and re-run.")
