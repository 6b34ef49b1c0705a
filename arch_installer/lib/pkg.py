from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from .chroot import write_target_file
from .command import run_cmd

logger = logging.getLogger(__name__)

DEFAULT_PACKAGES = [
    "base",
    "linux",
    "linux-firmware",
    "btrfs-progs",
    "cryptsetup",
    "mkinitcpio",
    "networkmanager",
    "sudo",
    "zsh",
    "zsh-completions",
    "snapper",
    "zram-generator",
    "git",
    "nano",
]

NVIDIA_PACKAGES = ["nvidia", "nvidia-utils", "nvidia-settings"]
GRUB_PACKAGES = ["grub", "efibootmgr"]
GRUB_BTRFS_PACKAGES = ["grub-btrfs", "inotify-tools"]


def resolve_packages(cfg: Dict[str, Any], hw: Dict[str, Any]) -> List[str]:
    """Configured base list plus what the detected hardware and bootloader need."""

    packages: List[str] = list(cfg.get("packages") or DEFAULT_PACKAGES)

    microcode = hw.get("microcode")
    if microcode:
        packages.append(str(microcode))
    if hw.get("nvidia"):
        packages += NVIDIA_PACKAGES
    if cfg.get("bootloader") == "grub":
        packages += GRUB_PACKAGES
        if cfg.get("grub_btrfs", True):
            packages += GRUB_BTRFS_PACKAGES

    # keep first occurrence order
    return list(dict.fromkeys(packages))


def pacstrap(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        raise ValueError("pacstrap needs at least one package")
    run_cmd(["pacstrap", "-K", target_root, *packages], dry_run=dry_run)


def genfstab(target_root: str, *, dry_run: bool = False) -> str:
    """Generate UUID-based fstab and write it to the target (replacing any previous one)."""

    r = run_cmd(["genfstab", "-U", target_root], dry_run=dry_run)
    contents = r.stdout
    if not dry_run and not contents.strip():
        raise RuntimeError("genfstab produced no entries; are the target filesystems mounted?")
    write_target_file(target_root, "/etc/fstab", contents, dry_run=dry_run)
    return contents
