from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Tuple

from .block import mapper_path
from .command import run_cmd

logger = logging.getLogger(__name__)

DEFAULT_MOUNT_OPTIONS = "noatime,compress=zstd"


@dataclass(frozen=True)
class Subvolume:
    name: str
    mountpoint: str


@dataclass(frozen=True)
class BtrfsVolume:
    mapping: str  # LUKS mapping name under /dev/mapper
    label: str
    subvolumes: Tuple[Subvolume, ...]

    @property
    def device(self) -> str:
        return mapper_path(self.mapping)


ROOT_SUBVOLUMES = (
    Subvolume("@", "/"),
    Subvolume("@snapshots", "/.snapshots"),
    Subvolume("@var_log", "/var/log"),
    Subvolume("@var_tmp", "/var/tmp"),
    Subvolume("@pkg", "/var/cache/pacman/pkg"),
)

HOME_SUBVOLUMES = (
    Subvolume("@home", "/home"),
    Subvolume("@home.snapshots", "/home/.snapshots"),
)


def _depth(mountpoint: str) -> int:
    return len(PurePosixPath(mountpoint).parts)


def _parse_subvolumes(raw: Any, default: Tuple[Subvolume, ...]) -> Tuple[Subvolume, ...]:
    if not raw:
        return default
    if not isinstance(raw, dict):
        raise ValueError("btrfs subvolumes must be a mapping of name -> mountpoint")
    return tuple(Subvolume(str(k), str(v)) for k, v in raw.items())


def resolve_volumes(cfg: Dict[str, Any], *, separate_home: bool) -> List[BtrfsVolume]:
    """Build the Btrfs layout from config.

    Without a separate home container the home subvolumes live on the root volume.
    """

    btrfs_cfg = cfg.get("btrfs") or {}
    root_subs = _parse_subvolumes(btrfs_cfg.get("root_subvolumes"), ROOT_SUBVOLUMES)
    home_subs = _parse_subvolumes(btrfs_cfg.get("home_subvolumes"), HOME_SUBVOLUMES)

    if separate_home:
        return [
            BtrfsVolume("root", "ROOT", root_subs),
            BtrfsVolume("home", "HOME", home_subs),
        ]
    return [BtrfsVolume("root", "ROOT", root_subs + home_subs)]


def mkfs_btrfs(device: str, label: str, *, dry_run: bool = False) -> None:
    run_cmd(["mkfs.btrfs", "-f", "-L", label, device], dry_run=dry_run)


def subvolume_exists(path: str) -> bool:
    r = run_cmd(["btrfs", "subvolume", "show", path], check=False)
    return r.returncode == 0


def create_subvolumes(volume: BtrfsVolume, scratch: str, *, dry_run: bool = False) -> List[str]:
    """Mount the top level of volume at scratch and create missing subvolumes."""

    created: List[str] = []
    run_cmd(["mount", volume.device, scratch], dry_run=dry_run)
    try:
        for sv in volume.subvolumes:
            path = f"{scratch.rstrip('/')}/{sv.name}"
            if not dry_run and subvolume_exists(path):
                logger.info("Subvolume %s already exists", path)
                continue
            run_cmd(["btrfs", "subvolume", "create", path], dry_run=dry_run)
            created.append(sv.name)
    finally:
        run_cmd(["umount", scratch], check=False, dry_run=dry_run)
    return created


def mount_plan(volumes: Iterable[BtrfsVolume]) -> List[Tuple[BtrfsVolume, Subvolume]]:
    """Every subvolume across volumes, parents before children."""

    pairs = [(v, s) for v in volumes for s in v.subvolumes]
    return sorted(pairs, key=lambda p: (_depth(p[1].mountpoint), p[1].mountpoint))


def target_path(target_root: str, mountpoint: str) -> str:
    if mountpoint == "/":
        return target_root
    return f"{target_root.rstrip('/')}{mountpoint}"


def mount_volumes(
    volumes: Iterable[BtrfsVolume],
    target_root: str,
    *,
    options: str = DEFAULT_MOUNT_OPTIONS,
    dry_run: bool = False,
) -> List[str]:
    mounted: List[str] = []
    for volume, sv in mount_plan(volumes):
        dest = target_path(target_root, sv.mountpoint)
        run_cmd(["mkdir", "-p", dest], dry_run=dry_run)
        run_cmd(
            ["mount", "-o", f"{options},subvol={sv.name}", volume.device, dest],
            dry_run=dry_run,
        )
        mounted.append(dest)
    return mounted


def compress_flags(options: str) -> str:
    """The compress option of a mount option string, for rootflags=."""

    return ",".join(o for o in options.split(",") if o.startswith("compress"))


def snapshot_targets(volumes: Iterable[BtrfsVolume]) -> List[Tuple[str, str, bool]]:
    """(snapper config name, mountpoint, has .snapshots subvolume) for / and /home.

    /home only counts when it is a subvolume of its own.
    """

    mountpoints = {s.mountpoint for v in volumes for s in v.subvolumes}
    targets = [("root", "/")]
    if "/home" in mountpoints:
        targets.append(("home", "/home"))
    return [
        (name, mp, str(PurePosixPath(mp) / ".snapshots") in mountpoints)
        for name, mp in targets
    ]
