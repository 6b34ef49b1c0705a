from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from .block import partition_path
from .command import run_cmd

logger = logging.getLogger(__name__)

TYPE_ESP = "ef00"
TYPE_LUKS = "8309"


@dataclass(frozen=True)
class PartitionSpec:
    role: str  # esp|root|home
    size: str  # sgdisk end spec, "+120G" or "0" for the rest of the disk
    typecode: str
    name: str


@dataclass(frozen=True)
class PartitionPlan:
    disk: str
    partitions: tuple[PartitionSpec, ...]

    def path_for(self, role: str) -> Optional[str]:
        for n, spec in enumerate(self.partitions, start=1):
            if spec.role == role:
                return partition_path(self.disk, n)
        return None


@dataclass(frozen=True)
class PartitionResult:
    esp_part: str
    root_part: str
    home_part: Optional[str]


def _size(value: Any) -> str:
    s = str(value).strip()
    if s == "0" or s.startswith("+"):
        return s
    return f"+{s}"


def build_plan(disk: str, sizes: Dict[str, Any]) -> PartitionPlan:
    """ESP, LUKS root and (optionally) LUKS home; whatever is left stays unallocated."""

    specs = [
        PartitionSpec("esp", _size(sizes.get("esp_size", "+1G")), TYPE_ESP, "EFI"),
        PartitionSpec("root", _size(sizes.get("root_size", "+120G")), TYPE_LUKS, "LUKS-ROOT"),
    ]
    home_size = sizes.get("home_size", "+250G")
    if home_size is not None and home_size is not False and str(home_size).strip():
        if specs[-1].size == "0":
            raise ValueError("root_size 0 consumes the disk; home_size must be null")
        specs.append(PartitionSpec("home", _size(home_size), TYPE_LUKS, "LUKS-HOME"))
    return PartitionPlan(disk=disk, partitions=tuple(specs))


def wipe_signatures(disk: str, partitions: Iterable[str], *, dry_run: bool = False) -> None:
    """Clear filesystem/LUKS signatures so stale headers cannot be picked up again."""

    for part in partitions:
        run_cmd(["wipefs", "-af", part], check=False, dry_run=dry_run)
    run_cmd(["wipefs", "-af", disk], check=False, dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)


def partition_disk(plan: PartitionPlan, *, dry_run: bool = False) -> PartitionResult:
    """Create a fresh GPT on plan.disk.

    Layout:
    - 1: ESP (FAT32), mounted at /boot
    - 2: LUKS2 container for the root Btrfs
    - 3: LUKS2 container for the home Btrfs (optional)
    """

    disk = plan.disk
    logger.info("Partitioning disk=%s layout=%s", disk, [(p.role, p.size) for p in plan.partitions])

    run_cmd(["sgdisk", "--zap-all", disk], dry_run=dry_run)
    run_cmd(["sgdisk", "--clear", disk], dry_run=dry_run)

    for n, spec in enumerate(plan.partitions, start=1):
        run_cmd(
            [
                "sgdisk",
                f"-n{n}:0:{spec.size}",
                f"-t{n}:{spec.typecode}",
                f"-c{n}:{spec.name}",
                disk,
            ],
            dry_run=dry_run,
        )

    # Inform kernel
    run_cmd(["partprobe", disk], check=False, dry_run=dry_run)
    run_cmd(["udevadm", "settle"], check=False, dry_run=dry_run)

    esp_part = plan.path_for("esp")
    root_part = plan.path_for("root")
    if not esp_part or not root_part:
        raise RuntimeError(f"Partition plan for {plan.disk} needs both an esp and a root partition")
    return PartitionResult(esp_part=esp_part, root_part=root_part, home_part=plan.path_for("home"))


def format_esp(esp_part: str, *, dry_run: bool = False) -> None:
    run_cmd(["mkfs.fat", "-F32", "-n", "EFI", esp_part], dry_run=dry_run)
