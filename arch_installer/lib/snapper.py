from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List

from .chroot import chroot_cmd

logger = logging.getLogger(__name__)

SNAPPER_CONFIGS_FILE = "/etc/conf.d/snapper"
SNAPPER_TIMERS = ["snapper-timeline.timer", "snapper-cleanup.timer"]


@dataclass(frozen=True)
class SnapperConfig:
    name: str
    subvolume: str
    allow_groups: str = "wheel"
    sync_acl: bool = True
    timeline_create: bool = True
    number_cleanup: bool = True
    number_limit: str = "50"
    timeline_limit_hourly: str = "5"
    timeline_limit_daily: str = "7"
    timeline_limit_weekly: str = "0"
    timeline_limit_monthly: str = "0"
    timeline_limit_yearly: str = "0"

    @property
    def path(self) -> str:
        return f"/etc/snapper/configs/{self.name}"


def _yn(v: bool) -> str:
    return "yes" if v else "no"


def render_snapper_config(cfg: SnapperConfig) -> str:
    """Config file in snapper-configs(5) format, for a pre-existing .snapshots subvolume."""

    pairs = [
        ("FSTYPE", "btrfs"),
        ("SUBVOLUME", cfg.subvolume),
        ("ALLOW_USERS", ""),
        ("ALLOW_GROUPS", cfg.allow_groups),
        ("SYNC_ACL", _yn(cfg.sync_acl)),
        ("NUMBER_CLEANUP", _yn(cfg.number_cleanup)),
        ("NUMBER_LIMIT", cfg.number_limit),
        ("TIMELINE_CREATE", _yn(cfg.timeline_create)),
        ("TIMELINE_CLEANUP", "yes"),
        ("TIMELINE_LIMIT_HOURLY", cfg.timeline_limit_hourly),
        ("TIMELINE_LIMIT_DAILY", cfg.timeline_limit_daily),
        ("TIMELINE_LIMIT_WEEKLY", cfg.timeline_limit_weekly),
        ("TIMELINE_LIMIT_MONTHLY", cfg.timeline_limit_monthly),
        ("TIMELINE_LIMIT_YEARLY", cfg.timeline_limit_yearly),
    ]
    lines = ["# Written by arch-installer. See snapper-configs(5)."]
    lines += [f'{k}="{v}"' for k, v in pairs]
    return "\n".join(lines) + "\n"


_CONFIGS_RE = re.compile(r'^SNAPPER_CONFIGS="(.*)"\s*$')


def merge_snapper_configs(text: str, names: Iterable[str]) -> str:
    """Add names to SNAPPER_CONFIGS="..." without duplicates, keeping existing order."""

    lines = text.splitlines()
    for i, line in enumerate(lines):
        m = _CONFIGS_RE.match(line)
        if m:
            merged = _unique(m.group(1).split() + list(names))
            lines[i] = f'SNAPPER_CONFIGS="{" ".join(merged)}"'
            break
    else:
        lines.append(f'SNAPPER_CONFIGS="{" ".join(_unique(names))}"')
    return "\n".join(lines) + "\n"


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(i for i in items if i))


def create_config(target_root: str, name: str, mountpoint: str, *, check: bool = True, dry_run: bool = False) -> bool:
    r = chroot_cmd(
        target_root,
        ["snapper", "--no-dbus", "-c", name, "create-config", mountpoint],
        check=check,
        dry_run=dry_run,
    )
    return r.returncode == 0


def create_snapshot(target_root: str, name: str, description: str, *, dry_run: bool = False) -> None:
    chroot_cmd(
        target_root,
        ["snapper", "--no-dbus", "-c", name, "create", "-d", description],
        dry_run=dry_run,
    )


def restrict_snapshot_dir(target_root: str, path: str, *, dry_run: bool = False) -> None:
    chroot_cmd(target_root, ["chmod", "750", path], check=False, dry_run=dry_run)
