from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .chroot import chroot_cmd

logger = logging.getLogger(__name__)

DEFAULT_HOOKS: Tuple[str, ...] = (
    "base",
    "systemd",
    "autodetect",
    "modconf",
    "kms",
    "keyboard",
    "sd-vconsole",
    "block",
    "sd-encrypt",
    "btrfs",
    "filesystems",
    "fsck",
)

NVIDIA_MODULES: Tuple[str, ...] = ("nvidia", "nvidia_modeset", "nvidia_drm")


@dataclass(frozen=True)
class MkinitcpioSettings:
    modules: Tuple[str, ...] = ("btrfs",)
    binaries: Tuple[str, ...] = ("/usr/bin/btrfs",)
    files: Tuple[str, ...] = ()
    hooks: Tuple[str, ...] = DEFAULT_HOOKS
    compression: str = "zstd"
    extra: Dict[str, str] = field(default_factory=dict)

    def assignments(self) -> List[Tuple[str, str]]:
        out = [
            ("MODULES", f"({' '.join(self.modules)})"),
            ("BINARIES", f"({' '.join(self.binaries)})"),
            ("FILES", f"({' '.join(self.files)})"),
            ("HOOKS", f"({' '.join(self.hooks)})"),
        ]
        if self.compression:
            out.append(("COMPRESSION", f'"{self.compression}"'))
        out += sorted(self.extra.items())
        return out


def settings_for(*, nvidia: bool, compression: str = "zstd") -> MkinitcpioSettings:
    modules = (NVIDIA_MODULES if nvidia else ()) + ("btrfs",)
    return MkinitcpioSettings(modules=modules, compression=compression)


def apply_mkinitcpio_settings(text: str, settings: MkinitcpioSettings) -> str:
    """Replace the KEY=... lines of mkinitcpio.conf, appending keys not present.

    Commented examples (#HOOKS=...) are left alone.
    """

    lines = text.splitlines()
    for key, value in settings.assignments():
        pattern = re.compile(rf"^{key}=")
        replaced = False
        for i, line in enumerate(lines):
            if pattern.match(line):
                lines[i] = f"{key}={value}"
                replaced = True
        if not replaced:
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def regenerate_initramfs(target_root: str, *, dry_run: bool = False) -> None:
    chroot_cmd(target_root, ["mkinitcpio", "-P"], dry_run=dry_run)
