from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from .chroot import chroot_cmd, write_target_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoaderConfig:
    default: str = "arch.conf"
    timeout: int = 1
    console_mode: str = "max"
    editor: bool = False
    auto_entries: bool = True


@dataclass(frozen=True)
class BootEntry:
    title: str
    options: str
    linux: str = "/vmlinuz-linux"
    initrds: Sequence[str] = ("/initramfs-linux.img",)


def kernel_cmdline(
    root_uuid: str,
    *,
    mapping: str = "root",
    subvol: str = "@",
    rootflags_extra: str = "compress=zstd",
    nvidia: bool = False,
    discard: bool = True,
) -> str:
    """Kernel parameters for a LUKS2 root unlocked by the sd-encrypt hook."""

    parts = [f"rd.luks.name={root_uuid}={mapping}"]
    if discard:
        parts.append("rd.luks.options=discard")
    parts.append(f"root=/dev/mapper/{mapping}")
    rootflags = f"subvol={subvol}"
    if rootflags_extra:
        rootflags += f",{rootflags_extra}"
    parts.append(f"rootflags={rootflags}")
    parts.append("rw")
    if nvidia:
        parts.append("nvidia-drm.modeset=1")
    return " ".join(parts)


def render_loader_conf(cfg: LoaderConfig) -> str:
    return (
        f"default {cfg.default}\n"
        f"timeout {cfg.timeout}\n"
        f"console-mode {cfg.console_mode}\n"
        f"editor {'yes' if cfg.editor else 'no'}\n"
        f"auto-entries {'yes' if cfg.auto_entries else 'no'}\n"
    )


def render_boot_entry(entry: BootEntry) -> str:
    out = [f"title   {entry.title}", f"linux   {entry.linux}"]
    out += [f"initrd  {i}" for i in entry.initrds]
    out.append(f"options {entry.options}")
    return "\n".join(out) + "\n"


def boot_entries(cmdline: str, *, microcode: Optional[str] = None) -> dict[str, BootEntry]:
    """arch.conf and arch-fallback.conf for the stock linux kernel."""

    ucode = [f"/{microcode}.img"] if microcode else []
    return {
        "arch.conf": BootEntry(
            title="Arch Linux",
            options=cmdline,
            initrds=tuple(ucode + ["/initramfs-linux.img"]),
        ),
        "arch-fallback.conf": BootEntry(
            title="Arch Linux (fallback initramfs)",
            options=cmdline,
            initrds=tuple(ucode + ["/initramfs-linux-fallback.img"]),
        ),
    }


def install_systemd_boot(
    *,
    target_root: str,
    cmdline: str,
    microcode: Optional[str] = None,
    loader: LoaderConfig = LoaderConfig(),
    dry_run: bool = False,
) -> None:
    """Install systemd-boot into the ESP mounted at /boot and write its entries."""

    chroot_cmd(target_root, ["bootctl", "--esp-path=/boot", "install"], dry_run=dry_run)
    write_target_file(target_root, "/boot/loader/loader.conf", render_loader_conf(loader), mode=0o644, dry_run=dry_run)
    for name, entry in boot_entries(cmdline, microcode=microcode).items():
        write_target_file(
            target_root,
            f"/boot/loader/entries/{name}",
            render_boot_entry(entry),
            mode=0o644,
            dry_run=dry_run,
        )
    logger.info("systemd-boot installed")


def _set_var(lines: list[str], key: str, value: str, *, overwrite: bool) -> None:
    pattern = re.compile(rf"^{key}=")
    for i, line in enumerate(lines):
        if pattern.match(line):
            if overwrite:
                lines[i] = f"{key}={value}"
            return
    lines.append(f"{key}={value}")


def apply_grub_defaults(text: str, cmdline: str) -> str:
    """Set GRUB_CMDLINE_LINUX to cmdline and make sure GRUB_ENABLE_CRYPTODISK=y exists."""

    lines = text.splitlines()
    _set_var(lines, "GRUB_CMDLINE_LINUX", f'"{cmdline}"', overwrite=True)
    _set_var(lines, "GRUB_ENABLE_CRYPTODISK", "y", overwrite=False)
    return "\n".join(lines) + "\n"


def install_grub_efi(
    *,
    target_root: str,
    bootloader_id: str = "GRUB",
    dry_run: bool = False,
) -> None:
    """Install GRUB for x86_64 EFI with the ESP mounted at /boot."""

    chroot_cmd(
        target_root,
        [
            "grub-install",
            "--target=x86_64-efi",
            "--efi-directory=/boot",
            f"--bootloader-id={bootloader_id}",
        ],
        dry_run=dry_run,
    )
    chroot_cmd(target_root, ["grub-mkconfig", "-o", "/boot/grub/grub.cfg"], dry_run=dry_run)
    logger.info("GRUB EFI installed")
