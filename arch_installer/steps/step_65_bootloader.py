from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.bootloader import apply_grub_defaults, install_grub_efi, install_systemd_boot, kernel_cmdline
from ..lib.btrfs import DEFAULT_MOUNT_OPTIONS, compress_flags
from ..lib.chroot import read_target_file, write_target_file
from ..lib.credentials import LUKS_PASSPHRASE
from ..lib.crypttab import CrypttabEntry, create_keyfile, keyfile_path, render_crypttab
from ..lib.luks import luks_add_keyfile
from ..lib.services import enable_units
from ..state_store import record_decision
from .step_50_configure_system import _target_root

logger = logging.getLogger(__name__)


class BootloaderStep:
    step_id = "65_bootloader"

    def _write_crypttab(self, state: Dict[str, Any], root: str) -> None:
        cfg = state.get("config") or {}
        exe = state.get("execution") or {}
        decisions = exe.get("decisions") or {}
        dry_run = bool(cfg.get("dry_run", False))
        luks_cfg = cfg.get("luks") or {}

        entries: List[CrypttabEntry] = []
        if "home" in (exe.get("mappings") or {}):
            uuid = decisions.get("home_uuid")
            if not uuid:
                raise RuntimeError("Missing home_uuid decision; run encrypt step first")
            if luks_cfg.get("home_unlock") == "keyfile":
                host_keyfile = create_keyfile(root, "home", dry_run=dry_run)
                passphrase = (state.get("secrets") or {}).get(LUKS_PASSPHRASE)
                luks_add_keyfile(
                    exe["partitions"]["home"],
                    host_keyfile,
                    passphrase=passphrase,
                    dry_run=dry_run,
                )
                entries.append(CrypttabEntry("home", uuid, keyfile=keyfile_path("home")))
            else:
                entries.append(CrypttabEntry("home", uuid))

        write_target_file(root, "/etc/crypttab", render_crypttab(entries), mode=0o600, dry_run=dry_run)

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        hw = state.get("hardware") or {}
        decisions = (state.get("execution") or {}).get("decisions") or {}
        dry_run = bool(cfg.get("dry_run", False))
        root = _target_root(state)

        root_uuid = decisions.get("root_uuid")
        if not root_uuid:
            raise RuntimeError("Missing root_uuid decision; run encrypt step first")

        self._write_crypttab(state, root)

        options = str((cfg.get("btrfs") or {}).get("mount_options") or DEFAULT_MOUNT_OPTIONS)
        cmdline = kernel_cmdline(
            root_uuid,
            rootflags_extra=compress_flags(options),
            nvidia=bool(hw.get("nvidia")),
        )

        bootloader = str(cfg.get("bootloader") or "systemd-boot")
        if bootloader == "grub":
            grub_defaults = apply_grub_defaults(read_target_file(root, "/etc/default/grub"), cmdline)
            write_target_file(root, "/etc/default/grub", grub_defaults, mode=0o644, dry_run=dry_run)
            install_grub_efi(target_root=root, dry_run=dry_run)
            if cfg.get("grub_btrfs", True):
                enable_units(root, ["grub-btrfsd.service"], optional=True, dry_run=dry_run)
        else:
            install_systemd_boot(
                target_root=root,
                cmdline=cmdline,
                microcode=hw.get("microcode"),
                dry_run=dry_run,
            )

        record_decision(state, "kernel_cmdline", cmdline)
        logger.info("Bootloader %s configured", bootloader)
        return state
