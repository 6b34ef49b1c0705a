from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    state_default: str = "/var/lib/arch-installer/state.json"
    log_default: str = "/var/log/arch-installer.log"
    efivars: str = "/sys/firmware/efi/efivars"
    mapper_dir: str = "/dev/mapper"


PATHS = Paths()

ENV_ROOT_PASSWORD = "ARCH_INSTALLER_ROOT_PASSWORD"
ENV_USER_PASSWORD = "ARCH_INSTALLER_USER_PASSWORD"
ENV_LUKS_PASSPHRASE = "ARCH_INSTALLER_LUKS_PASSPHRASE"
