from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

BOOTLOADERS = {"systemd-boot", "grub"}
LUKS_MODES = {"interactive", "passphrase"}
LUKS_EXISTING = {"format", "reuse", "ask"}
HOME_UNLOCK = {"prompt", "keyfile"}
REBOOT_POLICIES = {"ask", "always", "never"}


@dataclass(frozen=True)
class InstallConfig:
    raw: Dict[str, Any]

    @property
    def target_disk(self) -> Optional[str]:
        v = self.raw.get("target_disk")
        return str(v) if v else None

    @property
    def bootloader(self) -> Optional[str]:
        v = self.raw.get("bootloader")
        return str(v) if v else None

    @property
    def luks(self) -> Dict[str, Any]:
        return dict(self.raw.get("luks") or {})

    @property
    def finalize(self) -> Dict[str, Any]:
        return dict(self.raw.get("finalize") or {})

    @property
    def packages(self) -> Optional[List[str]]:
        v = self.raw.get("packages")
        return [str(p) for p in v] if v is not None else None


def validate(cfg: InstallConfig) -> List[str]:
    """Return human-readable problems; empty when the config is usable."""

    problems: List[str] = []
    if cfg.bootloader is not None and cfg.bootloader not in BOOTLOADERS:
        problems.append(f"bootloader must be one of {sorted(BOOTLOADERS)}, got {cfg.bootloader!r}")

    luks = cfg.luks
    if "mode" in luks and luks["mode"] not in LUKS_MODES:
        problems.append(f"luks.mode must be one of {sorted(LUKS_MODES)}, got {luks['mode']!r}")
    if "existing" in luks and luks["existing"] not in LUKS_EXISTING:
        problems.append(f"luks.existing must be one of {sorted(LUKS_EXISTING)}, got {luks['existing']!r}")
    if "home_unlock" in luks and luks["home_unlock"] not in HOME_UNLOCK:
        problems.append(f"luks.home_unlock must be one of {sorted(HOME_UNLOCK)}, got {luks['home_unlock']!r}")

    reboot = cfg.finalize.get("reboot")
    if reboot is not None and reboot not in REBOOT_POLICIES:
        problems.append(f"finalize.reboot must be one of {sorted(REBOOT_POLICIES)}, got {reboot!r}")

    if cfg.packages is not None and not cfg.packages:
        problems.append("packages must not be empty")

    disk = cfg.target_disk
    if disk is not None and not disk.startswith("/dev/"):
        problems.append(f"target_disk must be a /dev path, got {disk!r}")

    return problems


def load_install_config(path: str) -> InstallConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("install config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    cfg = InstallConfig(raw=raw)
    problems = validate(cfg)
    if problems:
        raise ValueError("Invalid install config:\n- " + "\n- ".join(problems))
    return cfg
