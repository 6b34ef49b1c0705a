from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable

import yaml

from .lib.pkg import DEFAULT_PACKAGES
from .lib.services import DEFAULT_UNITS

logger = logging.getLogger(__name__)

STATE_VERSION = "1"

# Never persisted: passwords and LUKS passphrases.
SECRETS_KEY = "secrets"

DEFAULT_CONFIG: Dict[str, Any] = {
    "interactive": True,
    "assume_yes": False,
    "dry_run": False,
    "target_disk": "/dev/sda",
    "target_root": "/mnt",
    "hostname": "arch-pc",
    "username": "user404",
    "user_shell": "/usr/bin/zsh",
    "timezone": "Europe/Amsterdam",
    "locales": ["en_US.UTF-8 UTF-8", "ru_RU.UTF-8 UTF-8"],
    "lang": "en_US.UTF-8",
    "vconsole": {"keymap": "us", "font": "cyr-sun16", "font_map": "8859-5"},
    "partitions": {"esp_size": "+1G", "root_size": "+120G", "home_size": "+250G"},
    "wipe_signatures": True,
    "luks": {
        # interactive: cryptsetup prompts itself; passphrase: asked once, fed on stdin
        "mode": "interactive",
        # format|reuse|ask when a partition already carries a LUKS header
        "existing": "format",
        "open_attempts": 0,
        # prompt|keyfile for unlocking home at boot
        "home_unlock": "prompt",
    },
    "btrfs": {"mount_options": "noatime,compress=zstd"},
    "packages": list(DEFAULT_PACKAGES),
    "hardware": {"cpu_vendor": "auto", "gpu": "auto"},
    "bootloader": "systemd-boot",
    "grub_btrfs": True,
    "zram": {"enabled": True, "size": "ram / 2", "algorithm": "zstd", "priority": 100},
    "services": list(DEFAULT_UNITS),
    "snapper": {
        "enabled": True,
        "timeline": True,
        "baseline_snapshot": False,
        "allow_groups": "wheel",
    },
    "preflight": {
        "require_root": True,
        "require_uefi": True,
        "check_network": True,
        "network_host": "archlinux.org",
        "install_missing_tools": True,
    },
    "finalize": {"reboot": "ask", "copy_log": True},
    "cleanup_on_failure": True,
}


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    if _detect_format(p) == "json":
        data = json.loads(p.read_text(encoding="utf-8"))
    else:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def redact(state: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in state.items() if k != SECRETS_KEY}


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    data = redact(state)
    if _detect_format(p) == "json":
        p.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    else:
        p.write_text(yaml.safe_dump(data, sort_keys=False) + "\n", encoding="utf-8")


def merge_defaults(target: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively fill missing keys of target from defaults (user values win)."""

    for key, value in defaults.items():
        if key not in target:
            target[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(target[key], dict):
            merge_defaults(target[key], value)
    return target


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding user values)."""

    state.setdefault("version", STATE_VERSION)
    state.setdefault("config", {})
    state.setdefault("hardware", {})
    state.setdefault("execution", {})
    state.setdefault(SECRETS_KEY, {})

    merge_defaults(state["config"], DEFAULT_CONFIG)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("partitions", {})
    exe.setdefault("mappings", {})
    exe.setdefault("mounts", {})
    exe.setdefault("decisions", {})

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def record_decision(state: Dict[str, Any], key: str, value: Any) -> None:
    state.setdefault("execution", {}).setdefault("decisions", {})[key] = value


def unmark_steps(state: Dict[str, Any], step_ids: Iterable[str]) -> None:
    drop = set(step_ids)
    exe = state.setdefault("execution", {})
    exe["completed_steps"] = [s for s in exe.get("completed_steps") or [] if s not in drop]
