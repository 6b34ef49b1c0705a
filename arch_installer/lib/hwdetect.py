from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Any, Dict, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

_CPU_VENDOR_MAP = {
    "GenuineIntel": "intel",
    "AuthenticAMD": "amd",
}

_MICROCODE = {
    "intel": "intel-ucode",
    "amd": "amd-ucode",
}

NVIDIA_PCI_VENDOR = "0x10de"


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def parse_cpu_vendor(cpuinfo: str) -> str:
    for line in cpuinfo.splitlines():
        if line.lower().startswith("vendor_id"):
            raw = line.split(":", 1)[-1].strip()
            return _CPU_VENDOR_MAP.get(raw, "unknown")
    return "unknown"


def parse_meminfo_mb(meminfo: str) -> Optional[int]:
    for line in meminfo.splitlines():
        if line.startswith("MemTotal:"):
            return int(line.split()[1]) // 1024
    return None


def lspci_has_nvidia(lspci_output: str) -> bool:
    for ln in lspci_output.splitlines():
        low = ln.lower()
        if any(x in low for x in ("vga", "3d", "display")) and "nvidia" in low:
            return True
    return False


def _drm_has_nvidia(drm: Path = Path("/sys/class/drm")) -> bool:
    if not drm.exists():
        return False
    for card in sorted(drm.glob("card[0-9]*")):
        vendor = _read_text(card / "device" / "vendor")
        if vendor and vendor.lower() == NVIDIA_PCI_VENDOR:
            return True
    return False


def _detect_nvidia(*, dry_run: bool) -> bool:
    if _drm_has_nvidia():
        return True
    if platform.system().lower() != "linux":
        return False
    r = run_cmd(["lspci"], check=False, dry_run=dry_run)
    return lspci_has_nvidia(r.stdout or "")


def detect_hardware(
    dry_run: bool = False,
    *,
    cpu_vendor: str = "auto",
    gpu: str = "auto",
) -> Dict[str, Any]:
    """Hardware facts that change what gets installed and how the system boots.

    cpu_vendor: auto|intel|amd|none, gpu: auto|nvidia|none.
    """

    if cpu_vendor == "auto":
        cpu_vendor = parse_cpu_vendor(_read_text(Path("/proc/cpuinfo")) or "")
    nvidia = _detect_nvidia(dry_run=dry_run) if gpu == "auto" else gpu == "nvidia"

    hw: Dict[str, Any] = {
        "arch": platform.machine(),
        "cpu_vendor": cpu_vendor,
        "microcode": _MICROCODE.get(cpu_vendor),
        "gpu_vendor": "nvidia" if nvidia else "other",
        "nvidia": nvidia,
    }

    ram_mb = parse_meminfo_mb(_read_text(Path("/proc/meminfo")) or "")
    if ram_mb:
        hw["ram_mb"] = ram_mb

    logger.info(
        "Hardware: arch=%s cpu=%s microcode=%s nvidia=%s",
        hw["arch"],
        hw["cpu_vendor"],
        hw["microcode"],
        hw["nvidia"],
    )
    return hw
