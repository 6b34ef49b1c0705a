from __future__ import annotations

from arch_installer.lib import hwdetect
from arch_installer.lib.hwdetect import detect_hardware, lspci_has_nvidia, parse_cpu_vendor, parse_meminfo_mb


def test_parse_cpu_vendor():
    assert parse_cpu_vendor("processor\t: 0\nvendor_id\t: GenuineIntel\n") == "intel"
    assert parse_cpu_vendor("vendor_id\t: AuthenticAMD\n") == "amd"
    assert parse_cpu_vendor("vendor_id\t: ARM\n") == "unknown"
    assert parse_cpu_vendor("") == "unknown"


def test_parse_meminfo():
    assert parse_meminfo_mb("MemTotal:       16318412 kB\nMemFree: 1 kB\n") == 15935
    assert parse_meminfo_mb("") is None


def test_lspci_has_nvidia():
    out = (
        "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics 630\n"
        "01:00.0 VGA compatible controller: NVIDIA Corporation TU106 [GeForce RTX 2060]\n"
    )
    assert lspci_has_nvidia(out)
    assert not lspci_has_nvidia("01:00.1 Audio device: NVIDIA Corporation TU106 HD Audio\n")


def test_overrides_skip_probing(fake_run):
    hw = detect_hardware(cpu_vendor="amd", gpu="nvidia")
    assert hw["microcode"] == "amd-ucode"
    assert hw["nvidia"] is True
    assert hw["gpu_vendor"] == "nvidia"
    assert fake_run.calls == []


def test_auto_gpu_uses_lspci(fake_run, monkeypatch):
    monkeypatch.setattr(hwdetect, "_drm_has_nvidia", lambda: False)
    monkeypatch.setattr(hwdetect.platform, "system", lambda: "Linux")
    fake_run.on("lspci", stdout="01:00.0 3D controller: NVIDIA Corporation GA107M\n")
    hw = detect_hardware(cpu_vendor="none", gpu="auto")
    assert hw["nvidia"] is True
    assert hw["microcode"] is None


def test_drm_vendor_file(tmp_path):
    dev = tmp_path / "card0" / "device"
    dev.mkdir(parents=True)
    (dev / "vendor").write_text("0x10de\n")
    assert hwdetect._drm_has_nvidia(tmp_path)
    (dev / "vendor").write_text("0x8086\n")
    assert not hwdetect._drm_has_nvidia(tmp_path)
