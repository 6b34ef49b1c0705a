from __future__ import annotations

from arch_installer.lib.luks import luks_close
from arch_installer.lib.teardown import teardown_target


def test_luks_close_reports_result(fake_run):
    assert luks_close("root")
    fake_run.on("cryptsetup", "close", returncode=4)
    assert not luks_close("root")


def test_teardown_closes_open_mappings(fake_run, monkeypatch, caplog):
    monkeypatch.setattr("arch_installer.lib.teardown.mapping_exists", lambda name: name == "root")
    monkeypatch.setattr("arch_installer.lib.teardown.is_mountpoint", lambda _p: True)
    fake_run.on("cryptsetup", "close", returncode=4)

    teardown_target("/mnt", ["root", "home"])

    assert fake_run.calls == [
        ["swapoff", "-a"],
        ["umount", "-R", "/mnt"],
        ["cryptsetup", "close", "root"],
        ["udevadm", "settle"],
    ]
    assert "cryptsetup close root failed" in caplog.text


def test_teardown_clean_system_runs_only_safe_commands(fake_run, monkeypatch):
    monkeypatch.setattr("arch_installer.lib.teardown.mapping_exists", lambda _name: False)
    monkeypatch.setattr("arch_installer.lib.teardown.is_mountpoint", lambda _p: False)

    teardown_target("/mnt", ["root", "home"])

    assert [c[0] for c in fake_run.calls] == ["swapoff", "udevadm"]
