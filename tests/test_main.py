from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from arch_installer import main as installer_main

UUID = "7d3f1b2c-aaaa-bbbb-cccc-ddddeeeeffff"

FSTAB = """\
# /dev/mapper/root LABEL=ROOT
UUID=7d3f1b2c-aaaa-bbbb-cccc-ddddeeeeffff\t/\tbtrfs\trw,noatime,compress=zstd:3,subvol=/@\t0 0
"""


def _write_config(tmp_path: Path, **extra) -> str:
    cfg = {
        "interactive": False,
        "assume_yes": True,
        "target_disk": "/dev/nvme0n1",
        "target_root": str(tmp_path / "mnt"),
        "hostname": "testbox",
        "username": "alice",
        "luks": {"mode": "passphrase", "home_unlock": "keyfile", "open_attempts": 1},
        "hardware": {"cpu_vendor": "intel", "gpu": "none"},
        "preflight": {"require_root": False, "require_uefi": False, "check_network": False},
        "snapper": {"baseline_snapshot": True},
        "finalize": {"reboot": "never"},
    }
    cfg.update(extra)
    path = tmp_path / "install.yaml"
    path.write_text(yaml.safe_dump(cfg))
    return str(path)


@pytest.fixture
def secrets_env(monkeypatch):
    monkeypatch.setenv("ARCH_INSTALLER_ROOT_PASSWORD", "rootpw")
    monkeypatch.setenv("ARCH_INSTALLER_USER_PASSWORD", "userpw")
    monkeypatch.setenv("ARCH_INSTALLER_LUKS_PASSPHRASE", "lukspw")


@pytest.fixture
def live_system(fake_run, monkeypatch, tmp_path):
    """A live ISO where every command succeeds against tmp_path/mnt."""

    root = str(tmp_path / "mnt")
    monkeypatch.setattr("arch_installer.lib.preflight.command_exists", lambda _name: True)
    monkeypatch.setattr("arch_installer.steps.step_18_gather_config.is_block_device", lambda _dev: True)

    def make_initramfs(_argv):
        boot = Path(root) / "boot"
        boot.mkdir(parents=True, exist_ok=True)
        (boot / "initramfs-linux.img").write_bytes(b"\0")

    fake_run.on("mountpoint", returncode=1)
    fake_run.on("cryptsetup", "isLuks", returncode=1)
    fake_run.on("blkid", stdout=UUID + "\n")
    fake_run.on("btrfs", "subvolume", "show", returncode=1)
    fake_run.on("genfstab", stdout=FSTAB)
    fake_run.on("arch-chroot", root, "id", returncode=1)
    fake_run.on("arch-chroot", root, "mkinitcpio", effect=make_initramfs)
    return fake_run


def test_full_install(tmp_path, live_system, secrets_env, isolated_logging):
    root = tmp_path / "mnt"
    state_path = tmp_path / "state.json"

    state = installer_main.run(
        state_path=str(state_path),
        log_path=str(tmp_path / "install.log"),
        config_path=_write_config(tmp_path),
    )

    assert state["execution"]["completed_steps"] == [s.step_id for s in installer_main.build_steps()]
    assert state["execution"]["errors"] == []

    run = live_system
    assert run.ran("sgdisk", "-n3:0:+250G", "-t3:8309", "-c3:LUKS-HOME", "/dev/nvme0n1")
    assert run.input_for("cryptsetup", "luksFormat") == "lukspw"
    assert run.ran("mkfs.fat", "-F32", "-n", "EFI", "/dev/nvme0n1p1")
    assert run.ran("mkfs.btrfs", "-f", "-L", "HOME", "/dev/mapper/home")
    assert run.ran("mount", "-o", "noatime,compress=zstd,subvol=@pkg", "/dev/mapper/root", f"{root}/var/cache/pacman/pkg")
    assert run.ran("mount", "/dev/nvme0n1p1", f"{root}/boot")
    pacstrap = run.matching("pacstrap")[0]
    assert pacstrap[:3] == ["pacstrap", "-K", str(root)]
    assert "intel-ucode" in pacstrap
    assert run.ran("arch-chroot", str(root), "useradd", "-m", "-G", "wheel", "-s", "/usr/bin/zsh", "alice")
    assert run.input_for("arch-chroot", str(root), "chpasswd") == "root:rootpw\nalice:userpw\n"
    assert run.input_for("cryptsetup", "luksAddKey") == "lukspw"
    assert run.ran("arch-chroot", str(root), "systemctl", "enable", "NetworkManager.service")

    assert (root / "etc/fstab").read_text() == FSTAB
    assert (root / "etc/hostname").read_text() == "testbox\n"
    assert "en_US.UTF-8 UTF-8" in (root / "etc/locale.gen").read_text().splitlines()
    assert "MODULES=(btrfs)" in (root / "etc/mkinitcpio.conf").read_text()
    assert (root / "etc/sudoers.d/99-wheel").stat().st_mode & 0o777 == 0o440
    assert f"rd.luks.name={UUID}=root" in (root / "boot/loader/entries/arch.conf").read_text()
    assert "zram-size = ram / 2" in (root / "etc/systemd/zram-generator.conf").read_text()
    assert 'SNAPPER_CONFIGS="root home"' in (root / "etc/conf.d/snapper").read_text()
    assert (root / "var/log/installer/install.log").exists()
    assert not run.ran("reboot")

    saved = json.loads(state_path.read_text())
    assert "secrets" not in saved
    assert "lukspw" not in state_path.read_text()
    assert saved["execution"]["decisions"]["home_uuid"] == UUID


def test_resume_skips_completed_steps(tmp_path, live_system, secrets_env, isolated_logging):
    config = _write_config(tmp_path)
    state_path = str(tmp_path / "state.json")
    log_path = str(tmp_path / "install.log")

    installer_main.run(state_path=state_path, log_path=log_path, config_path=config, stop_after="25_partition")
    assert json.loads(Path(state_path).read_text())["execution"]["completed_steps"][-1] == "25_partition"

    live_system.calls.clear()
    state = installer_main.run(state_path=state_path, log_path=log_path, config_path=config)

    assert "25_partition" in state["execution"]["summary"]["skipped_steps"]
    assert not live_system.ran("sgdisk")
    assert live_system.ran("cryptsetup", "luksFormat")


def test_failure_records_error_and_tears_down(tmp_path, live_system, secrets_env, isolated_logging):
    live_system.on("pacstrap", returncode=1)
    state_path = tmp_path / "state.json"

    with pytest.raises(installer_main.CommandError):
        installer_main.run(
            state_path=str(state_path),
            log_path=str(tmp_path / "install.log"),
            config_path=_write_config(tmp_path),
        )

    saved = json.loads(state_path.read_text())
    assert saved["execution"]["errors"][0]["step"] == "45_pacstrap"
    assert "30_encrypt" not in saved["execution"]["completed_steps"]
    assert "40_mount" not in saved["execution"]["completed_steps"]
    assert saved["execution"]["mounts"] == {}
    assert live_system.calls[-1] == ["udevadm", "settle"]
    assert live_system.ran("swapoff", "-a")


def test_resume_after_failure_reopens_and_remounts(tmp_path, live_system, secrets_env, isolated_logging):
    config = _write_config(tmp_path)
    state_path = str(tmp_path / "state.json")
    log_path = str(tmp_path / "install.log")
    live_system.on("pacstrap", returncode=[1, 0])

    with pytest.raises(installer_main.CommandError):
        installer_main.run(state_path=state_path, log_path=log_path, config_path=config)

    live_system.calls.clear()
    state = installer_main.run(state_path=state_path, log_path=log_path, config_path=config)

    assert state["execution"]["completed_steps"] == [s.step_id for s in installer_main.build_steps()]
    assert "18_gather_config" in state["execution"]["summary"]["skipped_steps"]
    assert "30_encrypt" in state["execution"]["summary"]["ran_steps"]
    assert live_system.ran("cryptsetup", "open", "--key-file=-", "/dev/nvme0n1p2", "root")
    assert live_system.ran("mount", "-o")
    assert live_system.ran("pacstrap")
    assert state["execution"]["mounts"]["target_root"] == str(tmp_path / "mnt")


def test_dry_run_changes_nothing(tmp_path, fake_run, secrets_env, isolated_logging):
    code = installer_main.main(
        [
            "--config",
            _write_config(tmp_path),
            "--state",
            str(tmp_path / "state.yaml"),
            "--log",
            str(tmp_path / "install.log"),
            "--dry-run",
            "--disk",
            "/dev/vda",
        ]
    )
    assert code == 0
    # only the read-only partition listing runs
    assert [c[0] for c in fake_run.calls] == ["lsblk"]
    assert not (tmp_path / "state.yaml").exists()
    saved = yaml.safe_load((tmp_path / "state.dry-run.yaml").read_text())
    assert saved["config"]["target_disk"] == "/dev/vda"
    assert saved["execution"]["partitions"]["root"] == "/dev/vda2"
    assert not (tmp_path / "mnt" / "etc").exists()


def test_dry_run_leaves_real_state_alone(tmp_path, live_system, secrets_env, isolated_logging):
    config = _write_config(tmp_path)
    state_path = str(tmp_path / "state.json")
    log_path = str(tmp_path / "install.log")

    installer_main.run(state_path=state_path, log_path=log_path, config_path=config, overrides={"dry_run": True})
    assert not Path(state_path).exists()

    live_system.calls.clear()
    state = installer_main.run(state_path=state_path, log_path=log_path, config_path=config)

    assert state["config"]["dry_run"] is False
    assert state["execution"]["summary"]["skipped_steps"] == []
    assert live_system.ran("sgdisk")
    assert live_system.ran("pacstrap")
    assert state["execution"]["decisions"]["root_uuid"] == UUID
    assert json.loads(Path(state_path).read_text())["config"]["dry_run"] is False


def test_dry_run_path_keeps_suffix():
    assert installer_main.dry_run_state_path("/var/lib/arch-installer/state.json") == (
        "/var/lib/arch-installer/state.dry-run.json"
    )


def test_refused_confirmation_exit_code(tmp_path, fake_run, secrets_env, isolated_logging, monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda _p="": "no")
    code = installer_main.main(
        [
            "--config",
            _write_config(tmp_path, assume_yes=False),
            "--state",
            str(tmp_path / "state.json"),
            "--log",
            str(tmp_path / "install.log"),
            "--dry-run",
        ]
    )
    assert code == 1
    assert "Canceled by user." in capsys.readouterr().out
    saved = json.loads((tmp_path / "state.dry-run.json").read_text())
    assert saved["execution"]["errors"][0]["step"] == "25_partition"


def test_list_steps(capsys):
    assert installer_main.main(["--list-steps"]) == 0
    out = capsys.readouterr().out.split()
    assert out[0] == "10_preflight"
    assert out[-1] == "90_finalize"
    assert len(out) == 17
