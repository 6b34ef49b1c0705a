from __future__ import annotations

import pytest

from arch_installer.lib.luks import LuksOpenFailed, is_luks, luks_add_keyfile, luks_format, luks_open


def test_format_with_passphrase_uses_stdin(fake_run):
    luks_format("/dev/sda2", passphrase="pw")
    argv = fake_run.calls[0]
    assert argv[:2] == ["cryptsetup", "luksFormat"]
    for flag in ("--batch-mode", "luks2", "argon2id", "5000", "--key-file=-"):
        assert flag in argv
    assert argv[-1] == "/dev/sda2"
    assert fake_run.inputs[0] == "pw"


def test_format_interactive_leaves_terminal(fake_run):
    luks_format("/dev/sda2")
    assert "--key-file=-" not in fake_run.calls[0]
    assert fake_run.inputs[0] is None


def test_open_retries_until_success(fake_run, caplog):
    fake_run.on("cryptsetup", "open", returncode=[2, 2, 0])
    asked: list = []

    def provider(attempt):
        asked.append(attempt)
        return f"pw{attempt}"

    assert luks_open("/dev/sda2", "root", passphrase_provider=provider) == 3
    assert asked == [1, 2, 3]
    assert fake_run.inputs == ["pw1", "pw2", "pw3"]
    assert "Wrong passphrase for root" in caplog.text


def test_open_interactive_uses_terminal(fake_run, caplog):
    fake_run.on("cryptsetup", "open", returncode=[2, 0])

    assert luks_open("/dev/sda2", "root") == 2
    assert fake_run.calls == [["cryptsetup", "open", "/dev/sda2", "root"]] * 2
    assert fake_run.inputs == [None, None]
    # no pipes: cryptsetup talks to the terminal itself
    assert "stdout" not in fake_run.kwargs[0]
    assert "Wrong passphrase for root" in caplog.text


def test_open_gives_up_after_limit(fake_run):
    fake_run.on("cryptsetup", "open", returncode=2)
    with pytest.raises(LuksOpenFailed):
        luks_open("/dev/sda2", "root", passphrase_provider=lambda _n: "pw", max_attempts=2)
    assert len(fake_run.matching("cryptsetup", "open")) == 2


def test_is_luks(fake_run):
    fake_run.on("cryptsetup", "isLuks", returncode=1)
    assert not is_luks("/dev/sda2")
    fake_run.on("cryptsetup", "isLuks", returncode=0)
    assert is_luks("/dev/sda2")


def test_is_luks_dry_run_runs_nothing(fake_run):
    assert not is_luks("/dev/sda2", dry_run=True)
    assert fake_run.calls == []


def test_add_keyfile(fake_run):
    luks_add_keyfile("/dev/sda3", "/mnt/etc/cryptsetup-keys.d/home.key", passphrase="pw")
    assert fake_run.calls[0] == [
        "cryptsetup",
        "luksAddKey",
        "--key-file=-",
        "/dev/sda3",
        "/mnt/etc/cryptsetup-keys.d/home.key",
    ]
    assert fake_run.inputs[0] == "pw"
