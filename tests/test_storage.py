from __future__ import annotations

import pytest

from arch_installer.lib.block import child_partitions, get_uuid, partition_path
from arch_installer.lib.storage import (
    TYPE_LUKS,
    PartitionPlan,
    PartitionSpec,
    build_plan,
    partition_disk,
    wipe_signatures,
)


@pytest.mark.parametrize(
    "disk,expected",
    [
        ("/dev/sda", "/dev/sda2"),
        ("/dev/vdb", "/dev/vdb2"),
        ("/dev/nvme0n1", "/dev/nvme0n1p2"),
        ("/dev/mmcblk0", "/dev/mmcblk0p2"),
    ],
)
def test_partition_path(disk, expected):
    assert partition_path(disk, 2) == expected


def test_default_plan_has_three_partitions():
    plan = build_plan("/dev/nvme0n1", {})
    assert [(p.role, p.size, p.typecode, p.name) for p in plan.partitions] == [
        ("esp", "+1G", "ef00", "EFI"),
        ("root", "+120G", "8309", "LUKS-ROOT"),
        ("home", "+250G", "8309", "LUKS-HOME"),
    ]
    assert plan.path_for("home") == "/dev/nvme0n1p3"


def test_plan_without_home():
    plan = build_plan("/dev/sda", {"root_size": "0", "home_size": None})
    assert [p.role for p in plan.partitions] == ["esp", "root"]
    assert plan.partitions[1].size == "0"
    assert plan.path_for("home") is None


def test_sizes_get_plus_prefix():
    plan = build_plan("/dev/sda", {"esp_size": "512M", "root_size": "64G", "home_size": "100G"})
    assert [p.size for p in plan.partitions] == ["+512M", "+64G", "+100G"]


def test_rest_of_disk_root_cannot_have_home():
    with pytest.raises(ValueError):
        build_plan("/dev/sda", {"root_size": "0", "home_size": "+10G"})


def test_partition_disk_commands(fake_run):
    result = partition_disk(build_plan("/dev/sda", {}))
    sgdisk = fake_run.matching("sgdisk")
    assert sgdisk[0] == ["sgdisk", "--zap-all", "/dev/sda"]
    assert sgdisk[1] == ["sgdisk", "--clear", "/dev/sda"]
    assert sgdisk[2] == ["sgdisk", "-n1:0:+1G", "-t1:ef00", "-c1:EFI", "/dev/sda"]
    assert sgdisk[4] == ["sgdisk", "-n3:0:+250G", "-t3:8309", "-c3:LUKS-HOME", "/dev/sda"]
    assert fake_run.ran("partprobe", "/dev/sda")
    assert (result.esp_part, result.root_part, result.home_part) == ("/dev/sda1", "/dev/sda2", "/dev/sda3")


def test_partition_disk_needs_esp_and_root(fake_run):
    plan = PartitionPlan(disk="/dev/sda", partitions=(PartitionSpec("root", "0", TYPE_LUKS, "LUKS-ROOT"),))
    with pytest.raises(RuntimeError, match="esp"):
        partition_disk(plan)


def test_partprobe_failure_is_tolerated(fake_run):
    fake_run.on("partprobe", returncode=1)
    partition_disk(build_plan("/dev/sda", {}))


def test_wipe_signatures_partitions_then_disk(fake_run):
    wipe_signatures("/dev/sda", ["/dev/sda1", "/dev/sda2"])
    wipes = [c[-1] for c in fake_run.matching("wipefs")]
    assert wipes == ["/dev/sda1", "/dev/sda2", "/dev/sda"]


def test_child_partitions_skips_disk_line(fake_run):
    fake_run.on("lsblk", stdout="sda\nsda1\nsda2\n")
    assert child_partitions("/dev/sda") == ["/dev/sda1", "/dev/sda2"]


def test_get_uuid(fake_run):
    fake_run.on("blkid", stdout="1234-abcd\n")
    assert get_uuid("/dev/sda2") == "1234-abcd"


def test_get_uuid_missing(fake_run):
    fake_run.on("blkid", returncode=2)
    with pytest.raises(RuntimeError):
        get_uuid("/dev/sda2")
