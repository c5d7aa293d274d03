from __future__ import annotations

import json

import pytest

from multiboot_usb.lib import stick
from multiboot_usb.lib.stick import StickLayout, find_multiboot_sticks, layout_from_device, partition_mounted
from multiboot_usb.lib.usb import parse_lsblk_json


def _disk(path, pttype="dos", parts=(("1", None, None), ("2", "ISOS", None))):
    return {
        "name": path.rsplit("/", 1)[-1],
        "path": path,
        "type": "disk",
        "tran": "usb",
        "pttype": pttype,
        "children": [
            {"name": f"x{n}", "path": f"{path}{n}", "type": "part", "label": label, "mountpoint": mp}
            for n, label, mp in parts
        ],
    }


def _device(payload):
    return parse_lsblk_json(json.dumps({"blockdevices": [payload]}))[0]


def test_layout_from_device():
    layout = layout_from_device(_device(_disk("/dev/sdb")))
    assert layout == StickLayout(
        device="/dev/sdb",
        partition_table="msdos",
        esp_part="/dev/sdb1",
        data_part="/dev/sdb2",
        data_label="ISOS",
    )
    assert layout.as_state_layout() == {
        "device": "/dev/sdb",
        "partition_table": "msdos",
        "esp_part": "/dev/sdb1",
        "data_part": "/dev/sdb2",
    }


def test_layout_defaults_data_label():
    layout = layout_from_device(_device(_disk("/dev/sdb", pttype="gpt", parts=(("1", None, None), ("2", None, None)))))
    assert layout.partition_table == "gpt"
    assert layout.data_label == "Multiboot"


def test_layout_needs_two_partitions():
    with pytest.raises(RuntimeError, match="ESP \\+ data"):
        layout_from_device(_device(_disk("/dev/sdb", parts=(("1", None, None),))))


def test_layout_rejects_unknown_partition_table():
    with pytest.raises(RuntimeError, match="unsupported partition table"):
        layout_from_device(_device(_disk("/dev/sdb", pttype=None)))


def test_partition_mounted_reuses_existing_mount(monkeypatch):
    def fail_mount(*args, **kwargs):
        raise AssertionError("should not mount")

    monkeypatch.setattr(stick, "mounted", fail_mount)
    with partition_mounted("/dev/sdb2", "/media/isos", "/mnt/data") as mp:
        assert mp == "/media/isos"


def test_find_multiboot_sticks(tmp_path, monkeypatch):
    prepared = tmp_path / "prepared"
    (prepared / "boot" / "grub").mkdir(parents=True)
    (prepared / "boot" / "grub" / "grub.cfg").write_text("set timeout=10\n", encoding="utf-8")
    plain = tmp_path / "plain"
    plain.mkdir()

    disks = [
        _device(_disk("/dev/sdb", parts=(("1", None, str(prepared)), ("2", "Multiboot", None)))),
        _device(_disk("/dev/sdc", parts=(("1", None, str(plain)), ("2", "DATA", None)))),
        _device(_disk("/dev/sdd", parts=(("1", "BACKUP", None),))),
    ]
    monkeypatch.setattr(stick, "list_usb_disks", lambda: disks)

    assert [s.device for s in find_multiboot_sticks()] == ["/dev/sdb"]
