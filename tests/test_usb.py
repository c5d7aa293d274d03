from __future__ import annotations

import json

import pytest

from multiboot_usb.lib import usb
from multiboot_usb.lib.command import CmdResult
from multiboot_usb.lib.usb import mounted_partitions, parse_lsblk_json, require_usb_disk

LSBLK = {
    "blockdevices": [
        {
            "name": "sda",
            "path": "/dev/sda",
            "size": "476.9G",
            "type": "disk",
            "tran": "sata",
            "model": "Samsung SSD",
            "mountpoint": None,
            "children": [
                {"name": "sda1", "path": "/dev/sda1", "size": "512M", "type": "part", "tran": None, "model": None, "mountpoint": "/boot/efi"},
            ],
        },
        {
            "name": "sdb",
            "path": "/dev/sdb",
            "size": "28.9G",
            "type": "disk",
            "tran": "usb",
            "model": "SanDisk Ultra  ",
            "mountpoint": None,
            "children": [
                {"name": "sdb1", "path": "/dev/sdb1", "size": "28.9G", "type": "part", "tran": None, "model": None, "mountpoint": "/media/stick"},
                {"name": "sdb2", "path": "/dev/sdb2", "size": "1M", "type": "part", "tran": None, "model": None, "mountpoint": None},
            ],
        },
        {"name": "sr0", "size": "1024M", "type": "rom", "tran": "usb", "model": "DVD", "mountpoint": None},
    ]
}


def test_parse_lsblk_json():
    devices = parse_lsblk_json(json.dumps(LSBLK))
    assert [d.name for d in devices] == ["sda", "sdb", "sr0"]
    sdb = devices[1]
    assert sdb.is_usb_disk
    assert sdb.model == "SanDisk Ultra"
    assert [c.path for c in sdb.children] == ["/dev/sdb1", "/dev/sdb2"]
    assert not devices[0].is_usb_disk
    # USB optical drive is not a disk.
    assert not devices[2].is_usb_disk
    assert devices[2].path == "/dev/sr0"


def test_mountpoints_list_form():
    text = json.dumps({"blockdevices": [{"name": "sdc", "type": "disk", "tran": "usb", "mountpoints": [None, "/mnt/a"]}]})
    assert parse_lsblk_json(text)[0].mountpoint == "/mnt/a"


def test_mounted_partitions():
    sdb = parse_lsblk_json(json.dumps(LSBLK))[1]
    assert [p.path for p in mounted_partitions(sdb)] == ["/dev/sdb1"]


def _fake_lsblk(monkeypatch, payload):
    def fake_run_cmd(argv, **kwargs):
        return CmdResult(argv=list(argv), returncode=0, stdout=json.dumps(payload), stderr="")

    monkeypatch.setattr(usb, "run_cmd", fake_run_cmd)


def test_require_usb_disk_accepts_usb(monkeypatch):
    _fake_lsblk(monkeypatch, {"blockdevices": [LSBLK["blockdevices"][1]]})
    assert require_usb_disk("/dev/sdb").path == "/dev/sdb"


def test_require_usb_disk_refuses_internal(monkeypatch):
    _fake_lsblk(monkeypatch, {"blockdevices": [LSBLK["blockdevices"][0]]})
    with pytest.raises(RuntimeError, match="Refusing"):
        require_usb_disk("/dev/sda")


def test_require_usb_disk_missing(monkeypatch):
    _fake_lsblk(monkeypatch, {"blockdevices": []})
    with pytest.raises(RuntimeError, match="not found"):
        require_usb_disk("/dev/sdq")


def test_partition_table_and_labels_parsed():
    payload = {
        "blockdevices": [
            {
                "name": "sdc",
                "path": "/dev/sdc",
                "type": "disk",
                "tran": "usb",
                "pttype": "gpt",
                "children": [
                    {"name": "sdc1", "path": "/dev/sdc1", "type": "part", "label": "MBUSB-ESP"},
                    {"name": "sdc2", "path": "/dev/sdc2", "type": "part", "label": "Multiboot"},
                ],
            }
        ]
    }
    sdc = parse_lsblk_json(json.dumps(payload))[0]
    assert sdc.pttype == "gpt"
    assert sdc.label is None
    assert [c.label for c in sdc.children] == ["MBUSB-ESP", "Multiboot"]
