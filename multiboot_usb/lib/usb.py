from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockDevice:
    name: str
    path: str
    size: str
    type: str
    tran: Optional[str]
    model: Optional[str]
    mountpoint: Optional[str]
    children: tuple["BlockDevice", ...] = ()
    pttype: Optional[str] = None
    label: Optional[str] = None

    @property
    def is_usb_disk(self) -> bool:
        # Optical drives on a USB bus report TYPE=rom and are unusable here.
        return self.type == "disk" and (self.tran or "").lower() == "usb"


def _from_lsblk(node: Dict[str, Any]) -> BlockDevice:
    name = str(node.get("name") or "")
    path = str(node.get("path") or f"/dev/{name}")
    mountpoint = node.get("mountpoint")
    if mountpoint is None and node.get("mountpoints"):
        mountpoint = next((m for m in node["mountpoints"] if m), None)
    return BlockDevice(
        name=name,
        path=path,
        size=str(node.get("size") or ""),
        type=str(node.get("type") or ""),
        tran=node.get("tran"),
        model=(str(node["model"]).strip() if node.get("model") else None),
        mountpoint=mountpoint,
        children=tuple(_from_lsblk(c) for c in (node.get("children") or [])),
        pttype=node.get("pttype"),
        label=node.get("label"),
    )


def parse_lsblk_json(text: str) -> List[BlockDevice]:
    data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ValueError("lsblk JSON output must be an object")
    return [_from_lsblk(n) for n in (data.get("blockdevices") or [])]


def list_block_devices(device: Optional[str] = None) -> List[BlockDevice]:
    argv = ["lsblk", "-J", "-o", "NAME,PATH,SIZE,TYPE,TRAN,MODEL,MOUNTPOINT,PTTYPE,LABEL"]
    if device:
        argv.append(device)
    r = run_cmd(argv)
    return parse_lsblk_json(r.stdout)


def list_usb_disks() -> List[BlockDevice]:
    return [d for d in list_block_devices() if d.is_usb_disk]


def require_usb_disk(device: str) -> BlockDevice:
    """Return the lsblk entry for `device`, refusing anything but a USB disk."""

    devices = list_block_devices(device)
    if not devices:
        raise RuntimeError(f"Device not found: {device}")
    dev = devices[0]
    if not dev.is_usb_disk:
        raise RuntimeError(
            f"Refusing to use {device}: type={dev.type or '?'} transport={dev.tran or '?'} "
            "(expected a USB disk)"
        )
    logger.info("Selected USB disk %s (%s) %s", dev.path, dev.size, dev.model or "")
    return dev


def mounted_partitions(dev: BlockDevice) -> List[BlockDevice]:
    return [c for c in dev.children if c.mountpoint]
