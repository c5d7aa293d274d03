"""Finding an already prepared multiboot stick and reaching its partitions.

A prepared stick has the ESP (holding boot/grub/grub.cfg) as its first
partition and the ISO data partition as its second.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .env import PATHS
from .mounts import mounted
from .usb import BlockDevice, list_usb_disks, require_usb_disk

logger = logging.getLogger(__name__)

# lsblk PTTYPE -> GRUB partition scheme name.
PTTYPE_TABLES = {"gpt": "gpt", "dos": "msdos"}


@dataclass(frozen=True)
class StickLayout:
    device: str
    partition_table: str
    esp_part: str
    data_part: str
    data_label: str
    esp_mountpoint: Optional[str] = None
    data_mountpoint: Optional[str] = None

    def as_state_layout(self) -> dict:
        return {
            "device": self.device,
            "partition_table": self.partition_table,
            "esp_part": self.esp_part,
            "data_part": self.data_part,
        }


def layout_from_device(dev: BlockDevice) -> StickLayout:
    parts = [c for c in dev.children if c.type == "part"]
    if len(parts) < 2:
        raise RuntimeError(f"{dev.path} does not have an ESP + data partition layout")
    table = PTTYPE_TABLES.get((dev.pttype or "").lower())
    if table is None:
        raise RuntimeError(f"{dev.path}: unsupported partition table {dev.pttype or '?'}")

    esp, data = parts[0], parts[1]
    return StickLayout(
        device=dev.path,
        partition_table=table,
        esp_part=esp.path,
        data_part=data.path,
        data_label=data.label or "Multiboot",
        esp_mountpoint=esp.mountpoint,
        data_mountpoint=data.mountpoint,
    )


def read_layout(device: str) -> StickLayout:
    return layout_from_device(require_usb_disk(device))


@contextmanager
def partition_mounted(
    part: str,
    mountpoint: Optional[str],
    fallback: str,
    *,
    options: Optional[Sequence[str]] = None,
    dry_run: bool = False,
) -> Iterator[str]:
    """Reuse an existing mount of `part`, or mount it on `fallback` for the block."""

    if mountpoint:
        yield mountpoint
        return
    with mounted(part, fallback, options=options, dry_run=dry_run) as mp:
        yield mp


def has_grub_config(esp_dir: str) -> bool:
    return (Path(esp_dir) / PATHS.grub_dir / "grub.cfg").is_file()


def find_multiboot_sticks() -> List[StickLayout]:
    """USB disks whose first partition carries boot/grub/grub.cfg."""

    sticks: List[StickLayout] = []
    for dev in list_usb_disks():
        try:
            layout = layout_from_device(dev)
            with partition_mounted(layout.esp_part, layout.esp_mountpoint, PATHS.esp_mount, options=["ro"]) as esp:
                found = has_grub_config(esp)
        except RuntimeError as e:
            logger.info("Skipping %s: %s", dev.path, e)
            continue
        if found:
            sticks.append(layout)
        else:
            logger.info("Skipping %s: no %s/grub.cfg on %s", dev.path, PATHS.grub_dir, layout.esp_part)
    return sticks
