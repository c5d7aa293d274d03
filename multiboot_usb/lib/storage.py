from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict

from .command import run_cmd

logger = logging.getLogger(__name__)

# GPT partition type GUIDs.
GPT_ESP = "C12A7328-F81F-11D2-BA4B-00A0C93EC93B"
GPT_BASIC_DATA = "EBD0A0A2-B9E5-4433-87C0-68B6B72699C7"

# MBR partition type ids.
MBR_ESP = "ef"
MBR_EXFAT = "7"
MBR_FAT32_LBA = "c"

PARTITION_WAIT_ATTEMPTS = 10
PARTITION_WAIT_DELAY_S = 1.0


@dataclass(frozen=True)
class PartitionPlan:
    disk: str
    table: str  # gpt|msdos
    esp_size_mib: int = 512
    esp_label: str = "ESP"
    data_fs: str = "exfat"  # exfat|vfat
    data_label: str = "Multiboot"


@dataclass(frozen=True)
class PartitionResult:
    esp_part: str
    data_part: str


def part_path(disk: str, n: int) -> str:
    # nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def render_sfdisk_script(plan: PartitionPlan) -> str:
    """sfdisk input for the two-partition layout: ESP first, data partition after."""

    if plan.table == "gpt":
        return (
            "label: gpt\n"
            f'size={plan.esp_size_mib}MiB, type={GPT_ESP}, name="{plan.esp_label}"\n'
            f'type={GPT_BASIC_DATA}, name="{plan.data_label}"\n'
        )
    if plan.table == "msdos":
        data_type = MBR_EXFAT if plan.data_fs == "exfat" else MBR_FAT32_LBA
        return (
            "label: dos\n"
            f"size={plan.esp_size_mib}MiB, type={MBR_ESP}, bootable\n"
            f"type={data_type}\n"
        )
    raise ValueError(f"Unsupported partition table: {plan.table}")


def wait_for_node(
    path: str,
    *,
    attempts: int = PARTITION_WAIT_ATTEMPTS,
    delay_s: float = PARTITION_WAIT_DELAY_S,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    for attempt in range(1, attempts + 1):
        if Path(path).exists():
            return True
        logger.info("Waiting for %s (%d/%d)", path, attempt, attempts)
        sleep(delay_s)
    return Path(path).exists()


def partition_usb(plan: PartitionPlan, *, dry_run: bool = False) -> PartitionResult:
    """Write a fresh partition table to the USB disk. Destroys all data on it."""

    logger.info("Partitioning disk=%s table=%s", plan.disk, plan.table)

    run_cmd(["wipefs", "--all", "--force", plan.disk], dry_run=dry_run)
    run_cmd(
        ["sfdisk", "--force", "--wipe", "always", plan.disk],
        input_text=render_sfdisk_script(plan),
        timeout_s=60,
        dry_run=dry_run,
    )

    # Inform kernel
    run_cmd(["partprobe", plan.disk], check=False, dry_run=dry_run)

    result = PartitionResult(esp_part=part_path(plan.disk, 1), data_part=part_path(plan.disk, 2))
    if not dry_run:
        for part in (result.esp_part, result.data_part):
            if not wait_for_node(part):
                raise RuntimeError(f"Partition {part} did not appear after partitioning {plan.disk}")
    return result


def format_partitions(plan: PartitionPlan, result: PartitionResult, *, dry_run: bool = False) -> None:
    run_cmd(["mkfs.vfat", "-F", "32", "-n", plan.esp_label[:11], result.esp_part], dry_run=dry_run)

    if plan.data_fs == "exfat":
        run_cmd(["mkfs.exfat", "-n", plan.data_label[:15], result.data_part], dry_run=dry_run)
    elif plan.data_fs == "vfat":
        run_cmd(["mkfs.vfat", "-F", "32", "-n", plan.data_label[:11], result.data_part], dry_run=dry_run)
    else:
        raise ValueError(f"Unsupported data filesystem: {plan.data_fs}")

    logger.info("Formatted ESP=%s data=%s (%s)", result.esp_part, result.data_part, plan.data_fs)


def plan_from_config(cfg: Dict[str, Any], *, disk: str, table: str) -> PartitionPlan:
    return PartitionPlan(
        disk=disk,
        table=table,
        esp_size_mib=int(cfg.get("esp_size_mib") or 512),
        esp_label=str(cfg.get("esp_label") or "ESP"),
        data_fs=str(cfg.get("data_fs") or "exfat"),
        data_label=str(cfg.get("data_label") or "Multiboot"),
    )
