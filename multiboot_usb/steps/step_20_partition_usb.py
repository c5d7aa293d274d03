from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.firmware import default_partition_table, detect_firmware
from ..lib.mounts import umount_with_retry
from ..lib.storage import partition_usb, plan_from_config
from ..lib.usb import mounted_partitions, require_usb_disk

logger = logging.getLogger(__name__)


class PartitionUsbStep:
    step_id = "20_partition_usb"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.setdefault("config", {})
        exe = state.setdefault("execution", {})

        device = cfg.get("device")
        if not device:
            raise RuntimeError("config.device is required for partitioning")

        dry_run = bool(cfg.get("dry_run", False))

        firmware = detect_firmware()
        table = cfg.get("partition_table") or "auto"
        if table == "auto":
            table = default_partition_table()
        if table not in {"gpt", "msdos"}:
            raise RuntimeError(f"config.partition_table must be auto|gpt|msdos, got: {table}")

        if not dry_run:
            dev = require_usb_disk(device)
            for part in mounted_partitions(dev):
                logger.info("Releasing %s (mounted at %s)", part.path, part.mountpoint)
                if not umount_with_retry(str(part.mountpoint)):
                    raise RuntimeError(f"{part.path} is busy; close programs using it and retry")

        plan = plan_from_config(cfg, disk=device, table=table)
        result = partition_usb(plan, dry_run=dry_run)

        layout = exe.setdefault("layout", {})
        layout["device"] = device
        layout["firmware"] = firmware
        layout["partition_table"] = table
        layout["esp_part"] = result.esp_part
        layout["data_part"] = result.data_part

        logger.info("Partitioned %s (%s, host firmware %s)", device, table, firmware)
        return state
