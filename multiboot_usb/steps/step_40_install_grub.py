from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.bootloader import grub_targets, install_grub
from ..lib.env import PATHS
from ..lib.mounts import mounted

logger = logging.getLogger(__name__)


class InstallGrubStep:
    step_id = "40_install_grub"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        layout = exe.get("layout") or {}

        device = layout.get("device")
        esp_part = layout.get("esp_part")
        table = layout.get("partition_table")
        if not device or not esp_part or not table:
            raise RuntimeError("Missing device/esp_part/partition_table; run partition step first")

        dry_run = bool(cfg.get("dry_run", False))

        targets = grub_targets(partition_table=table, firmware=layout.get("firmware") or "bios")
        exe.setdefault("decisions", {})["grub_targets"] = targets

        with mounted(esp_part, PATHS.esp_mount, dry_run=dry_run) as esp:
            install_grub(device=device, esp_mount=esp, targets=targets, dry_run=dry_run)

        logger.info("Bootloader installed (%s)", ", ".join(targets))
        return state
