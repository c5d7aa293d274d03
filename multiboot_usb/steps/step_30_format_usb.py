from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.storage import PartitionResult, format_partitions, plan_from_config

logger = logging.getLogger(__name__)


class FormatUsbStep:
    step_id = "30_format_usb"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        layout = (state.get("execution") or {}).get("layout") or {}

        esp_part = layout.get("esp_part")
        data_part = layout.get("data_part")
        if not esp_part or not data_part:
            raise RuntimeError("Missing esp_part/data_part; run partition step first")

        dry_run = bool(cfg.get("dry_run", False))

        plan = plan_from_config(cfg, disk=layout.get("device") or cfg.get("device") or "", table=layout["partition_table"])
        format_partitions(plan, PartitionResult(esp_part=esp_part, data_part=data_part), dry_run=dry_run)
        return state
