from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.block import get_uuid
from ..lib.env import PATHS
from ..lib.grubcfg import (
    DATA_UUID_PLACEHOLDER,
    ESP_UUID_PLACEHOLDER,
    substitute_placeholders,
    write_base_config,
)
from ..lib.mounts import mounted

logger = logging.getLogger(__name__)


class WriteGrubConfigStep:
    step_id = "50_write_grub_config"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        layout = exe.get("layout") or {}

        esp_part = layout.get("esp_part")
        data_part = layout.get("data_part")
        if not esp_part or not data_part:
            raise RuntimeError("Missing esp_part/data_part; run partition step first")

        dry_run = bool(cfg.get("dry_run", False))

        esp_uuid = get_uuid(esp_part, dry_run=dry_run)
        data_uuid = get_uuid(data_part, dry_run=dry_run)
        decisions = exe.setdefault("decisions", {})
        decisions["esp_uuid"] = esp_uuid
        decisions["data_uuid"] = data_uuid

        with mounted(esp_part, PATHS.esp_mount, dry_run=dry_run) as esp:
            cfg_path = str(Path(esp) / PATHS.grub_dir / "grub.cfg")
            write_base_config(
                cfg_path,
                partition_table=layout.get("partition_table") or "gpt",
                data_label=str(cfg.get("data_label") or "Multiboot"),
                template_path=cfg.get("grub_template"),
                dry_run=dry_run,
            )
            substitute_placeholders(
                cfg_path,
                {ESP_UUID_PLACEHOLDER: esp_uuid, DATA_UUID_PLACEHOLDER: data_uuid},
                dry_run=dry_run,
            )

        logger.info("GRUB config written (esp_uuid=%s, data_uuid=%s)", esp_uuid, data_uuid)
        return state
