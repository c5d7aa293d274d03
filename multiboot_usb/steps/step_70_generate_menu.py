from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..lib.assets import find_isos
from ..lib.block import get_uuid
from ..lib.detect import DetectionResult, LoopMounter, detect_many
from ..lib.env import PATHS
from ..lib.grub_menu import render_menu, summarize
from ..lib.grubcfg import (
    DATA_UUID_PLACEHOLDER,
    ESP_UUID_PLACEHOLDER,
    append_entries,
    check_syntax,
    restore_backup,
    substitute_placeholders,
)
from ..lib.mounts import mounted

logger = logging.getLogger(__name__)


def _outcome_record(result: Optional[DetectionResult]) -> Dict[str, Any]:
    if result is None:
        return {"detected": False, "mounted": False}
    return {
        "detected": result.success,
        "mounted": True,
        "distribution": result.distribution.value,
        "kernel": result.kernel_path,
        "initrd": result.initrd_path,
    }


class GenerateMenuStep:
    step_id = "70_generate_menu"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        layout = exe.get("layout") or {}
        decisions = exe.setdefault("decisions", {})

        esp_part = layout.get("esp_part")
        data_part = layout.get("data_part")
        if not esp_part or not data_part:
            raise RuntimeError("Missing esp_part/data_part; run partition step first")

        dry_run = bool(cfg.get("dry_run", False))
        table = layout.get("partition_table") or "gpt"
        data_label = str(cfg.get("data_label") or "Multiboot")

        esp_uuid = decisions.get("esp_uuid") or get_uuid(esp_part, dry_run=dry_run)
        data_uuid = decisions.get("data_uuid") or get_uuid(data_part, dry_run=dry_run)

        with mounted(esp_part, PATHS.esp_mount, dry_run=dry_run) as esp, mounted(
            data_part, PATHS.data_mount, dry_run=dry_run
        ) as data:
            isos = find_isos(data, recursive=False)
            outcomes: List[Tuple[str, Optional[DetectionResult]]] = []
            if isos:
                logger.info("Analyzing %d ISO file(s)", len(isos))
                outcomes = detect_many(
                    [str(p) for p in isos],
                    mounter=LoopMounter(dry_run=dry_run),
                    data_label=data_label,
                )
            else:
                # An empty data partition still gets an empty generated section.
                logger.info("No ISO files on the data partition; clearing generated entries")
            menu = render_menu(outcomes, partition_table=table, data_label=data_label)

            cfg_path = str(Path(esp) / PATHS.grub_dir / "grub.cfg")
            append_entries(cfg_path, menu, backup=True, dry_run=dry_run)
            substitute_placeholders(
                cfg_path,
                {ESP_UUID_PLACEHOLDER: esp_uuid, DATA_UUID_PLACEHOLDER: data_uuid},
                dry_run=dry_run,
            )

            if check_syntax(cfg_path, dry_run=dry_run) is False:
                restore_backup(cfg_path, dry_run=dry_run)
                raise RuntimeError(f"Generated GRUB config failed grub-script-check; restored {cfg_path}")

        exe["isos"] = {Path(p).name: _outcome_record(r) for p, r in outcomes}
        detected, fallback = summarize(outcomes)
        logger.info("Menu generated: %d detected, %d generic fallback", detected, fallback)
        return state
