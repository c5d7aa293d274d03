from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.assets import check_space, copy_iso, find_isos
from ..lib.env import PATHS
from ..lib.mounts import mounted

logger = logging.getLogger(__name__)


class CopyIsosStep:
    step_id = "60_copy_isos"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})
        layout = exe.get("layout") or {}

        if not cfg.get("copy_isos", True):
            logger.info("ISO copy disabled (config.copy_isos=false)")
            return state

        data_part = layout.get("data_part")
        if not data_part:
            raise RuntimeError("Missing data_part; run partition step first")

        dry_run = bool(cfg.get("dry_run", False))

        iso_dir = str(cfg.get("iso_dir") or "isos")
        isos = find_isos(iso_dir)
        if not isos:
            logger.warning("No ISO files found in %s; add them to the data partition later", iso_dir)
            exe["copied_isos"] = []
            return state

        logger.info("Found %d ISO file(s) in %s", len(isos), iso_dir)
        copied = []
        with mounted(data_part, PATHS.data_mount, dry_run=dry_run) as data:
            if not dry_run:
                check_space(isos, data)
            for iso in isos:
                copy_iso(iso, data, dry_run=dry_run)
                copied.append(iso.name)

        exe["copied_isos"] = copied
        return state
