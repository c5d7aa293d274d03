from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.command import missing_tools

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = [
    "lsblk",
    "wipefs",
    "sfdisk",
    "partprobe",
    "mkfs.vfat",
    "grub-install",
    "blkid",
    "mount",
    "umount",
]

INSTALL_HINTS = {
    "Debian/Ubuntu": "sudo apt install fdisk dosfstools exfatprogs parted grub2-common grub-pc-bin grub-efi-amd64-bin util-linux",
    "Arch Linux": "sudo pacman -S util-linux dosfstools exfatprogs parted grub",
    "Fedora": "sudo dnf install util-linux dosfstools exfatprogs parted grub2-tools grub2-efi-x64-modules grub2-pc-modules",
}


class CheckDependenciesStep:
    step_id = "10_check_dependencies"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        dry_run = bool(cfg.get("dry_run", False))

        tools = list(REQUIRED_TOOLS)
        if cfg.get("data_fs", "exfat") == "exfat":
            tools.append("mkfs.exfat")

        missing = missing_tools(tools)
        state.setdefault("execution", {}).setdefault("decisions", {})["missing_tools"] = missing

        if missing:
            for distro, cmd in INSTALL_HINTS.items():
                logger.info("Install hint (%s): %s", distro, cmd)
            if dry_run:
                logger.warning("Missing dependencies (ignored in dry-run): %s", ", ".join(missing))
                return state
            raise RuntimeError(f"Missing dependencies: {', '.join(missing)}")

        logger.info("All dependencies found")
        return state
