from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from .command import run_cmd
from .firmware import efi_target

logger = logging.getLogger(__name__)


def grub_targets(*, partition_table: str, firmware: str, machine: str | None = None) -> List[str]:
    """GRUB platforms to install for a layout.

    GPT layouts boot through the ESP only. MBR layouts always get i386-pc and
    additionally an EFI image when the host is UEFI, so the stick boots both ways.
    """

    if partition_table == "gpt":
        return [efi_target(machine)]
    targets = ["i386-pc"]
    if firmware == "efi":
        targets.append(efi_target(machine))
    return targets


def install_grub(
    *,
    device: str,
    esp_mount: str,
    targets: Sequence[str],
    dry_run: bool = False,
) -> None:
    """Install GRUB onto the USB stick with boot files on the mounted ESP."""

    boot_dir = str(Path(esp_mount) / "boot")
    for target in targets:
        argv = [
            "grub-install",
            "--force",
            "--removable",
            "--no-nvram",
            f"--target={target}",
            f"--boot-directory={boot_dir}",
        ]
        if target.endswith("-efi"):
            argv.append(f"--efi-directory={esp_mount}")
        argv.append(device)
        run_cmd(argv, dry_run=dry_run)
        logger.info("GRUB installed (target=%s)", target)
