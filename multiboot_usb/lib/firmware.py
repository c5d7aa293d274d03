from __future__ import annotations

import platform
from pathlib import Path


def detect_firmware() -> str:
    """Firmware of the *running* host: 'efi' or 'bios'."""

    if Path("/sys/firmware/efi").exists():
        return "efi"
    return "bios"


def default_partition_table() -> str:
    # GPT for UEFI hosts, MBR elsewhere.
    return "gpt" if detect_firmware() == "efi" else "msdos"


def efi_target(machine: str | None = None) -> str:
    m = (machine or platform.machine()).lower()
    if m in {"x86_64", "amd64"}:
        return "x86_64-efi"
    if m in {"aarch64", "arm64"}:
        return "arm64-efi"
    return "i386-efi"
