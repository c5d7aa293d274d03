from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    esp_mount: str = "/mnt/multiboot_usb/esp"
    data_mount: str = "/mnt/multiboot_usb/data"
    # Reused serially for every ISO that gets inspected.
    iso_probe: str = "/tmp/multiboot_iso_probe"
    grub_dir: str = "boot/grub"
    state_default: str = "/var/lib/multiboot-usb/state.json"
    log_default: str = "/var/log/multiboot-usb.log"


PATHS = Paths()
