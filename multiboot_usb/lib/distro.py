from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from .isofs import IsoFilesystem

logger = logging.getLogger(__name__)


class Distribution(str, Enum):
    UBUNTU = "ubuntu"
    KUBUNTU = "kubuntu"
    XUBUNTU = "xubuntu"
    LUBUNTU = "lubuntu"
    MINT = "mint"
    ELEMENTARY = "elementary"
    DEBIAN = "debian"
    DEBIAN_LIVE = "debian-live"
    ARCH = "arch"
    MANJARO = "manjaro"
    ANTERGOS = "antergos"
    FEDORA = "fedora"
    CENTOS = "centos"
    OPENSUSE = "opensuse"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]

    @property
    def menu_class(self) -> str:
        # GRUB theme icon class: no dashes.
        return self.value.replace("-", "_")


DISPLAY_NAMES: Dict[Distribution, str] = {
    Distribution.UBUNTU: "Ubuntu",
    Distribution.KUBUNTU: "Kubuntu",
    Distribution.XUBUNTU: "Xubuntu",
    Distribution.LUBUNTU: "Lubuntu",
    Distribution.MINT: "Linux Mint",
    Distribution.ELEMENTARY: "elementary OS",
    Distribution.DEBIAN: "Debian",
    Distribution.DEBIAN_LIVE: "Debian Live",
    Distribution.ARCH: "Arch Linux",
    Distribution.MANJARO: "Manjaro",
    Distribution.ANTERGOS: "Antergos",
    Distribution.FEDORA: "Fedora",
    Distribution.CENTOS: "CentOS",
    Distribution.OPENSUSE: "openSUSE",
    Distribution.UNKNOWN: "Linux",
}

DISK_INFO_PATH = "/.disk/info"

# Checked against the lowercased /.disk/info text, top to bottom. The Ubuntu
# flavours come before plain "ubuntu" since their names contain it.
DISK_INFO_FRAGMENTS: Tuple[Tuple[str, Distribution], ...] = (
    ("kubuntu", Distribution.KUBUNTU),
    ("xubuntu", Distribution.XUBUNTU),
    ("lubuntu", Distribution.LUBUNTU),
    ("ubuntu", Distribution.UBUNTU),
    ("mint", Distribution.MINT),
    ("elementary", Distribution.ELEMENTARY),
)

Predicate = Callable[[IsoFilesystem], bool]

# Layout fingerprints for ISOs without /.disk/info. First match wins.
FINGERPRINT_RULES: Tuple[Tuple[Predicate, Distribution], ...] = (
    (lambda fs: fs.is_dir("/arch") and fs.is_file("/arch/boot/x86_64/vmlinuz-linux"), Distribution.ARCH),
    (lambda fs: fs.is_dir("/suse") or fs.is_file("/.opensuse-factory"), Distribution.OPENSUSE),
    (lambda fs: fs.is_file("/fedora_label") or fs.is_dir("/Fedora"), Distribution.FEDORA),
    (lambda fs: fs.is_dir("/centos") or fs.is_file("/.centos"), Distribution.CENTOS),
    (lambda fs: fs.is_dir("/live") and fs.is_file("/live/vmlinuz"), Distribution.DEBIAN_LIVE),
    (lambda fs: fs.is_file("/manjaro") or fs.is_dir("/manjaro"), Distribution.MANJARO),
    (lambda fs: fs.is_dir("/antergos"), Distribution.ANTERGOS),
)


def classify_disk_info(text: Optional[str]) -> Distribution:
    """Classify from the contents of /.disk/info; anything unmatched is Debian."""

    info = (text or "").lower()
    for fragment, distribution in DISK_INFO_FRAGMENTS:
        if fragment in info:
            return distribution
    return Distribution.DEBIAN


def classify(fs: IsoFilesystem) -> Distribution:
    """Return exactly one distribution tag for the ISO tree behind `fs`."""

    if fs.is_file(DISK_INFO_PATH):
        distribution = classify_disk_info(fs.read_text(DISK_INFO_PATH))
        logger.debug("Classified from %s: %s", DISK_INFO_PATH, distribution.value)
        return distribution

    for predicate, distribution in FINGERPRINT_RULES:
        if predicate(fs):
            logger.debug("Classified from layout fingerprint: %s", distribution.value)
            return distribution

    return Distribution.UNKNOWN
