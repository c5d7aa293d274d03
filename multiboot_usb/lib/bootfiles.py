from __future__ import annotations

import logging
import posixpath
import re
from typing import Callable, List, Optional, Sequence, Tuple

from .isofs import IsoFilesystem, expand_glob

logger = logging.getLogger(__name__)

# Most distribution-specific first, root-level catch-alls last. The order is
# historical; changing it changes which file wins on ambiguous ISOs.
KERNEL_SEARCHES: Tuple[str, ...] = (
    "casper/vmlinuz*",
    "arch/boot/x86_64/vmlinuz*",
    "images/pxeboot/vmlinuz*",
    "boot/x86_64/loader/linux",
    "live/vmlinuz*",
    "boot/vmlinuz*",
    "boot/bzImage*",
    "isolinux/vmlinuz*",
    "syslinux/vmlinuz*",
    "vmlinuz*",
    "linux*",
)

INITRD_SEARCHES: Tuple[str, ...] = (
    "casper/initrd*",
    "arch/boot/x86_64/initramfs*",
    "arch/boot/x86_64/archiso*.img",
    "arch/boot/amd-ucode.img",
    "arch/boot/intel-ucode.img",
    "images/pxeboot/initrd*",
    "boot/x86_64/loader/initrd",
    "live/initrd*",
    "boot/initrd*",
    "boot/initramfs*",
    "isolinux/initrd*",
    "syslinux/initrd*",
    "initrd*",
    "initramfs*",
)

# GRUB's own module directory inside the ISO.
BOOTLOADER_DIR = "/boot/grub/"

_KERNEL_NAME = re.compile(r"^(vmlinuz|bzImage|linux|kernel)")
_KERNEL_REJECT = re.compile(r"\.(mod|img)$")
_INITRD_NAME = re.compile(r"^(initrd|initramfs|ramdisk)")
_INITRD_SUFFIX = re.compile(r"\.(img|gz|lz|xz|lzma)$")
_INITRD_REJECT = re.compile(r"^(eltorito|boot|vmlinuz|bzImage|linux|kernel)")


def looks_like_kernel(name: str) -> bool:
    return bool(_KERNEL_NAME.match(name)) and not _KERNEL_REJECT.search(name)


def looks_like_initrd(name: str) -> bool:
    if _INITRD_NAME.match(name):
        return True
    return bool(_INITRD_SUFFIX.search(name)) and not _INITRD_REJECT.match(name)


def find_candidates(
    fs: IsoFilesystem,
    patterns: Sequence[str],
    accept: Callable[[str], bool],
) -> List[str]:
    """Expand every pattern, keep plausible regular files, return sorted unique paths."""

    found = set()
    for pattern in patterns:
        for path in expand_glob(fs, pattern):
            if not fs.is_file(path):
                continue
            if BOOTLOADER_DIR in path:
                continue
            if accept(posixpath.basename(path)):
                found.add(path)
    return sorted(found)


def find_kernels(fs: IsoFilesystem, patterns: Sequence[str] = KERNEL_SEARCHES) -> List[str]:
    return find_candidates(fs, patterns, looks_like_kernel)


def find_initrds(fs: IsoFilesystem, patterns: Sequence[str] = INITRD_SEARCHES) -> List[str]:
    return find_candidates(fs, patterns, looks_like_initrd)


def first_or_none(candidates: Sequence[str]) -> Optional[str]:
    return candidates[0] if candidates else None
