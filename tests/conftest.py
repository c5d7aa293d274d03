from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from multiboot_usb.lib.isofs import MemoryFilesystem

UBUNTU_TREE = {
    "/.disk/info": 'Ubuntu 22.04 LTS "Jammy Jellyfish" - Release amd64 (20220419)',
    "/casper/vmlinuz": b"\x00kernel",
    "/casper/initrd": b"\x00initrd",
    "/boot/grub/grub.cfg": "menuentry ...",
    "/boot/grub/x86_64-efi/linux.mod": b"\x00",
}

ARCH_TREE = {
    "/arch/boot/x86_64/vmlinuz-linux": b"\x00",
    "/arch/boot/x86_64/archiso.img": b"\x00",
    "/arch/version": "2024.01.01",
}

UNKNOWN_TREE = {
    "/boot/vmlinuz": b"\x00",
}


class FakeMounter:
    """Mount capability that materializes a fixture tree into the mount point."""

    def __init__(self, trees: Dict[str, Dict[str, object]], fail: Optional[set] = None) -> None:
        self.trees = trees
        self.fail = fail or set()
        self.calls: List[tuple] = []
        self.mounted: Optional[str] = None

    def mount(self, iso_path: str, mount_point: str) -> bool:
        name = Path(iso_path).name
        self.calls.append(("mount", name, mount_point))
        assert self.mounted is None, "probe directory mounted twice"
        if name in self.fail:
            return False
        for rel, content in self.trees.get(name, {}).items():
            p = Path(mount_point) / rel.lstrip("/")
            p.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                p.write_bytes(content)
            else:
                p.write_text(str(content), encoding="utf-8")
        self.mounted = mount_point
        return True

    def umount(self, mount_point: str) -> bool:
        self.calls.append(("umount", mount_point))
        for child in Path(mount_point).iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        self.mounted = None
        return True


@pytest.fixture
def ubuntu_fs() -> MemoryFilesystem:
    return MemoryFilesystem(UBUNTU_TREE)


@pytest.fixture
def arch_fs() -> MemoryFilesystem:
    return MemoryFilesystem(ARCH_TREE)


@pytest.fixture
def unknown_fs() -> MemoryFilesystem:
    return MemoryFilesystem(UNKNOWN_TREE)


@pytest.fixture
def iso_files(tmp_path: Path):
    """Create empty *.iso placeholders and return a factory."""

    def make(*names: str) -> List[str]:
        d = tmp_path / "isos"
        d.mkdir(exist_ok=True)
        out = []
        for n in names:
            p = d / n
            p.write_bytes(b"")
            out.append(str(p))
        return out

    return make
