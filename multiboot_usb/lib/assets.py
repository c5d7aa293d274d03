from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .command import have_tool, run_cmd

logger = logging.getLogger(__name__)

# Headroom kept free on the data partition after copying.
SPACE_HEADROOM_BYTES = 1024 ** 3


def find_isos(directory: str, *, recursive: bool = True) -> List[Path]:
    """*.iso files under `directory` (case-insensitive suffix), sorted by name."""

    d = Path(directory)
    if not d.is_dir():
        return []
    candidates = d.rglob("*") if recursive else d.iterdir()
    return sorted(
        (p for p in candidates if p.is_file() and p.suffix.lower() == ".iso"),
        key=lambda p: p.name.lower(),
    )


def check_space(isos: Sequence[Path], target_dir: str) -> None:
    """Raise when the ISOs plus headroom do not fit on the target filesystem."""

    needed = sum(p.stat().st_size for p in isos) + SPACE_HEADROOM_BYTES
    free = shutil.disk_usage(target_dir).free
    logger.info("ISO payload %.1f GiB, free %.1f GiB", needed / 1024 ** 3, free / 1024 ** 3)
    if free < needed:
        raise RuntimeError(
            f"Insufficient space on {target_dir}: need {needed / 1024 ** 3:.1f} GiB "
            f"(including 1 GiB headroom), have {free / 1024 ** 3:.1f} GiB"
        )


def copy_iso(src: Path, dst_dir: str, *, dry_run: bool = False) -> Path:
    """Copy one ISO to the data partition root; rsync resumes partial copies."""

    dst = Path(dst_dir) / src.name
    if have_tool("rsync"):
        run_cmd(["rsync", "--partial", "--inplace", str(src), str(dst)], dry_run=dry_run)
    else:
        run_cmd(["cp", str(src), str(dst)], dry_run=dry_run)
    if not dry_run:
        run_cmd(["sync"], check=False)
    logger.info("Copied %s -> %s", src.name, str(dst))
    return dst


@dataclass(frozen=True)
class IsoFile:
    name: str
    size_bytes: int


def format_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TiB"


def iso_inventory(data_dir: str) -> List[IsoFile]:
    """ISOs in the root of the data partition (the only ones the menu boots)."""

    return [IsoFile(name=p.name, size_bytes=p.stat().st_size) for p in find_isos(data_dir, recursive=False)]


def free_bytes(data_dir: str) -> int:
    return shutil.disk_usage(data_dir).free


def remove_isos(data_dir: str, names: Sequence[str], *, dry_run: bool = False) -> List[str]:
    """Delete the named ISOs from the data partition root.

    Every name is checked before anything is deleted; an unknown name raises
    RuntimeError and leaves the partition untouched.
    """

    present = {iso.name for iso in iso_inventory(data_dir)}
    unknown = [n for n in names if n not in present]
    if unknown:
        raise RuntimeError(f"Not on the stick: {', '.join(unknown)} (present: {', '.join(sorted(present)) or 'none'})")

    removed: List[str] = []
    for name in dict.fromkeys(names):
        target = Path(data_dir) / name
        if dry_run:
            logger.info("Would remove %s", str(target))
        else:
            target.unlink()
            logger.info("Removed %s", name)
        removed.append(name)
    if removed and not dry_run:
        run_cmd(["sync"], check=False)
    return removed
