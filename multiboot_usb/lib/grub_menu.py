"""GRUB menu entries for ISOs booted through a loopback device.

Every entry points GRUB at the data partition (second partition, located by
UUID with a positional fallback), loops the ISO file and boots the kernel and
initrd from inside it. Missing boot files become comment markers instead of
directives, so a reader of grub.cfg can see which ISOs need attention.
"""

from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from .bootparams import DEFAULT_DATA_LABEL, boot_parameters
from .detect import DetectionResult
from .distro import Distribution
from .grubcfg import DATA_UUID_PLACEHOLDER, GENERATED_HEADER

logger = logging.getLogger(__name__)

DATA_PARTITION_NUMBER = 2

# Used when nothing could be detected. Often wrong, still better than no entry.
GENERIC_KERNEL_PATH = "/boot/vmlinuz"
GENERIC_INITRD_PATH = "/boot/initrd"

NO_KERNEL_MARKER = "# ERROR: No kernel found!"
NO_INITRD_MARKER = "# WARNING: No initrd found"

MENU_HEADER = GENERATED_HEADER

_INDENT = "    "


def root_partition_reference(partition_table: str, number: int = DATA_PARTITION_NUMBER) -> str:
    """GRUB locator for partition `number` on the first disk ('hd0,gpt2' / 'hd0,msdos2')."""

    if partition_table not in {"gpt", "msdos"}:
        raise ValueError(f"partition_table must be 'gpt' or 'msdos', got: {partition_table}")
    return f"hd0,{partition_table}{number}"


def iso_path_on_partition(iso_name: str) -> str:
    return "/" + iso_name.lstrip("/")


@dataclass(frozen=True)
class MenuEntry:
    title: str
    class_tags: Tuple[str, ...]
    root_partition_reference: str
    iso_path: str
    kernel_path: Optional[str]
    initrd_path: Optional[str]
    boot_parameters: str
    comment: Optional[str] = None

    def render(self) -> str:
        classes = " ".join(f"--class {c}" for c in self.class_tags)
        lines: List[str] = []
        if self.comment:
            lines.append(f"# {self.comment}")
        lines += [
            f'menuentry "{_quote(self.title)}" {classes} {{',
            f"{_INDENT}set root='{self.root_partition_reference}'",
            f"{_INDENT}search --no-floppy --fs-uuid --set=root {DATA_UUID_PLACEHOLDER}",
            f'{_INDENT}set isofile="{_quote(self.iso_path)}"',
            f"{_INDENT}loopback loop $isofile",
        ]
        if self.kernel_path:
            lines.append(f"{_INDENT}linux (loop){self.kernel_path} {self.boot_parameters}".rstrip())
        else:
            lines.append(f"{_INDENT}{NO_KERNEL_MARKER}")
        if self.initrd_path:
            lines.append(f"{_INDENT}initrd (loop){self.initrd_path}")
        else:
            lines.append(f"{_INDENT}{NO_INITRD_MARKER}")
        lines.append("}")
        return "\n".join(lines) + "\n"


def _quote(text: str) -> str:
    # Inside GRUB double quotes only '"', '\\' and '$' are special.
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")


def _class_tags(distribution: Distribution) -> Tuple[str, ...]:
    return (distribution.menu_class, "linux")


def menu_entry_for(
    result: DetectionResult,
    iso_name: str,
    *,
    partition_table: str = "gpt",
) -> MenuEntry:
    return MenuEntry(
        title=f"{result.distribution.display_name} - {iso_name}",
        class_tags=_class_tags(result.distribution),
        root_partition_reference=root_partition_reference(partition_table),
        iso_path=iso_path_on_partition(iso_name),
        kernel_path=result.kernel_path,
        initrd_path=result.initrd_path,
        boot_parameters=result.boot_parameters,
        comment=f"{iso_name} - {result.distribution.value}",
    )


def render_menu_entry(result: DetectionResult, iso_name: str, *, partition_table: str = "gpt") -> str:
    return menu_entry_for(result, iso_name, partition_table=partition_table).render()


def render_generic_entry(
    iso_name: str,
    *,
    distribution: Distribution = Distribution.UNKNOWN,
    initrd_path: Optional[str] = None,
    partition_table: str = "gpt",
    data_label: str = DEFAULT_DATA_LABEL,
) -> str:
    """Fallback entry for an ISO whose boot files could not be detected.

    A partially successful detection can pass its distribution and initrd
    along; the kernel path is always the generic guess.
    """

    entry = MenuEntry(
        title=f"{iso_name} (generic)",
        class_tags=_class_tags(distribution),
        root_partition_reference=root_partition_reference(partition_table),
        iso_path=iso_path_on_partition(iso_name),
        kernel_path=GENERIC_KERNEL_PATH,
        initrd_path=initrd_path or GENERIC_INITRD_PATH,
        boot_parameters=boot_parameters(distribution, data_label=data_label),
        comment=f"{iso_name} - boot files not detected, generic paths (verify manually)",
    )
    return entry.render()


def render_entry_for_outcome(
    iso_name: str,
    result: Optional[DetectionResult],
    *,
    partition_table: str = "gpt",
    data_label: str = DEFAULT_DATA_LABEL,
) -> str:
    """Pick the detected entry or the generic fallback for one ISO."""

    if result is None:
        return render_generic_entry(iso_name, partition_table=partition_table, data_label=data_label)
    if not result.success:
        return render_generic_entry(
            iso_name,
            distribution=result.distribution,
            initrd_path=result.initrd_path,
            partition_table=partition_table,
            data_label=data_label,
        )
    return render_menu_entry(result, iso_name, partition_table=partition_table)


def render_menu(
    outcomes: Iterable[Tuple[str, Optional[DetectionResult]]],
    *,
    partition_table: str = "gpt",
    data_label: str = DEFAULT_DATA_LABEL,
    generated_at: Optional[_dt.datetime] = None,
) -> str:
    """Concatenate entries for (iso_path, result) pairs into one text buffer."""

    stamp = (generated_at or _dt.datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    blocks: List[str] = [f"{MENU_HEADER}\n# Generated on {stamp}\n"]
    for iso_path, result in outcomes:
        blocks.append(
            render_entry_for_outcome(
                Path(iso_path).name,
                result,
                partition_table=partition_table,
                data_label=data_label,
            )
        )
    return "\n".join(blocks)


def summarize(outcomes: Sequence[Tuple[str, Optional[DetectionResult]]]) -> Tuple[int, int]:
    """(detected, fallback) counts for a batch."""

    detected = sum(1 for _, r in outcomes if r is not None and r.success)
    return detected, len(outcomes) - detected
