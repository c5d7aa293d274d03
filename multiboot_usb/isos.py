from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .lib.assets import IsoFile, format_size, free_bytes, iso_inventory, remove_isos
from .lib.env import PATHS
from .lib.stick import StickLayout, find_multiboot_sticks, partition_mounted, read_layout
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .state_store import ensure_defaults
from .steps import GenerateMenuStep

logger = logging.getLogger(__name__)


def _data_mounted(layout: StickLayout, *, read_only: bool = False):
    options = ["ro"] if read_only else None
    return partition_mounted(layout.data_part, layout.data_mountpoint, PATHS.data_mount, options=options)


def list_stick(layout: StickLayout) -> Tuple[List[IsoFile], int]:
    """(ISOs on the data partition, free bytes)."""

    with _data_mounted(layout, read_only=True) as data:
        return iso_inventory(data), free_bytes(data)


def regenerate_menu(layout: StickLayout, *, dry_run: bool = False) -> Dict[str, Any]:
    """Rebuild the generated grub.cfg section from the ISOs now on the stick."""

    state = ensure_defaults({"config": {"data_label": layout.data_label, "dry_run": dry_run}})
    state["execution"]["layout"] = layout.as_state_layout()
    return GenerateMenuStep().run(state)


def remove_from_stick(
    layout: StickLayout,
    names: Sequence[str],
    *,
    regenerate: bool = True,
    dry_run: bool = False,
) -> List[str]:
    # Names are validated against the real partition even in a dry run.
    with _data_mounted(layout, read_only=dry_run) as data:
        removed = remove_isos(data, names, dry_run=dry_run)

    if dry_run:
        logger.info("Would regenerate the GRUB menu on %s", layout.esp_part)
    elif regenerate:
        regenerate_menu(layout)
    else:
        logger.warning("Menu not regenerated; grub.cfg still lists %s", ", ".join(removed))
    return removed


def print_inventory(layout: StickLayout, isos: Sequence[IsoFile], free: int) -> None:
    print(f"ISO files on {layout.data_part} ({layout.data_label}):")
    if not isos:
        print("  (none)")
    for iso in isos:
        print(f"  {iso.name:<50} ({format_size(iso.size_bytes)})")
    print(f"Available space: {format_size(free)}")


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="multiboot-isos", description="List or remove ISO files on a prepared multiboot stick")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to log file")
    p.add_argument("-v", "--verbose", action="store_true", help="Log command output (DEBUG)")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("sticks", help="Show connected USB disks prepared by multiboot-usb")

    lp = sub.add_parser("list", help="List ISO files and free space on the stick")
    lp.add_argument("--device", required=True, help="USB disk (e.g. /dev/sdb)")

    rp = sub.add_parser("remove", help="Delete ISO files from the stick and regenerate the menu")
    rp.add_argument("--device", required=True, help="USB disk (e.g. /dev/sdb)")
    rp.add_argument("names", nargs="+", help="ISO file names as shown by 'list'")
    rp.add_argument("--no-menu", action="store_true", help="Do not regenerate grub.cfg entries")
    rp.add_argument("--dry-run", action="store_true", help="Log what would be removed without removing")

    args = p.parse_args(argv)
    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "sticks":
        sticks = find_multiboot_sticks()
        if not sticks:
            print("No multiboot USB sticks found")
            return 1
        for s in sticks:
            print(f"{s.device}  {s.partition_table}  data={s.data_part} ({s.data_label})")
        return 0

    layout = read_layout(args.device)

    if args.command == "list":
        isos, free = list_stick(layout)
        print_inventory(layout, isos, free)
        return 0

    removed = remove_from_stick(layout, args.names, regenerate=not args.no_menu, dry_run=args.dry_run)
    for name in removed:
        print(f"{'Would remove' if args.dry_run else 'Removed'} {name}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
