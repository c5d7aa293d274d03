from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .lib.assets import find_isos
from .lib.bootparams import DEFAULT_DATA_LABEL
from .lib.detect import DetectionResult, IsoMounter, detect_many
from .lib.env import PATHS
from .lib.grub_menu import render_entry_for_outcome, render_menu, summarize
from .logging_utils import configure_logging

logger = logging.getLogger(__name__)


DEFAULT_ANALYZE_LOG = "multiboot-analyze.log"


def describe(iso_path: str, result: Optional[DetectionResult]) -> str:
    """Human-readable report for one ISO."""

    name = Path(iso_path).name
    if result is None:
        return f"{name}: could not be mounted for analysis"
    lines = [
        f"{name}:",
        f"  distribution: {result.distribution.value}",
        f"  kernel:       {result.kernel_path or '(not found)'}",
        f"  initrd:       {result.initrd_path or '(not found)'}",
        f"  parameters:   {result.boot_parameters}",
    ]
    return "\n".join(lines)


def collect_isos(paths: Sequence[str], iso_dir: Optional[str]) -> List[str]:
    isos = [str(Path(p)) for p in paths]
    if iso_dir:
        isos += [str(p) for p in find_isos(iso_dir)]
    return isos


def run_analyze(
    *,
    isos: Sequence[str],
    output: Optional[str],
    partition_table: str,
    data_label: str,
    mount_point: str = PATHS.iso_probe,
    mounter: Optional[IsoMounter] = None,
) -> Tuple[List[Tuple[str, Optional[DetectionResult]]], str]:
    if not isos:
        raise RuntimeError("No ISO files given")

    logger.info("Analyzing %d ISO file(s)", len(isos))
    outcomes = detect_many(list(isos), mount_point=mount_point, mounter=mounter, data_label=data_label)

    for iso_path, result in outcomes:
        print(describe(iso_path, result))
        print()
        print(
            render_entry_for_outcome(
                Path(iso_path).name,
                result,
                partition_table=partition_table,
                data_label=data_label,
            )
        )

    menu = render_menu(outcomes, partition_table=partition_table, data_label=data_label)
    if output:
        out = Path(output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(menu, encoding="utf-8")
        logger.info("Results saved to: %s", str(out))

    detected, fallback = summarize(outcomes)
    logger.info("%d detected, %d need manual review", detected, fallback)
    return outcomes, menu


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="multiboot-analyze", description="Detect ISO boot files and print GRUB entries")
    p.add_argument("isos", nargs="*", help="ISO files to analyze")
    p.add_argument("--iso-dir", default=None, help="Analyze every *.iso under this directory")
    p.add_argument("--output", default=None, help="Write the generated menu entries to this file")
    p.add_argument("--log", default=DEFAULT_ANALYZE_LOG)
    p.add_argument("--partition-table", choices=["gpt", "msdos"], default="gpt")
    p.add_argument("--data-label", default=DEFAULT_DATA_LABEL)
    p.add_argument("-v", "--verbose", action="store_true", help="Log command output (DEBUG)")

    args = p.parse_args(argv)
    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)

    isos = collect_isos(args.isos, args.iso_dir)
    if not isos:
        p.error("give ISO files or --iso-dir")

    outcomes, _ = run_analyze(
        isos=isos,
        output=args.output,
        partition_table=args.partition_table,
        data_label=args.data_label,
    )
    return 0 if all(r is not None and r.success for _, r in outcomes) else 1


if __name__ == "__main__":
    raise SystemExit(main())
