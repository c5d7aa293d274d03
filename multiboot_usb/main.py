from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional, Sequence

from .config import load_usb_config
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import Step, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    CheckDependenciesStep,
    CopyIsosStep,
    FormatUsbStep,
    GenerateMenuStep,
    InstallGrubStep,
    PartitionUsbStep,
    WriteGrubConfigStep,
)

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = "/var/lib/multiboot-usb/state.json"

# Per-invocation switches: reset on every run, never read back from saved state.
RUN_FLAGS: Dict[str, Any] = {"dry_run": False, "copy_isos": True}


def build_steps():
    return [
        CheckDependenciesStep(),
        PartitionUsbStep(),
        FormatUsbStep(),
        InstallGrubStep(),
        WriteGrubConfigStep(),
        CopyIsosStep(),
        GenerateMenuStep(),
    ]


def run(
    *,
    config_path: Optional[str] = None,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    overrides: Optional[Dict[str, Any]] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    verbose: bool = False,
    steps: Optional[Sequence[Step]] = None,
) -> Dict[str, Any]:
    """Prepare the USB stick, persisting state so an interrupted run can resume."""

    actual_log_path = configure_logging(log_path=log_path, level=logging.DEBUG if verbose else logging.INFO)

    state = load_state(state_path)
    cfg = state.setdefault("config", {})
    cfg.update(RUN_FLAGS)
    if config_path:
        cfg.update({k: v for k, v in load_usb_config(config_path).as_state_config().items() if v is not None})
    cfg.update({k: v for k, v in (overrides or {}).items() if v is not None})
    state = ensure_defaults(state)
    state["execution"].setdefault("paths", {})["log_path_actual"] = actual_log_path

    steps = steps if steps is not None else build_steps()

    try:
        result = run_pipeline(
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
            record_progress=not state["config"]["dry_run"],
        )
        state = result.state
        state["execution"]["summary"] = {
            "ran_steps": result.ran_steps,
            "skipped_steps": result.skipped_steps,
        }
        return state
    except Exception as e:
        logger.exception("USB preparation failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="multiboot-usb", description="Build a multi-ISO GRUB2 USB stick")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to run state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to log file")
    p.add_argument("--device", default=None, help="USB disk to ERASE (e.g. /dev/sdb)")
    p.add_argument("--iso-dir", default=None, help="Directory holding *.iso files to copy")
    p.add_argument("--partition-table", choices=["auto", "gpt", "msdos"], default=None)
    p.add_argument("--data-fs", choices=["exfat", "vfat"], default=None)
    p.add_argument("--no-copy", action="store_true", help="Do not copy ISOs; only regenerate menus")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 70_generate_menu)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("-v", "--verbose", action="store_true", help="Log command output (DEBUG)")

    args = p.parse_args(argv)

    overrides: Dict[str, Any] = {
        "device": args.device,
        "iso_dir": args.iso_dir,
        "partition_table": args.partition_table,
        "data_fs": args.data_fs,
        "copy_isos": False if args.no_copy else None,
        "dry_run": True if args.dry_run else None,
    }

    run(
        config_path=args.config,
        state_path=args.state,
        log_path=args.log,
        overrides=overrides,
        start_at=args.start_at,
        stop_after=args.stop_after,
        force=args.force,
        verbose=args.verbose,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
