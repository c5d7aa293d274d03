from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

UMOUNT_ATTEMPTS = 3
UMOUNT_DELAY_S = 1.0


def mount(
    source: str,
    mount_point: str,
    *,
    options: Optional[Sequence[str]] = None,
    check: bool = True,
    dry_run: bool = False,
) -> bool:
    """Mount `source` on `mount_point`, creating the directory first."""

    if not dry_run:
        Path(mount_point).mkdir(parents=True, exist_ok=True)

    argv = ["mount"]
    if options:
        argv += ["-o", ",".join(options)]
    argv += [source, mount_point]
    return run_cmd(argv, check=check, dry_run=dry_run).ok


def umount_with_retry(
    mount_point: str,
    *,
    attempts: int = UMOUNT_ATTEMPTS,
    delay_s: float = UMOUNT_DELAY_S,
    sleep: Callable[[float], None] = time.sleep,
    dry_run: bool = False,
) -> bool:
    """Unmount with a fixed number of retries; the last attempt is a lazy unmount."""

    for attempt in range(1, attempts + 1):
        argv = ["umount", mount_point]
        if attempt == attempts and attempts > 1:
            argv = ["umount", "-l", mount_point]
        if run_cmd(argv, check=False, dry_run=dry_run).ok:
            return True
        logger.warning("umount %s failed (attempt %d/%d)", mount_point, attempt, attempts)
        if attempt < attempts:
            sleep(delay_s)
    return False


def remove_mount_point(mount_point: str, *, dry_run: bool = False) -> None:
    if dry_run:
        return
    try:
        Path(mount_point).rmdir()
    except OSError as e:
        logger.debug("Leaving mount point %s: %s", mount_point, e)


@contextmanager
def mounted(
    source: str,
    mount_point: str,
    *,
    options: Optional[Sequence[str]] = None,
    dry_run: bool = False,
) -> Iterator[str]:
    """Mount for the duration of a block; always unmounts, even on error."""

    mount(source, mount_point, options=options, dry_run=dry_run)
    try:
        yield mount_point
    finally:
        if not umount_with_retry(mount_point, dry_run=dry_run):
            logger.error("Could not unmount %s", mount_point)
        remove_mount_point(mount_point, dry_run=dry_run)
