from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def blkid_value(dev: str, field: str, *, dry_run: bool = False) -> str:
    """Read one blkid field (UUID/LABEL/TYPE); '' when unknown."""

    r = run_cmd(["blkid", "-s", field, "-o", "value", dev], check=False, dry_run=dry_run)
    if not r.ok:
        return ""
    return (r.stdout or "").strip()


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Filesystem UUID for a partition; may be empty."""

    uuid = blkid_value(dev, "UUID", dry_run=dry_run)
    if not uuid and not dry_run:
        logger.warning("Unable to determine UUID for %s", dev)
    return uuid
