from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Mapping, Optional

from .command import have_tool, run_cmd

logger = logging.getLogger(__name__)

ESP_UUID_PLACEHOLDER = "ESP_UUID_PLACEHOLDER"
DATA_UUID_PLACEHOLDER = "DATA_UUID_PLACEHOLDER"
DATA_LABEL_PLACEHOLDER = "DATA_LABEL_PLACEHOLDER"
PARTSCHEME_PLACEHOLDER = "PARTSCHEME"

BACKUP_SUFFIX = ".backup"

# Last line of the base template; everything below it is generated.
ENTRIES_MARKER = "# ---- ISO entries ----"
GENERATED_HEADER = "# Auto-generated GRUB entries"

DEFAULT_TEMPLATE = Path(__file__).resolve().parents[1] / "templates" / "grub.cfg"


def backup_path(cfg_path: str) -> Path:
    p = Path(cfg_path)
    return p.with_name(p.name + BACKUP_SUFFIX)


def write_base_config(
    cfg_path: str,
    *,
    partition_table: str,
    data_label: str,
    template_path: Optional[str] = None,
    dry_run: bool = False,
) -> None:
    """Write the base grub.cfg (modules, partition search, helpers).

    UUID placeholders are left in place; substitute_placeholders() fills them
    once the partitions exist.
    """

    template = Path(template_path) if template_path else DEFAULT_TEMPLATE
    if not template.exists():
        raise FileNotFoundError(str(template))

    contents = template.read_text(encoding="utf-8")
    contents = contents.replace(PARTSCHEME_PLACEHOLDER, partition_table)
    contents = contents.replace(DATA_LABEL_PLACEHOLDER, data_label)

    if dry_run:
        logger.info("Would write %s from %s", cfg_path, str(template))
        return

    p = Path(cfg_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    logger.info("Wrote base GRUB config: %s", cfg_path)


def backup_config(cfg_path: str, *, dry_run: bool = False) -> Optional[Path]:
    """Copy grub.cfg to grub.cfg.backup. Plain copy, not an atomic swap."""

    src = Path(cfg_path)
    dst = backup_path(cfg_path)
    if dry_run:
        logger.info("Would back up %s -> %s", str(src), str(dst))
        return dst
    if not src.exists():
        logger.warning("No existing GRUB config to back up: %s", str(src))
        return None
    shutil.copy2(src, dst)
    logger.info("Backed up GRUB config: %s", str(dst))
    return dst


def restore_backup(cfg_path: str, *, dry_run: bool = False) -> bool:
    src = backup_path(cfg_path)
    if dry_run:
        logger.info("Would restore %s from %s", cfg_path, str(src))
        return True
    if not src.exists():
        logger.error("Backup missing, cannot restore: %s", str(src))
        return False
    shutil.copy2(src, cfg_path)
    logger.warning("Restored GRUB config from backup: %s", str(src))
    return True


def strip_generated_entries(contents: str) -> str:
    """Cut `contents` back to the hand-written part of grub.cfg.

    Keeps everything up to and including ENTRIES_MARKER; without the marker,
    drops everything from the first GENERATED_HEADER on.
    """

    idx = contents.find(ENTRIES_MARKER)
    if idx != -1:
        return contents[: idx + len(ENTRIES_MARKER)] + "\n"
    idx = contents.find(GENERATED_HEADER)
    if idx != -1:
        return contents[:idx].rstrip("\n") + "\n"
    return contents


def append_entries(
    cfg_path: str,
    text: str,
    *,
    backup: bool = True,
    replace: bool = True,
    dry_run: bool = False,
) -> None:
    """Write a buffer of menu entries after the base config, backing the file up first.

    With replace=True a previously generated section is dropped first, so
    regenerating the menu never stacks duplicate entries.
    """

    if backup:
        backup_config(cfg_path, dry_run=dry_run)

    if dry_run:
        logger.info("Would append %d bytes to %s", len(text.encode("utf-8")), cfg_path)
        return

    p = Path(cfg_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    existing = p.read_text(encoding="utf-8") if p.exists() else ""
    if replace:
        existing = strip_generated_entries(existing)
    if existing and not existing.endswith("\n"):
        existing += "\n"
    p.write_text(existing + "\n" + text, encoding="utf-8")
    logger.info("Wrote menu entries to %s", cfg_path)


def substitute_placeholders(cfg_path: str, values: Mapping[str, str], *, dry_run: bool = False) -> int:
    """Replace placeholder tokens in grub.cfg. Returns the number of replacements.

    Empty values are skipped so an unknown UUID leaves its placeholder
    visible rather than producing an empty search.
    """

    if dry_run:
        for token, value in values.items():
            logger.info("Would replace %s with %r in %s", token, value, cfg_path)
        return 0

    p = Path(cfg_path)
    contents = p.read_text(encoding="utf-8")
    count = 0
    for token, value in values.items():
        if not value:
            logger.warning("No value for %s; leaving placeholder in %s", token, cfg_path)
            continue
        count += contents.count(token)
        contents = contents.replace(token, value)
    p.write_text(contents, encoding="utf-8")
    logger.info("Substituted %d placeholder(s) in %s", count, cfg_path)
    return count


def check_syntax(cfg_path: str, *, dry_run: bool = False) -> Optional[bool]:
    """Validate with grub-script-check. None when the tool is unavailable."""

    if dry_run or not have_tool("grub-script-check"):
        logger.info("Skipping GRUB syntax check for %s", cfg_path)
        return None

    r = run_cmd(["grub-script-check", cfg_path], check=False)
    if r.ok:
        logger.info("GRUB config syntax OK: %s", cfg_path)
        return True
    logger.error("GRUB config has syntax errors: %s\n%s", cfg_path, r.stderr.strip())
    return False
