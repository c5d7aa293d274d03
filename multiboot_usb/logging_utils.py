from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Tuple

DEFAULT_LOG_PATH = "/var/log/multiboot-usb.log"
FALLBACK_LOG_NAME = "multiboot-usb.log"

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _open_file_handler(log_path: str) -> Tuple[logging.Handler, str]:
    """FileHandler on `log_path`, or on ./multiboot-usb.log when that is not writable."""

    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure root logging once per process and return the log file in use.

    The file gets every record with timestamps and logger names; the console
    only level and message. /var/log needs root, hence the fallback.
    """

    root = logging.getLogger()
    root.setLevel(level)

    if getattr(root, "_multiboot_configured", False):
        return getattr(root, "_multiboot_log_path", log_path)

    file_handler, chosen_path = _open_file_handler(log_path)
    file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
        root.addHandler(console)

    setattr(root, "_multiboot_configured", True)
    setattr(root, "_multiboot_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging to %s (requested %s)", chosen_path, log_path)
    return chosen_path
