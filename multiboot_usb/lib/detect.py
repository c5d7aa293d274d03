from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from .bootfiles import find_initrds, find_kernels, first_or_none
from .bootparams import DEFAULT_DATA_LABEL, boot_parameters
from .command import run_cmd
from .distro import Distribution, classify
from .env import PATHS
from .isofs import IsoFilesystem, MountedFilesystem
from .mounts import remove_mount_point, umount_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    distribution: Distribution
    kernel_path: Optional[str]
    initrd_path: Optional[str]
    boot_parameters: str

    @property
    def success(self) -> bool:
        # A missing initrd still yields a usable (commented) entry; a missing kernel does not.
        return self.kernel_path is not None


class IsoMounter(Protocol):
    """Mount capability: failure is reported as False, never raised."""

    def mount(self, iso_path: str, mount_point: str) -> bool:
        ...

    def umount(self, mount_point: str) -> bool:
        ...


@dataclass(frozen=True)
class LoopMounter:
    dry_run: bool = False

    def mount(self, iso_path: str, mount_point: str) -> bool:
        r = run_cmd(["mount", "-o", "loop,ro", iso_path, mount_point], check=False, dry_run=self.dry_run)
        return r.ok

    def umount(self, mount_point: str) -> bool:
        return umount_with_retry(mount_point, dry_run=self.dry_run)


def inspect_tree(fs: IsoFilesystem, *, data_label: str = DEFAULT_DATA_LABEL) -> DetectionResult:
    """Classify and locate boot files in an already-mounted ISO tree."""

    distribution = classify(fs)
    return DetectionResult(
        distribution=distribution,
        kernel_path=first_or_none(find_kernels(fs)),
        initrd_path=first_or_none(find_initrds(fs)),
        boot_parameters=boot_parameters(distribution, data_label=data_label),
    )


def detect(
    iso_path: str,
    *,
    mount_point: str = PATHS.iso_probe,
    mounter: Optional[IsoMounter] = None,
    open_fs: Callable[[str], IsoFilesystem] = MountedFilesystem.from_path,
    data_label: str = DEFAULT_DATA_LABEL,
) -> Optional[DetectionResult]:
    """Mount `iso_path` read-only, inspect it, unmount.

    Returns None when the ISO is missing or cannot be mounted. A returned
    result may still be unsuccessful (no kernel found); see
    DetectionResult.success.
    """

    iso = Path(iso_path)
    if not iso.is_file():
        logger.warning("ISO file not found: %s", iso_path)
        return None

    mounter = mounter or LoopMounter()
    try:
        Path(mount_point).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Cannot create ISO mount directory %s: %s", mount_point, e)
        return None

    if not mounter.mount(str(iso), mount_point):
        logger.warning("Failed to mount ISO for analysis: %s", iso.name)
        return None

    try:
        result = inspect_tree(open_fs(mount_point), data_label=data_label)
    finally:
        if not mounter.umount(mount_point):
            logger.error("Could not unmount ISO probe %s", mount_point)

    if result.success:
        logger.info("OK %s: %s (kernel: %s)", iso.name, result.distribution.value, result.kernel_path)
    else:
        logger.warning("No kernel found in %s (distribution: %s)", iso.name, result.distribution.value)
    if result.initrd_path is None:
        logger.warning("No initrd found in %s", iso.name)
    return result


def detect_many(
    iso_paths: Sequence[str],
    *,
    mount_point: str = PATHS.iso_probe,
    mounter: Optional[IsoMounter] = None,
    open_fs: Callable[[str], IsoFilesystem] = MountedFilesystem.from_path,
    data_label: str = DEFAULT_DATA_LABEL,
) -> List[Tuple[str, Optional[DetectionResult]]]:
    """Detect each ISO in turn through one reused probe directory.

    A failure on one ISO is logged and recorded as None; the batch carries on.
    """

    outcomes: List[Tuple[str, Optional[DetectionResult]]] = []
    for iso_path in iso_paths:
        logger.info("Processing: %s", Path(iso_path).name)
        try:
            result = detect(
                iso_path,
                mount_point=mount_point,
                mounter=mounter,
                open_fs=open_fs,
                data_label=data_label,
            )
        except (OSError, RuntimeError):
            logger.exception("Error while analyzing %s", Path(iso_path).name)
            result = None
        if result is None:
            logger.warning("Could not detect boot files: %s", Path(iso_path).name)
        outcomes.append((iso_path, result))

    remove_mount_point(mount_point)
    return outcomes
