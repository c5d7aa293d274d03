from __future__ import annotations

from typing import Dict

from .distro import Distribution
from .grubcfg import DATA_UUID_PLACEHOLDER

# "${isofile}" is the GRUB variable each menu entry sets to the ISO path.
ISOFILE_VAR = "${isofile}"
DATA_LABEL_TOKEN = "@DATA_LABEL@"
DEFAULT_DATA_LABEL = "Multiboot"

_CASPER = f"boot=casper iso-scan/filename={ISOFILE_VAR} quiet splash"
_ARCHISO = f"img_loop={ISOFILE_VAR} driver=free quiet splash cow_spacesize=1G"
_DRACUT_LIVE = f"root=live:CDLABEL={DATA_LABEL_TOKEN} iso-scan/filename={ISOFILE_VAR} rd.live.image quiet"
_SUSE = f"isofrom_device=/dev/disk/by-uuid/{DATA_UUID_PLACEHOLDER} isofrom_system={ISOFILE_VAR} quiet splash"
_DEBIAN_LIVE = f"boot=live components quiet splash findiso={ISOFILE_VAR}"

GENERIC_BOOT_PARAMETERS = f"iso-scan/filename={ISOFILE_VAR} quiet splash"

BOOT_PARAMETERS: Dict[Distribution, str] = {
    Distribution.UBUNTU: _CASPER,
    Distribution.KUBUNTU: _CASPER,
    Distribution.XUBUNTU: _CASPER,
    Distribution.LUBUNTU: _CASPER,
    Distribution.MINT: _CASPER,
    Distribution.ELEMENTARY: _CASPER,
    Distribution.DEBIAN: _CASPER,
    Distribution.ARCH: _ARCHISO,
    Distribution.MANJARO: _ARCHISO,
    Distribution.ANTERGOS: _ARCHISO,
    Distribution.FEDORA: _DRACUT_LIVE,
    Distribution.CENTOS: _DRACUT_LIVE,
    Distribution.OPENSUSE: _SUSE,
    Distribution.DEBIAN_LIVE: _DEBIAN_LIVE,
    Distribution.UNKNOWN: GENERIC_BOOT_PARAMETERS,
}


def boot_parameters(distribution: Distribution, *, data_label: str = DEFAULT_DATA_LABEL) -> str:
    """Kernel command line for `distribution`.

    dracut-based live images find their root by filesystem label, so the data
    partition label is filled in for Fedora/CentOS.
    """

    template = BOOT_PARAMETERS.get(distribution, GENERIC_BOOT_PARAMETERS)
    return template.replace(DATA_LABEL_TOKEN, data_label)
