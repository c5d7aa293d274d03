from .step_10_check_dependencies import CheckDependenciesStep
from .step_20_partition_usb import PartitionUsbStep
from .step_30_format_usb import FormatUsbStep
from .step_40_install_grub import InstallGrubStep
from .step_50_write_grub_config import WriteGrubConfigStep
from .step_60_copy_isos import CopyIsosStep
from .step_70_generate_menu import GenerateMenuStep

__all__ = [
    "CheckDependenciesStep",
    "PartitionUsbStep",
    "FormatUsbStep",
    "InstallGrubStep",
    "WriteGrubConfigStep",
    "CopyIsosStep",
    "GenerateMenuStep",
]
