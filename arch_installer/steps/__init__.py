from .step_10_preflight import PreflightStep
from .step_15_detect_hardware import DetectHardwareStep
from .step_18_gather_config import GatherConfigStep
from .step_20_cleanup_previous import CleanupPreviousStep
from .step_25_partition import PartitionStep
from .step_30_encrypt import EncryptStep
from .step_35_format_subvolumes import FormatSubvolumesStep
from .step_40_mount import MountStep
from .step_45_pacstrap import PacstrapStep
from .step_50_configure_system import ConfigureSystemStep
from .step_55_users import UsersStep
from .step_60_initramfs import InitramfsStep
from .step_65_bootloader import BootloaderStep
from .step_70_services import ServicesStep
from .step_75_snapper import SnapperStep
from .step_80_post_install_checks import PostInstallChecksStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "PreflightStep",
    "DetectHardwareStep",
    "GatherConfigStep",
    "CleanupPreviousStep",
    "PartitionStep",
    "EncryptStep",
    "FormatSubvolumesStep",
    "MountStep",
    "PacstrapStep",
    "ConfigureSystemStep",
    "UsersStep",
    "InitramfsStep",
    "BootloaderStep",
    "ServicesStep",
    "SnapperStep",
    "PostInstallChecksStep",
    "FinalizeStep",
]
