from .step_01_sync_clock import SyncClockStep
from .step_02_update_mirrors import UpdateMirrorsStep
from .step_03_partition_disk import PartitionDiskStep
from .step_04_format_partitions import FormatPartitionsStep
from .step_05_mount_filesystems import MountFilesystemsStep
from .step_06_install_base import InstallBaseStep
from .step_07_generate_fstab import GenerateFstabStep
from .step_08_configure_system import ConfigureSystemStep
from .step_09_install_bootloader import InstallBootloaderStep
from .step_10_create_user import CreateUserStep

__all__ = [
    "SyncClockStep",
    "UpdateMirrorsStep",
    "PartitionDiskStep",
    "FormatPartitionsStep",
    "MountFilesystemsStep",
    "InstallBaseStep",
    "GenerateFstabStep",
    "ConfigureSystemStep",
    "InstallBootloaderStep",
    "CreateUserStep",
]
