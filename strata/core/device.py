"""
Device path derivation.

This module computes the block device path at which a nested device will be
found, either from its parent device and partition index or from the fixed
templates used by the device mapper, LVM and ZFS.
"""
import re

from strata.core.exceptions import UnsupportedDeviceNamingError

# /dev/sda, /dev/vdb style
_SCSI_VIRTIO = re.compile(r"/dev/[sv]d.+")
# /dev/disk/by-id/..., /dev/disk/by-path/... style
_DISK_BY = re.compile(r"/dev/disk/.+")
# /dev/nvme0n1, /dev/md/name, /dev/mmcblk0 style
_P_SUFFIXED = re.compile(r"/dev/(nvme|md/|mmcblk).+")


def get_partition_device_name(device: str, index: int) -> str:
    """
    Generate the partition device path for a partition of a device.

    Args:
        device: Path to the partitioned device
        index: Partition number

    Returns:
        Partition device path

    Raises:
        UnsupportedDeviceNamingError: If the device path follows no known naming scheme
    """
    if _SCSI_VIRTIO.fullmatch(device):
        return f"{device}{index}"
    if _DISK_BY.fullmatch(device):
        return f"{device}-part{index}"
    if _P_SUFFIXED.fullmatch(device):
        return f"{device}p{index}"
    raise UnsupportedDeviceNamingError(device)


def logical_volume_path(vg: str, lv: str) -> str:
    """Device path of an LVM logical volume."""
    return f"/dev/{vg}/{lv}"


def zvol_path(pool: str, dataset: str) -> str:
    """Device path of a ZFS volume."""
    return f"/dev/zvol/{pool}/{dataset}"


def mapper_path(name: str) -> str:
    """Device path of an opened device-mapper target such as LUKS."""
    return f"/dev/mapper/{name}"


def raid_path(name: str) -> str:
    """Device path of an mdadm array."""
    return f"/dev/md/{name}"
