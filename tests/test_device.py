"""
Unit tests for device path derivation.
"""
import pytest

from strata.core.device import (
    get_partition_device_name, logical_volume_path, mapper_path, raid_path, zvol_path
)
from strata.core.exceptions import UnsupportedDeviceNamingError


# -----------------------------------------------------------------------------
# Partition paths
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("device, index, expected", [
    ("/dev/sda", 1, "/dev/sda1"),
    ("/dev/vdb", 3, "/dev/vdb3"),
    ("/dev/disk/by-id/ata-X", 2, "/dev/disk/by-id/ata-X-part2"),
    ("/dev/nvme0n1", 3, "/dev/nvme0n1p3"),
    ("/dev/md/root", 1, "/dev/md/rootp1"),
    ("/dev/mmcblk0", 2, "/dev/mmcblk0p2"),
])
def test_partition_device_name(device, index, expected):
    """Each supported naming scheme derives its partition paths."""
    assert get_partition_device_name(device, index) == expected


def test_unsupported_device_naming():
    """Unknown naming schemes are rejected with the offending path."""
    with pytest.raises(UnsupportedDeviceNamingError) as excinfo:
        get_partition_device_name("/dev/loop0", 1)

    assert excinfo.value.device == "/dev/loop0"
    assert "/dev/loop0" in str(excinfo.value)


# -----------------------------------------------------------------------------
# Fixed templates
# -----------------------------------------------------------------------------

def test_fixed_path_templates():
    assert logical_volume_path("pool", "root") == "/dev/pool/root"
    assert zvol_path("tank", "swap") == "/dev/zvol/tank/swap"
    assert mapper_path("crypted") == "/dev/mapper/crypted"
    assert raid_path("data") == "/dev/md/data"
