"""
Shared pytest fixtures.

Each fixture returns a raw layout mapping, as it would be read from a YAML
layout file, for the storage stacks exercised across the test modules.
"""
from typing import Any, Dict

import pytest


# -----------------------------------------------------------------------------
# Single disk layouts
# -----------------------------------------------------------------------------
@pytest.fixture
def gpt_layout() -> Dict[str, Any]:
    """A virtio disk with an ESP and an ext4 root partition."""
    return {
        "disk": {
            "main": {
                "type": "disk",
                "device": "/dev/vda",
                "content": {
                    "type": "table",
                    "format": "gpt",
                    "partitions": [
                        {
                            "name": "ESP",
                            "start": "1M",
                            "end": "512M",
                            "bootable": True,
                            "content": {
                                "type": "filesystem",
                                "format": "vfat",
                                "mountpoint": "/boot",
                            },
                        },
                        {
                            "name": "root",
                            "start": "512M",
                            "end": "100%",
                            "content": {
                                "type": "filesystem",
                                "format": "ext4",
                                "mountpoint": "/",
                            },
                        },
                    ],
                },
            },
        },
    }


@pytest.fixture
def btrfs_layout() -> Dict[str, Any]:
    """An NVMe disk with btrfs subvolumes, a swap partition and a tmpfs."""
    return {
        "disk": {
            "nvme": {
                "type": "disk",
                "device": "/dev/nvme0n1",
                "content": {
                    "type": "table",
                    "format": "gpt",
                    "partitions": [
                        {
                            "name": "ESP",
                            "end": "512M",
                            "content": {
                                "type": "filesystem",
                                "format": "vfat",
                                "mountpoint": "/boot",
                            },
                        },
                        {
                            "name": "system",
                            "start": "512M",
                            "end": "-8G",
                            "content": {
                                "type": "btrfs",
                                "extraArgs": ["-f"],
                                "subvolumes": {
                                    "root": {"mountpoint": "/"},
                                    "home": {"mountpoint": "/home", "mountOptions": ["compress=zstd"]},
                                    "var": {"mountpoint": "/var"},
                                    "log": {"mountpoint": "/var/log"},
                                },
                            },
                        },
                        {
                            "name": "swap",
                            "start": "-8G",
                            "content": {"type": "swap"},
                        },
                    ],
                },
            },
        },
        "nodev": {
            "/tmp": {
                "fsType": "tmpfs",
                "mountOptions": ["size=2G"],
            },
        },
    }


# -----------------------------------------------------------------------------
# Multi device layouts
# -----------------------------------------------------------------------------
@pytest.fixture
def lvm_layout() -> Dict[str, Any]:
    """A volume group spanning two whole disks."""
    return {
        "disk": {
            "a": {"device": "/dev/sda", "content": {"type": "lvm_pv", "vg": "pool"}},
            "b": {"device": "/dev/sdb", "content": {"type": "lvm_pv", "vg": "pool"}},
        },
        "lvm_vg": {
            "pool": {
                "type": "lvm_vg",
                "lvs": {
                    "home": {
                        "size": "10G",
                        "content": {"type": "filesystem", "format": "ext4", "mountpoint": "/home"},
                    },
                    "root": {
                        "size": "100%FREE",
                        "lvm_type": "raid1",
                        "content": {"type": "filesystem", "format": "xfs", "mountpoint": "/"},
                    },
                },
            },
        },
    }


@pytest.fixture
def luks_lvm_layout() -> Dict[str, Any]:
    """LVM on LUKS on the second partition of an NVMe disk."""
    return {
        "disk": {
            "main": {
                "type": "disk",
                "device": "/dev/nvme0n1",
                "content": {
                    "type": "table",
                    "format": "gpt",
                    "partitions": [
                        {
                            "name": "ESP",
                            "end": "512M",
                            "content": {"type": "filesystem", "format": "vfat", "mountpoint": "/boot"},
                        },
                        {
                            "name": "luks",
                            "start": "512M",
                            "content": {
                                "type": "luks",
                                "name": "crypted",
                                "keyFile": "/tmp/secret.key",
                                "extraArgs": "--pbkdf argon2id",
                                "content": {"type": "lvm_pv", "vg": "pool"},
                            },
                        },
                    ],
                },
            },
        },
        "lvm_vg": {
            "pool": {
                "type": "lvm_vg",
                "lvs": {
                    "root": {
                        "size": "100%FREE",
                        "content": {"type": "filesystem", "format": "ext4", "mountpoint": "/"},
                    },
                },
            },
        },
    }


@pytest.fixture
def raid_layout() -> Dict[str, Any]:
    """A RAID1 array over two disks, holding an ext4 filesystem."""
    return {
        "disk": {
            "a": {"device": "/dev/sda", "content": {"type": "mdraid", "name": "data"}},
            "b": {"device": "/dev/sdb", "content": {"type": "mdraid", "name": "data"}},
        },
        "mdadm": {
            "data": {
                "type": "mdadm",
                "level": 1,
                "metadata": "1.2",
                "content": {"type": "filesystem", "format": "ext4", "mountpoint": "/srv"},
            },
        },
    }


@pytest.fixture
def zfs_layout() -> Dict[str, Any]:
    """A mirrored pool with a mounted dataset and a swap volume."""
    return {
        "disk": {
            "x": {"device": "/dev/sda", "content": {"type": "zfs", "pool": "tank"}},
            "y": {"device": "/dev/sdb", "content": {"type": "zfs", "pool": "tank"}},
        },
        "zpool": {
            "tank": {
                "type": "zpool",
                "mode": "mirror",
                "rootFsOptions": {"compression": "zstd"},
                "mountpoint": "/",
                "datasets": {
                    "home": {"zfs_type": "filesystem", "mountpoint": "/home"},
                    "hidden": {"zfs_type": "filesystem", "options": {"mountpoint": "none"}},
                    "swap": {"zfs_type": "volume", "size": "4G", "content": {"type": "swap"}},
                },
            },
        },
    }
