"""
Layout node model.

Every node of a layout tree is a mapping discriminated by its "type" key.
The TypedDicts below describe the normalised form produced by
strata.core.schema; the per-kind behaviour lives in the registry.
"""
from typing import Dict, Iterator, List, Literal, NamedTuple, Optional, Tuple, TypedDict, Union, TYPE_CHECKING

from strata.utils.types import DeviceRef

if TYPE_CHECKING:
    from strata.core.members import MemberRegistry


# Top-level device groups, in the order devices are listed for resolution
GROUPS = ("disk", "mdadm", "zpool", "lvm_vg", "nodev")

# Kind of the root node of each group
GROUP_KINDS = {
    "disk": "disk",
    "mdadm": "mdadm",
    "zpool": "zpool",
    "lvm_vg": "lvm_vg",
    "nodev": "nodev",
}

# Kinds accepted in the content slot of a partition, logical volume or zvol
PARTITION_CONTENT = frozenset({
    "btrfs", "filesystem", "zfs", "mdraid", "luks", "lvm_pv", "swap",
})

# Kinds accepted in the content slot of a whole device (disk, RAID array, LUKS)
DEVICE_CONTENT = PARTITION_CONTENT | {"table"}


class Hooks(TypedDict):
    """User supplied shell snippets run around a node"""
    pre_create: str
    post_create: str
    pre_mount: str
    post_mount: str


class Disk(TypedDict):
    type: Literal["disk"]
    name: str
    device: str
    content: Optional["Node"]
    hooks: Hooks


class PartitionTable(TypedDict):
    type: Literal["table"]
    format: Literal["gpt", "msdos"]
    partitions: List["Partition"]
    hooks: Hooks


class Partition(TypedDict):
    type: Literal["partition"]
    name: Optional[str]
    part_type: Literal["primary", "logical", "extended"]
    fs_type: Optional[str]
    start: str
    end: str
    index: int
    flags: List[str]
    bootable: bool
    content: Optional["Node"]
    hooks: Hooks


class Filesystem(TypedDict):
    type: Literal["filesystem"]
    format: str
    mountpoint: str
    extra_args: List[str]
    mount_options: List[str]
    hooks: Hooks


class Btrfs(TypedDict):
    type: Literal["btrfs"]
    extra_args: List[str]
    mount_options: List[str]
    mountpoint: Optional[str]
    subvolumes: Dict[str, "BtrfsSubvolume"]
    hooks: Hooks


class BtrfsSubvolume(TypedDict):
    type: Literal["btrfs_subvol"]
    name: str
    extra_args: List[str]
    mount_options: List[str]
    mountpoint: Optional[str]
    hooks: Hooks


class Swap(TypedDict):
    type: Literal["swap"]
    random_encryption: bool
    hooks: Hooks


class LvmPhysicalVolume(TypedDict):
    type: Literal["lvm_pv"]
    vg: str
    hooks: Hooks


class LvmVolumeGroup(TypedDict):
    type: Literal["lvm_vg"]
    name: str
    lvs: Dict[str, "LvmLogicalVolume"]
    hooks: Hooks


class LvmLogicalVolume(TypedDict):
    type: Literal["lvm_lv"]
    name: str
    size: str
    lvm_type: Optional[str]
    extra_args: List[str]
    content: Optional["Node"]
    hooks: Hooks


class ZfsVolume(TypedDict):
    """A block device handed to a ZFS pool"""
    type: Literal["zfs"]
    pool: str
    hooks: Hooks


class ZfsPool(TypedDict):
    type: Literal["zpool"]
    name: str
    mode: str
    options: Dict[str, str]
    root_fs_options: Dict[str, str]
    mountpoint: Optional[str]
    mount_options: List[str]
    datasets: Dict[str, "ZfsDataset"]
    hooks: Hooks


class ZfsDataset(TypedDict):
    type: Literal["zfs_dataset"]
    name: str
    zfs_type: Literal["filesystem", "volume"]
    options: Dict[str, str]
    mount_options: List[str]
    mountpoint: Optional[str]
    size: Optional[str]
    content: Optional["Node"]
    hooks: Hooks


class RaidMember(TypedDict):
    type: Literal["mdraid"]
    name: str
    hooks: Hooks


class RaidArray(TypedDict):
    type: Literal["mdadm"]
    name: str
    level: int
    metadata: str
    content: Optional["Node"]
    hooks: Hooks


class Luks(TypedDict):
    type: Literal["luks"]
    name: str
    key_file: Optional[str]
    extra_args: List[str]
    content: Optional["Node"]
    hooks: Hooks


class NoDevice(TypedDict):
    """A mount that is not backed by a block device (tmpfs and friends)"""
    type: Literal["nodev"]
    fs_type: str
    device: str
    mountpoint: str
    mount_options: List[str]
    hooks: Hooks


Node = Union[
    Disk, PartitionTable, Partition, Filesystem, Btrfs, BtrfsSubvolume, Swap,
    LvmPhysicalVolume, LvmVolumeGroup, LvmLogicalVolume, ZfsVolume, ZfsPool,
    ZfsDataset, RaidMember, RaidArray, Luks, NoDevice,
]

# Normalised layout: group -> name -> root node
Layout = Dict[str, Dict[str, Node]]


class Context(NamedTuple):
    """
    Ambient information handed from a parent node to its children.

    Contexts are never modified; a parent derives a new one with
    ``ctx._replace(...)`` before recursing.
    """
    # Block device the node is placed on
    device: Optional[str] = None
    # Top-level device the node lives under, recorded in dependency facts
    parent: Optional[DeviceRef] = None
    # Format of the enclosing partition table
    table_format: Optional[str] = None
    # Enclosing volume group / pool names
    vg: Optional[str] = None
    pool: Optional[str] = None
    # Mountpoint of the enclosing btrfs filesystem
    parent_mountpoint: Optional[str] = None
    # Prefix under which the target system is mounted
    root_mountpoint: str = "/mnt"
    # Aggregate membership collected while building the creation script
    members: Optional["MemberRegistry"] = None


def iter_devices(layout: Layout) -> Iterator[Tuple[DeviceRef, Node]]:
    """Yield every top-level device with its reference, in declaration order."""
    for group in GROUPS:
        for name, node in layout.get(group, {}).items():
            yield (group, name), node
