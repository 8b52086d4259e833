"""
Whole-device nodes.

This module implements the disk node, which hands its device path to its
content, and the nodev node, which mounts a filesystem that has no backing
block device (tmpfs, proc, ...).
"""
import logging
from typing import List, Set

from strata.core import registry
from strata.core.mount import empty_fragment, mount_filesystem
from strata.core.nodes import Context, Disk, NoDevice
from strata.utils.types import ConfigFact, FilesystemFact, Metadata, MountFragment, Script, ToolRef

logger = logging.getLogger('strata')


def _disk_context(disk: Disk, ctx: Context) -> Context:
    return ctx._replace(device=disk["device"])


def disk_metadata(disk: Disk, ctx: Context) -> Metadata:
    if disk["content"] is None:
        return {}
    return registry.metadata(disk["content"], _disk_context(disk, ctx))


def disk_create(disk: Disk, ctx: Context) -> Script:
    """
    Build the creation commands for a disk.

    The disk itself already exists; only its content is created on it.

    Args:
        disk: Disk node
        ctx: Context of the disk

    Returns:
        Creation commands of the disk content
    """
    if disk["content"] is None:
        logger.debug(f"Disk {disk['name']} ({disk['device']}) has no content")
        return ""
    return registry.create(disk["content"], _disk_context(disk, ctx))


def disk_mount(disk: Disk, ctx: Context) -> MountFragment:
    if disk["content"] is None:
        return empty_fragment()
    return registry.mount(disk["content"], _disk_context(disk, ctx))


def disk_config(disk: Disk, ctx: Context) -> List[ConfigFact]:
    if disk["content"] is None:
        return []
    return registry.config(disk["content"], _disk_context(disk, ctx))


def disk_tools(disk: Disk, ctx: Context) -> Set[ToolRef]:
    if disk["content"] is None:
        return set()
    return registry.tools(disk["content"], _disk_context(disk, ctx))


def nodev_create(nodev: NoDevice, ctx: Context) -> Script:
    # Nothing to create for a filesystem without a block device
    return ""


def nodev_mount(nodev: NoDevice, ctx: Context) -> MountFragment:
    """
    Mount a filesystem without a block device.

    Args:
        nodev: NoDevice node
        ctx: Context holding the target root

    Returns:
        Fragment mounting the filesystem at its mountpoint
    """
    return MountFragment(
        activation="",
        filesystems={
            nodev["mountpoint"]: mount_filesystem(
                nodev["device"], ctx.root_mountpoint, nodev["mountpoint"],
                nodev["mount_options"], fs_type=nodev["fs_type"],
            )
        },
    )


def nodev_config(nodev: NoDevice, ctx: Context) -> List[ConfigFact]:
    return [FilesystemFact(
        fact="filesystem",
        mountpoint=nodev["mountpoint"],
        device=nodev["device"],
        fs_type=nodev["fs_type"],
        options=list(nodev["mount_options"]),
    )]


registry.register("disk", registry.KindOps(
    metadata=disk_metadata,
    create=disk_create,
    mount=disk_mount,
    config=disk_config,
    tools=disk_tools,
))

registry.register("nodev", registry.KindOps(
    metadata=lambda nodev, ctx: {},
    create=nodev_create,
    mount=nodev_mount,
    config=nodev_config,
    tools=lambda nodev, ctx: set(),
))
