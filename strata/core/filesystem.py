"""
Filesystem creation module.

This module handles plain filesystems, btrfs filesystems with their
subvolumes, and swap devices.
"""
import logging
from typing import Dict, List, Optional, Set

from strata.core import registry
from strata.core.metadata import merge_all
from strata.core.mount import enable_swap, merge_fragments, mount_filesystem
from strata.core.nodes import Btrfs, BtrfsSubvolume, Context, Filesystem, Swap
from strata.utils.format import command, quote
from strata.utils.types import (
    ConfigFact, FilesystemFact, Metadata, MountFragment, Script, SwapFact, ToolRef
)

logger = logging.getLogger('strata')

# Package providing mkfs.<format> beyond util-linux
FORMAT_PACKAGES: Dict[str, str] = {
    "xfs": "xfsprogs",
    "btrfs": "btrfs-progs",
    "vfat": "dosfstools",
    "ext2": "e2fsprogs",
    "ext3": "e2fsprogs",
    "ext4": "e2fsprogs",
    "bcachefs": "bcachefs-tools",
}


def filesystem_create(fs: Filesystem, ctx: Context) -> Script:
    """
    Build the command creating a filesystem on a device.

    Args:
        fs: Filesystem node
        ctx: Context holding the target device

    Returns:
        mkfs command
    """
    logger.debug(f"Creating {fs['format']} filesystem on {ctx.device}")
    return command(f"mkfs.{fs['format']}", fs["extra_args"], ctx.device) + "\n"


def filesystem_mount(fs: Filesystem, ctx: Context) -> MountFragment:
    return MountFragment(
        activation="",
        filesystems={
            fs["mountpoint"]: mount_filesystem(
                ctx.device, ctx.root_mountpoint, fs["mountpoint"],
                fs["mount_options"], fs_type=fs["format"],
            )
        },
    )


def filesystem_config(fs: Filesystem, ctx: Context) -> List[ConfigFact]:
    return [FilesystemFact(
        fact="filesystem",
        mountpoint=fs["mountpoint"],
        device=ctx.device,
        fs_type=fs["format"],
        options=list(fs["mount_options"]),
    )]


def filesystem_tools(fs: Filesystem, ctx: Context) -> Set[ToolRef]:
    tools = {"util-linux"}
    package = FORMAT_PACKAGES.get(fs["format"])
    if package:
        tools.add(package)
    return tools


def _subvolume_context(btrfs: Btrfs, ctx: Context) -> Context:
    return ctx._replace(parent_mountpoint=btrfs["mountpoint"])


def btrfs_metadata(btrfs: Btrfs, ctx: Context) -> Metadata:
    return merge_all(registry.metadata(sub, ctx) for sub in btrfs["subvolumes"].values())


def btrfs_create(btrfs: Btrfs, ctx: Context) -> Script:
    """
    Build the commands creating a btrfs filesystem and its subvolumes.

    Args:
        btrfs: Btrfs node
        ctx: Context holding the target device

    Returns:
        Creation commands
    """
    script = command("mkfs.btrfs", ctx.device, btrfs["extra_args"]) + "\n"
    sub_ctx = _subvolume_context(btrfs, ctx)
    for sub in btrfs["subvolumes"].values():
        script += registry.create(sub, sub_ctx)
    return script


def btrfs_mount(btrfs: Btrfs, ctx: Context) -> MountFragment:
    sub_ctx = _subvolume_context(btrfs, ctx)
    fragment = merge_fragments(registry.mount(sub, sub_ctx) for sub in btrfs["subvolumes"].values())
    if btrfs["mountpoint"] is not None:
        fragment["filesystems"][btrfs["mountpoint"]] = mount_filesystem(
            ctx.device, ctx.root_mountpoint, btrfs["mountpoint"], btrfs["mount_options"],
        )
    return fragment


def btrfs_config(btrfs: Btrfs, ctx: Context) -> List[ConfigFact]:
    sub_ctx = _subvolume_context(btrfs, ctx)
    facts: List[ConfigFact] = []
    for sub in btrfs["subvolumes"].values():
        facts.extend(registry.config(sub, sub_ctx))
    if btrfs["mountpoint"] is not None:
        facts.append(FilesystemFact(
            fact="filesystem",
            mountpoint=btrfs["mountpoint"],
            device=ctx.device,
            fs_type="btrfs",
            options=list(btrfs["mount_options"]),
        ))
    return facts


def btrfs_tools(btrfs: Btrfs, ctx: Context) -> Set[ToolRef]:
    tools = {"btrfs-progs"}
    for sub in btrfs["subvolumes"].values():
        tools |= registry.tools(sub, ctx)
    return tools


def subvolume_mountpoint(sub: BtrfsSubvolume, ctx: Context) -> Optional[str]:
    """
    Resolve where a subvolume is mounted.

    A subvolume without its own mountpoint is mounted at /<name> only
    when the btrfs filesystem itself is not mounted anywhere.

    Args:
        sub: Subvolume node
        ctx: Context holding the mountpoint of the parent filesystem

    Returns:
        Mountpoint, or None if the subvolume is not mounted
    """
    if sub["mountpoint"] is not None:
        return sub["mountpoint"]
    if ctx.parent_mountpoint is None:
        return "/" + sub["name"].lstrip("/")
    return None


def _subvolume_options(sub: BtrfsSubvolume) -> List[str]:
    return list(sub["mount_options"]) + [f"subvol={sub['name']}"]


def subvolume_create(sub: BtrfsSubvolume, ctx: Context) -> Script:
    """
    Build the commands creating a btrfs subvolume.

    The filesystem top level is mounted on a temporary directory inside the
    creation script's scratch directory while the subvolume is created.

    Args:
        sub: Subvolume node
        ctx: Context holding the btrfs device

    Returns:
        Creation commands, run in a subshell
    """
    create_cmd = command("btrfs", "subvolume", "create", sub["extra_args"])
    target = '"$MNTPOINT"/' + quote(sub["name"].lstrip("/"))
    return (
        "(\n"
        '  MNTPOINT=$(mktemp -d "$strata_devices_dir/btrfs.XXXXXX")\n'
        f'  {command("mount", ctx.device)} "$MNTPOINT" -o subvol=/\n'
        "  trap 'umount \"$MNTPOINT\"; rm -rf \"$MNTPOINT\"' EXIT\n"
        f"  {create_cmd} {target}\n"
        ")\n"
    )


def subvolume_mount(sub: BtrfsSubvolume, ctx: Context) -> MountFragment:
    mountpoint = subvolume_mountpoint(sub, ctx)
    if mountpoint is None:
        return MountFragment(activation="", filesystems={})
    return MountFragment(
        activation="",
        filesystems={
            mountpoint: mount_filesystem(
                ctx.device, ctx.root_mountpoint, mountpoint, _subvolume_options(sub),
            )
        },
    )


def subvolume_config(sub: BtrfsSubvolume, ctx: Context) -> List[ConfigFact]:
    mountpoint = subvolume_mountpoint(sub, ctx)
    if mountpoint is None:
        return []
    return [FilesystemFact(
        fact="filesystem",
        mountpoint=mountpoint,
        device=ctx.device,
        fs_type="btrfs",
        options=_subvolume_options(sub),
    )]


def swap_create(swap: Swap, ctx: Context) -> Script:
    return command("mkswap", ctx.device) + "\n"


def swap_mount(swap: Swap, ctx: Context) -> MountFragment:
    # Keyed by device path: swap has no mountpoint
    return MountFragment(activation="", filesystems={ctx.device: enable_swap(ctx.device)})


def swap_config(swap: Swap, ctx: Context) -> List[ConfigFact]:
    return [SwapFact(fact="swap", device=ctx.device, random_encryption=swap["random_encryption"])]


registry.register("filesystem", registry.KindOps(
    metadata=lambda fs, ctx: {},
    create=filesystem_create,
    mount=filesystem_mount,
    config=filesystem_config,
    tools=filesystem_tools,
))

registry.register("btrfs", registry.KindOps(
    metadata=btrfs_metadata,
    create=btrfs_create,
    mount=btrfs_mount,
    config=btrfs_config,
    tools=btrfs_tools,
))

registry.register("btrfs_subvol", registry.KindOps(
    metadata=lambda sub, ctx: {},
    create=subvolume_create,
    mount=subvolume_mount,
    config=subvolume_config,
    tools=lambda sub, ctx: {"coreutils"},
))

registry.register("swap", registry.KindOps(
    metadata=lambda swap, ctx: {},
    create=swap_create,
    mount=swap_mount,
    config=swap_config,
    tools=lambda swap, ctx: {"gnugrep", "util-linux"},
))
