"""
Mount fragment builders.

This module builds the idempotent shell fragments used by the mount script:
filesystem mounts guarded by findmnt, swap activation guarded by swapon, and
the helpers to combine the fragments of several nodes.
"""
import logging
from typing import Iterable, List, Optional

from strata.utils.format import command, option_flags, quote
from strata.utils.types import MountFragment, Script

logger = logging.getLogger('strata')


def empty_fragment() -> MountFragment:
    """Mount fragment of a node that neither activates nor mounts anything."""
    return MountFragment(activation="", filesystems={})


def merge_fragments(fragments: Iterable[MountFragment]) -> MountFragment:
    """
    Combine mount fragments in order.

    Activation commands are concatenated. Filesystem mounts are keyed by
    path, so a later fragment mounting the same path replaces the earlier one.

    Args:
        fragments: Fragments in tree traversal order

    Returns:
        The combined fragment
    """
    activation: List[str] = []
    filesystems = {}
    for fragment in fragments:
        if fragment["activation"]:
            activation.append(fragment["activation"])
        for path, script in fragment["filesystems"].items():
            if path in filesystems:
                logger.warning(f"Mount path {path} is declared more than once, keeping the last one")
            filesystems[path] = script
    return MountFragment(activation="".join(activation), filesystems=filesystems)


def target_path(root_mountpoint: str, mountpoint: str) -> str:
    """
    Path at which a mountpoint of the target system is mounted.

    Args:
        root_mountpoint: Directory the target root is mounted on
        mountpoint: Absolute mountpoint inside the target system

    Returns:
        Mountpoint prefixed by the target root
    """
    return f"{root_mountpoint.rstrip('/')}{mountpoint}"


def mount_filesystem(
    source: str,
    root_mountpoint: str,
    mountpoint: str,
    options: List[str],
    fs_type: Optional[str] = None,
) -> Script:
    """
    Build the command mounting a filesystem unless it is already mounted.

    The mount point directory is created by mount itself (X-mount.mkdir).

    Args:
        source: Device path or dataset to mount
        root_mountpoint: Directory the target root is mounted on
        mountpoint: Absolute mountpoint inside the target system
        options: Mount options
        fs_type: Filesystem type to pass with -t, if any

    Returns:
        Guarded mount command
    """
    target = target_path(root_mountpoint, mountpoint)
    mount_cmd = command(
        "mount", source, target,
        ["-t", fs_type] if fs_type else None,
        option_flags("-o", options),
        ["-o", "X-mount.mkdir"],
    )
    return (
        f"if ! findmnt {quote(source)} {quote(target)} >/dev/null 2>&1; then\n"
        f"  {mount_cmd}\n"
        f"fi\n"
    )


def enable_swap(device: str) -> Script:
    """
    Build the command enabling a swap device unless it is already active.

    Args:
        device: Swap device path

    Returns:
        Guarded swapon command
    """
    return (
        f"if ! swapon --show | grep -q {quote('^' + device + ' ')}; then\n"
        f"  {command('swapon', device)}\n"
        f"fi\n"
    )
