"""
fstab generation.

Renders the filesystem and swap facts of a layout as an /etc/fstab file.
"""
import logging
from pathlib import Path

from strata.config import HostConfig, write_config_file
from strata.utils.command import CommandRunner

logger = logging.getLogger('strata')

HEADER = "# /etc/fstab: static file system information, generated by strata\n"


def _pass_number(mountpoint: str, fs_type: str) -> int:
    # fsck order: root first, then the rest; zfs and swap are never checked
    if fs_type in ("zfs", "swap", "tmpfs") or fs_type.startswith("nfs"):
        return 0
    return 1 if mountpoint == "/" else 2


def render_fstab(config: HostConfig) -> str:
    """
    Render an fstab file.

    Entries are sorted by mountpoint so parents come before nested mounts.

    Args:
        config: Grouped host configuration

    Returns:
        fstab content
    """
    lines = [HEADER]
    for mountpoint in sorted(config.file_systems):
        entry = config.file_systems[mountpoint]
        options = ",".join(entry["options"]) or "defaults"
        lines.append(
            f"{entry['device']}\t{mountpoint}\t{entry['fsType']}\t{options}\t0\t"
            f"{_pass_number(mountpoint, entry['fsType'])}\n"
        )
    for swap in config.swap_devices:
        options = "defaults"
        if swap["randomEncryption"]:
            logger.warning(
                f"Swap device {swap['device']} uses random encryption, "
                "which needs a crypttab entry managed by the host"
            )
        lines.append(f"{swap['device']}\tnone\tswap\t{options}\t0\t0\n")
    return "".join(lines)


def generate_fstab(config: HostConfig, target: Path, cmd_runner: CommandRunner) -> None:
    """
    Write /etc/fstab into the target root.

    Args:
        config: Grouped host configuration
        target: Target root directory
        cmd_runner: CommandRunner instance for executing commands
    """
    write_config_file(target / "etc" / "fstab", render_fstab(config), cmd_runner)
