"""
Validation utilities.

This module provides functions for validating prerequisites before generated
scripts are applied to the running system.
"""
import os
import shutil
import logging
from typing import Dict, Iterable, List

from strata.core.exceptions import PrerequisiteError
from strata.utils.command import CommandRunner

logger = logging.getLogger('strata')

# Executables the scripts call, by the package that provides them
PACKAGE_BINARIES: Dict[str, List[str]] = {
    "bcachefs-tools": ["bcachefs"],
    "btrfs-progs": ["mkfs.btrfs", "btrfs"],
    "coreutils": ["mktemp"],
    "cryptsetup": ["cryptsetup"],
    "dosfstools": ["mkfs.vfat"],
    "e2fsprogs": ["mkfs.ext4"],
    "gnugrep": ["grep"],
    "lvm2": ["pvcreate", "vgcreate", "lvcreate", "vgchange"],
    "mdadm": ["mdadm"],
    "parted": ["parted"],
    "systemd": ["udevadm"],
    "util-linux": ["mount", "findmnt", "mkswap", "swapon"],
    "xfsprogs": ["mkfs.xfs"],
    "zfs": ["zpool", "zfs"],
}


def missing_binaries(tools: Iterable[str]) -> List[str]:
    """
    List the executables of the given packages that are not on PATH.

    Packages without a known executable are skipped with a warning.

    Args:
        tools: Package references, as compiled from a layout

    Returns:
        Missing executables, in package order
    """
    missing = []
    for tool in tools:
        binaries = PACKAGE_BINARIES.get(tool)
        if binaries is None:
            logger.warning(f"No known executable for package '{tool}', not checking it")
            continue
        for binary in binaries:
            if not shutil.which(binary):
                missing.append(binary)
    return missing


def check_prerequisites(tools: Iterable[str], cmd_runner: CommandRunner) -> None:
    """
    Check for required tools and permissions.

    Args:
        tools: Package references, as compiled from a layout
        cmd_runner: CommandRunner instance for executing commands

    Raises:
        PrerequisiteError: If prerequisites are not met
    """
    tools = list(tools)

    # In simulation mode, just log what would be checked
    if cmd_runner.simulating:
        logger.info("Checking for required tools (simulated)")
        for tool in tools:
            logger.info(f"Package '{tool}' would be checked")
        return

    if os.geteuid() != 0:
        raise PrerequisiteError("Applying a layout must be done as root")

    missing = missing_binaries(tools)
    if missing:
        raise PrerequisiteError(
            f"Missing required tools: {', '.join(missing)}\n"
            "Please install the necessary packages for your distribution and try again"
        )
