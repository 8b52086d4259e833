"""
Host configuration of the target system.

This module projects a layout into host-configuration facts (filesystem
table, swap devices, boot-time unlock entries, kernel modules), groups them
for consumers, and provides common utilities for writing configuration files
into the target root.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from strata.core import registry
from strata.core.nodes import Context, Layout, iter_devices
from strata.utils.command import CommandRunner
from strata.utils.types import ConfigFact

logger = logging.getLogger('strata')


def project_config(layout: Layout) -> List[ConfigFact]:
    """
    Project a layout into host-configuration facts.

    The walk is independent of the dependency order: consumers resolve the
    ordering between entries themselves.

    Args:
        layout: Normalised layout

    Returns:
        Facts in declaration order
    """
    facts: List[ConfigFact] = []
    for ref, node in iter_devices(layout):
        facts.extend(registry.config(node, Context(parent=ref)))
    return facts


class HostConfig:
    """
    Host-configuration facts grouped by concern.

    Filesystems are keyed by mountpoint; a later fact for the same
    mountpoint replaces an earlier one.
    """
    def __init__(self):
        self.file_systems: Dict[str, Dict[str, Any]] = {}
        self.swap_devices: List[Dict[str, Any]] = []
        self.luks_devices: Dict[str, Dict[str, Any]] = {}
        self.kernel_modules: List[str] = []

    @classmethod
    def from_facts(cls, facts: List[ConfigFact]) -> "HostConfig":
        """
        Group a list of facts.

        Args:
            facts: Facts produced by project_config

        Returns:
            HostConfig instance
        """
        config = cls()
        for fact in facts:
            kind = fact["fact"]
            if kind == "filesystem":
                config.file_systems[fact["mountpoint"]] = {
                    "device": fact["device"],
                    "fsType": fact["fs_type"],
                    "options": list(fact["options"]),
                }
            elif kind == "swap":
                config.swap_devices.append({
                    "device": fact["device"],
                    "randomEncryption": fact["random_encryption"],
                })
            elif kind == "unlock":
                entry: Dict[str, Any] = {"device": fact["device"]}
                if fact["key_file"]:
                    entry["keyFile"] = fact["key_file"]
                config.luks_devices[fact["name"]] = entry
            elif kind == "kernel_module":
                if fact["module"] not in config.kernel_modules:
                    config.kernel_modules.append(fact["module"])
            else:
                raise ValueError(f"Unknown configuration fact: {kind}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form, suitable for JSON output."""
        return {
            "fileSystems": self.file_systems,
            "swapDevices": self.swap_devices,
            "luksDevices": self.luks_devices,
            "kernelModules": self.kernel_modules,
        }


def create_directory(path: Path, cmd_runner: CommandRunner, purpose: Optional[str] = None) -> None:
    """
    Make sure a directory exists, creating its parents as needed.

    In simulation mode the directory is only logged.

    Args:
        path: Directory to create
        cmd_runner: CommandRunner deciding whether anything is written
        purpose: What the directory holds, for the log line
    """
    label = f"{purpose} directory" if purpose else "directory"
    if cmd_runner.simulating:
        logger.info(f"Would create {label} {path}")
        return
    path.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Ensured {label} {path}")


def write_config_file(path: Path, content: str, cmd_runner: CommandRunner) -> None:
    """
    Write a configuration file or log that it would be written in simulation mode.

    Args:
        path: File to write
        content: File content
        cmd_runner: CommandRunner instance for executing commands
    """
    create_directory(path.parent, cmd_runner)
    if cmd_runner.simulating:
        logger.info(f"Would write {path}:")
        for line in content.splitlines():
            logger.info(f"  {line}")
    else:
        path.write_text(content)
        logger.info(f"Wrote {path}")
