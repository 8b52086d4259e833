"""
crypttab generation.

Renders the unlock facts of a layout as an /etc/crypttab file.
"""
from pathlib import Path

from strata.config import HostConfig, write_config_file
from strata.utils.command import CommandRunner

HEADER = "# /etc/crypttab: encrypted block devices, generated by strata\n"


def render_crypttab(config: HostConfig) -> str:
    """
    Render a crypttab file.

    Args:
        config: Grouped host configuration

    Returns:
        crypttab content
    """
    lines = [HEADER]
    for name, entry in config.luks_devices.items():
        key_file = entry.get("keyFile") or "none"
        lines.append(f"{name}\t{entry['device']}\t{key_file}\tluks\n")
    return "".join(lines)


def generate_crypttab(config: HostConfig, target: Path, cmd_runner: CommandRunner) -> None:
    """
    Write /etc/crypttab into the target root, if any device is encrypted.

    Args:
        config: Grouped host configuration
        target: Target root directory
        cmd_runner: CommandRunner instance for executing commands
    """
    if not config.luks_devices:
        return
    write_config_file(target / "etc" / "crypttab", render_crypttab(config), cmd_runner)
