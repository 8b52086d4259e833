"""
Disk partitioning module.

This module builds the parted commands creating a partition table and its
partitions, and hands each partition's derived device path to its content.
"""
import logging
from typing import List, Set

from strata.core import registry
from strata.core.device import get_partition_device_name
from strata.core.mount import empty_fragment, merge_fragments
from strata.core.metadata import merge_all
from strata.core.nodes import Context, Partition, PartitionTable
from strata.utils.format import command
from strata.utils.types import ConfigFact, Metadata, MountFragment, Script, ToolRef

logger = logging.getLogger('strata')

# Make the kernel and udev pick up new block devices before they are used
SETTLE_DEVICES = "udevadm trigger --subsystem-match=block; udevadm settle\n"


def table_metadata(table: PartitionTable, ctx: Context) -> Metadata:
    return merge_all(registry.metadata(part, ctx) for part in table["partitions"])


def table_create(table: PartitionTable, ctx: Context) -> Script:
    """
    Build the commands creating a partition table and its partitions.

    Args:
        table: Partition table node
        ctx: Context holding the device to partition

    Returns:
        Creation commands
    """
    logger.debug(f"Creating {table['format']} partition table on {ctx.device}")
    part_ctx = ctx._replace(table_format=table["format"])
    script = command("parted", "-s", ctx.device, "--", "mklabel", table["format"]) + "\n"
    for part in table["partitions"]:
        script += registry.create(part, part_ctx)
    return script


def table_mount(table: PartitionTable, ctx: Context) -> MountFragment:
    return merge_fragments(registry.mount(part, ctx) for part in table["partitions"])


def table_config(table: PartitionTable, ctx: Context) -> List[ConfigFact]:
    facts: List[ConfigFact] = []
    for part in table["partitions"]:
        facts.extend(registry.config(part, ctx))
    return facts


def table_tools(table: PartitionTable, ctx: Context) -> Set[ToolRef]:
    tools = {"parted", "systemd"}
    for part in table["partitions"]:
        tools |= registry.tools(part, ctx)
    return tools


def _partition_context(part: Partition, ctx: Context) -> Context:
    return ctx._replace(device=get_partition_device_name(ctx.device, part["index"]))


def partition_metadata(part: Partition, ctx: Context) -> Metadata:
    if part["content"] is None:
        return {}
    return registry.metadata(part["content"], ctx)


def partition_create(part: Partition, ctx: Context) -> Script:
    """
    Build the commands creating a single partition.

    On gpt tables the partition is named after its name (or its part type
    when unnamed); on msdos tables the part type is passed instead.

    Args:
        part: Partition node
        ctx: Context holding the partitioned device and table format

    Returns:
        Creation commands for the partition and its content
    """
    device = ctx.device
    index = part["index"]

    if ctx.table_format == "msdos":
        label = part["part_type"]
    else:
        label = part["name"] or part["part_type"]

    script = command(
        "parted", "-s", device, "--", "mkpart", label, part["fs_type"], part["start"], part["end"]
    ) + "\n"
    # Ensure /dev/disk/by-path/..-partN exists before continuing
    script += SETTLE_DEVICES

    if part["bootable"]:
        script += command("parted", "-s", device, "--", "set", index, "boot", "on") + "\n"
    for flag in part["flags"]:
        script += command("parted", "-s", device, "--", "set", index, flag, "on") + "\n"

    script += SETTLE_DEVICES

    if part["content"] is not None:
        script += registry.create(part["content"], _partition_context(part, ctx))
    return script


def partition_mount(part: Partition, ctx: Context) -> MountFragment:
    if part["content"] is None:
        return empty_fragment()
    return registry.mount(part["content"], _partition_context(part, ctx))


def partition_config(part: Partition, ctx: Context) -> List[ConfigFact]:
    if part["content"] is None:
        return []
    return registry.config(part["content"], _partition_context(part, ctx))


def partition_tools(part: Partition, ctx: Context) -> Set[ToolRef]:
    if part["content"] is None:
        return set()
    return registry.tools(part["content"], ctx)


registry.register("table", registry.KindOps(
    metadata=table_metadata,
    create=table_create,
    mount=table_mount,
    config=table_config,
    tools=table_tools,
))

registry.register("partition", registry.KindOps(
    metadata=partition_metadata,
    create=partition_create,
    mount=partition_mount,
    config=partition_config,
    tools=partition_tools,
))
