"""
Script assembly.

This module walks a normalised layout in dependency order and assembles the
creation script, the mount script, the host-configuration facts and the list
of required tools. ``compile_layout`` runs every step before returning, so a
layout either compiles completely or raises.
"""
import logging
from typing import Any, List, Optional, Set, TypedDict

from strata.config import project_config
from strata.core import registry
from strata.core.dependency import sort_devices
from strata.core.members import MemberRegistry
from strata.core.metadata import dependencies_of, merge_all
from strata.core.mount import merge_fragments
from strata.core.nodes import Context, Layout, Node, iter_devices
from strata.core.schema import parse_layout
from strata.utils.types import ConfigFact, DeviceRef, Metadata, Script, ToolRef

logger = logging.getLogger('strata')

DEFAULT_ROOT_MOUNTPOINT = "/mnt"

CREATE_PREAMBLE = """\
#!/bin/sh
set -efu

strata_devices_dir=$(mktemp -d)
trap 'rm -rf "$strata_devices_dir"' EXIT

"""

MOUNT_PREAMBLE = """\
#!/bin/sh
set -efu

"""


class CompiledLayout(TypedDict):
    """Every artifact compiled from a layout"""
    order: List[DeviceRef]
    create_script: Script
    mount_script: Script
    config: List[ConfigFact]
    tools: List[ToolRef]
    metadata: Metadata


def _context(ref: DeviceRef, root_mountpoint: str, members: Optional[MemberRegistry] = None) -> Context:
    return Context(parent=ref, root_mountpoint=root_mountpoint, members=members)


def collect_metadata(layout: Layout) -> Metadata:
    """
    Gather the metadata of every top-level device in declaration order.

    Args:
        layout: Normalised layout

    Returns:
        Merged metadata
    """
    return merge_all(
        registry.metadata(node, _context(ref, DEFAULT_ROOT_MOUNTPOINT))
        for ref, node in iter_devices(layout)
    )


def resolve_order(layout: Layout, metadata: Optional[Metadata] = None) -> List[DeviceRef]:
    """
    Order the top-level devices so that aggregates follow their members.

    Args:
        layout: Normalised layout
        metadata: Previously collected metadata, collected if omitted

    Returns:
        Ordered device references

    Raises:
        DependencyCycleError: If devices depend on each other in a loop
    """
    if metadata is None:
        metadata = collect_metadata(layout)
    return sort_devices(dependencies_of(metadata), layout)


def _node(layout: Layout, ref: DeviceRef) -> Node:
    group, name = ref
    return layout[group][name]


def create_script(
    layout: Layout,
    root_mountpoint: str = DEFAULT_ROOT_MOUNTPOINT,
    order: Optional[List[DeviceRef]] = None,
) -> Script:
    """
    Assemble the script creating every device of a layout.

    Devices are created in dependency order. Member nodes record their
    device path in a fresh MemberRegistry, which their aggregate reads when
    its own creation step is built.

    Args:
        layout: Normalised layout
        root_mountpoint: Directory the target root is mounted on
        order: Resolved device order, resolved if omitted

    Returns:
        POSIX shell script
    """
    if order is None:
        order = resolve_order(layout)
    members = MemberRegistry()
    script = CREATE_PREAMBLE
    for ref in order:
        logger.debug(f"Assembling creation commands for {ref[0]}.{ref[1]}")
        script += registry.create(_node(layout, ref), _context(ref, root_mountpoint, members))
    return script


def mount_script(
    layout: Layout,
    root_mountpoint: str = DEFAULT_ROOT_MOUNTPOINT,
    order: Optional[List[DeviceRef]] = None,
) -> Script:
    """
    Assemble the script activating devices and mounting filesystems.

    Devices are activated in dependency order. Filesystems are mounted in
    lexicographic order of their mountpoint, so a directory is always
    mounted before anything nested under it.

    Args:
        layout: Normalised layout
        root_mountpoint: Directory the target root is mounted on
        order: Resolved device order, resolved if omitted

    Returns:
        POSIX shell script
    """
    if order is None:
        order = resolve_order(layout)
    fragment = merge_fragments(
        registry.mount(_node(layout, ref), _context(ref, root_mountpoint))
        for ref in order
    )
    script = MOUNT_PREAMBLE
    script += "# activate devices\n"
    script += fragment["activation"]
    script += "\n# mount filesystems\n"
    for path in sorted(fragment["filesystems"]):
        script += fragment["filesystems"][path]
    return script


def required_tools(layout: Layout) -> List[ToolRef]:
    """
    List the packages providing every utility the scripts call.

    Args:
        layout: Normalised layout

    Returns:
        Sorted package references
    """
    tools: Set[ToolRef] = set()
    for ref, node in iter_devices(layout):
        tools |= registry.tools(node, _context(ref, DEFAULT_ROOT_MOUNTPOINT))
    return sorted(tools)


def compile_layout(tree: Any, root_mountpoint: str = DEFAULT_ROOT_MOUNTPOINT) -> CompiledLayout:
    """
    Compile a raw layout into scripts and host-configuration facts.

    Args:
        tree: Raw layout mapping
        root_mountpoint: Directory the target root is mounted on

    Returns:
        Every compiled artifact

    Raises:
        SchemaError: If the layout is structurally invalid
        DependencyCycleError: If devices depend on each other in a loop
        UnsupportedDeviceNamingError: If a partition path cannot be derived
    """
    layout = parse_layout(tree)
    metadata = collect_metadata(layout)
    order = resolve_order(layout, metadata)
    logger.info(f"Device order: {', '.join(f'{g}.{n}' for g, n in order) or '(empty)'}")

    compiled = CompiledLayout(
        order=order,
        create_script=create_script(layout, root_mountpoint, order),
        mount_script=mount_script(layout, root_mountpoint, order),
        config=project_config(layout),
        tools=required_tools(layout),
        metadata=metadata,
    )
    logger.debug(
        f"Compiled {len(order)} device(s), {len(compiled['config'])} configuration fact(s)"
    )
    return compiled
