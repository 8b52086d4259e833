"""
Software RAID module.

This module handles devices handed to an mdadm array and the arrays
themselves.
"""
import logging
from typing import List, Set

from strata.core import registry
from strata.core.device import raid_path
from strata.core.metadata import dependency
from strata.core.mount import empty_fragment
from strata.core.nodes import Context, RaidArray, RaidMember
from strata.core.partition import SETTLE_DEVICES
from strata.utils.format import command, quote
from strata.utils.types import ConfigFact, Metadata, MountFragment, Script, ToolRef

logger = logging.getLogger('strata')


def member_metadata(member: RaidMember, ctx: Context) -> Metadata:
    return dependency("mdadm", member["name"], ctx.parent)


def member_create(member: RaidMember, ctx: Context) -> Script:
    # The array consumes the device when it is assembled
    ctx.members.add("mdadm", member["name"], ctx.device)
    return ""


def _content_context(array: RaidArray, ctx: Context) -> Context:
    return ctx._replace(device=raid_path(array["name"]))


def array_metadata(array: RaidArray, ctx: Context) -> Metadata:
    if array["content"] is None:
        return {}
    return registry.metadata(array["content"], _content_context(array, ctx))


def array_create(array: RaidArray, ctx: Context) -> Script:
    """
    Build the commands creating an array from every member recorded for it.

    Args:
        array: RAID array node
        ctx: Context holding the member registry

    Returns:
        Creation commands for the array and its content
    """
    devices = ctx.members.get("mdadm", array["name"])
    logger.debug(f"RAID array {array['name']} uses {', '.join(devices) or 'no devices'}")
    script = "echo 'y' | " + command(
        "mdadm", "--create", raid_path(array["name"]),
        f"--level={array['level']}",
        f"--raid-devices={len(devices)}",
        f"--metadata={array['metadata']}",
        "--force",
        "--homehost=any",
        devices,
    ) + "\n"
    script += SETTLE_DEVICES
    if array["content"] is not None:
        script += registry.create(array["content"], _content_context(array, ctx))
    return script


def array_mount(array: RaidArray, ctx: Context) -> MountFragment:
    """
    Assemble the array unless its device exists, then activate its content.

    Args:
        array: RAID array node
        ctx: Context of the array

    Returns:
        Mount fragment of the array and its content
    """
    content = empty_fragment()
    if array["content"] is not None:
        content = registry.mount(array["content"], _content_context(array, ctx))
    activation = f"[ -e {quote(raid_path(array['name']))} ] || mdadm --assemble --scan\n"
    return MountFragment(
        activation=activation + content["activation"],
        filesystems=content["filesystems"],
    )


def array_config(array: RaidArray, ctx: Context) -> List[ConfigFact]:
    if array["content"] is None:
        return []
    return registry.config(array["content"], _content_context(array, ctx))


def array_tools(array: RaidArray, ctx: Context) -> Set[ToolRef]:
    tools = {"mdadm"}
    if array["content"] is not None:
        tools |= registry.tools(array["content"], _content_context(array, ctx))
    return tools


registry.register("mdraid", registry.KindOps(
    metadata=member_metadata,
    create=member_create,
    mount=lambda member, ctx: empty_fragment(),
    config=lambda member, ctx: [],
    tools=lambda member, ctx: {"mdadm"},
))

registry.register("mdadm", registry.KindOps(
    metadata=array_metadata,
    create=array_create,
    mount=array_mount,
    config=array_config,
    tools=array_tools,
))
