"""
LVM module.

This module handles physical volumes, which feed a volume group, volume
groups, which are created once all their physical volumes exist, and the
logical volumes carved out of them.
"""
import logging
from typing import List, Set

from strata.core import registry
from strata.core.device import logical_volume_path
from strata.core.metadata import dependency, merge_all
from strata.core.mount import empty_fragment, merge_fragments
from strata.core.nodes import Context, LvmLogicalVolume, LvmPhysicalVolume, LvmVolumeGroup
from strata.utils.format import command
from strata.utils.types import (
    ConfigFact, KernelModuleFact, Metadata, MountFragment, Script, ToolRef
)

logger = logging.getLogger('strata')


def pv_metadata(pv: LvmPhysicalVolume, ctx: Context) -> Metadata:
    return dependency("lvm_vg", pv["vg"], ctx.parent)


def pv_create(pv: LvmPhysicalVolume, ctx: Context) -> Script:
    """
    Initialise a physical volume and record it for its volume group.

    Args:
        pv: Physical volume node
        ctx: Context holding the device and the member registry

    Returns:
        pvcreate command
    """
    ctx.members.add("lvm_vg", pv["vg"], ctx.device)
    return command("pvcreate", ctx.device) + "\n"


def _lv_context(vg: LvmVolumeGroup, ctx: Context) -> Context:
    return ctx._replace(vg=vg["name"])


def vg_metadata(vg: LvmVolumeGroup, ctx: Context) -> Metadata:
    lv_ctx = _lv_context(vg, ctx)
    return merge_all(registry.metadata(lv, lv_ctx) for lv in vg["lvs"].values())


def vg_create(vg: LvmVolumeGroup, ctx: Context) -> Script:
    """
    Create a volume group from every physical volume recorded for it,
    then its logical volumes.

    Args:
        vg: Volume group node
        ctx: Context holding the member registry

    Returns:
        Creation commands
    """
    devices = ctx.members.get("lvm_vg", vg["name"])
    logger.debug(f"Volume group {vg['name']} uses {', '.join(devices) or 'no devices'}")
    script = command("vgcreate", vg["name"], devices) + "\n"
    lv_ctx = _lv_context(vg, ctx)
    for lv in vg["lvs"].values():
        script += registry.create(lv, lv_ctx)
    return script


def vg_mount(vg: LvmVolumeGroup, ctx: Context) -> MountFragment:
    lv_ctx = _lv_context(vg, ctx)
    lvs = merge_fragments(registry.mount(lv, lv_ctx) for lv in vg["lvs"].values())
    return MountFragment(
        activation=command("vgchange", "-a", "y", vg["name"]) + "\n" + lvs["activation"],
        filesystems=lvs["filesystems"],
    )


def vg_config(vg: LvmVolumeGroup, ctx: Context) -> List[ConfigFact]:
    lv_ctx = _lv_context(vg, ctx)
    facts: List[ConfigFact] = []
    for lv in vg["lvs"].values():
        facts.extend(registry.config(lv, lv_ctx))
    return facts


def vg_tools(vg: LvmVolumeGroup, ctx: Context) -> Set[ToolRef]:
    tools = {"lvm2"}
    lv_ctx = _lv_context(vg, ctx)
    for lv in vg["lvs"].values():
        tools |= registry.tools(lv, lv_ctx)
    return tools


def _content_context(lv: LvmLogicalVolume, ctx: Context) -> Context:
    return ctx._replace(device=logical_volume_path(ctx.vg, lv["name"]))


def lv_metadata(lv: LvmLogicalVolume, ctx: Context) -> Metadata:
    if lv["content"] is None:
        return {}
    return registry.metadata(lv["content"], ctx)


def lv_create(lv: LvmLogicalVolume, ctx: Context) -> Script:
    """
    Build the commands creating a logical volume and its content.

    Sizes containing a percentage are passed as extents (-l), anything
    else as an absolute size (-L).

    Args:
        lv: Logical volume node
        ctx: Context holding the volume group name

    Returns:
        Creation commands
    """
    size_flag = "-l" if "%" in lv["size"] else "-L"
    script = command(
        "lvcreate", "--yes",
        size_flag, lv["size"],
        "-n", lv["name"],
        f"--type={lv['lvm_type']}" if lv["lvm_type"] else None,
        lv["extra_args"],
        ctx.vg,
    ) + "\n"
    if lv["content"] is not None:
        script += registry.create(lv["content"], _content_context(lv, ctx))
    return script


def lv_mount(lv: LvmLogicalVolume, ctx: Context) -> MountFragment:
    if lv["content"] is None:
        return empty_fragment()
    return registry.mount(lv["content"], _content_context(lv, ctx))


def lv_config(lv: LvmLogicalVolume, ctx: Context) -> List[ConfigFact]:
    facts: List[ConfigFact] = []
    if lv["content"] is not None:
        facts.extend(registry.config(lv["content"], _content_context(lv, ctx)))
    if lv["lvm_type"]:
        # mirror/raid logical volumes need their device-mapper target in the initrd
        facts.append(KernelModuleFact(fact="kernel_module", module=f"dm-{lv['lvm_type']}"))
    return facts


def lv_tools(lv: LvmLogicalVolume, ctx: Context) -> Set[ToolRef]:
    if lv["content"] is None:
        return set()
    return registry.tools(lv["content"], ctx)


registry.register("lvm_pv", registry.KindOps(
    metadata=pv_metadata,
    create=pv_create,
    mount=lambda pv, ctx: empty_fragment(),
    config=lambda pv, ctx: [],
    tools=lambda pv, ctx: {"lvm2"},
))

registry.register("lvm_vg", registry.KindOps(
    metadata=vg_metadata,
    create=vg_create,
    mount=vg_mount,
    config=vg_config,
    tools=vg_tools,
))

registry.register("lvm_lv", registry.KindOps(
    metadata=lv_metadata,
    create=lv_create,
    mount=lv_mount,
    config=lv_config,
    tools=lv_tools,
))
