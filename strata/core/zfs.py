"""
ZFS module.

This module handles devices handed to a ZFS pool, the pool itself and its
datasets, which are either mounted filesystems or volumes exposing a block
device of their own.
"""
import logging
from typing import Dict, List, Set

from strata.core import registry
from strata.core.device import zvol_path
from strata.core.metadata import dependency, merge_all
from strata.core.mount import empty_fragment, merge_fragments, mount_filesystem
from strata.core.nodes import Context, ZfsDataset, ZfsPool, ZfsVolume
from strata.core.partition import SETTLE_DEVICES
from strata.utils.format import command, option_flags
from strata.utils.types import ConfigFact, FilesystemFact, Metadata, MountFragment, Script, ToolRef

logger = logging.getLogger('strata')


def _properties(flag: str, properties: Dict[str, str]) -> List[str]:
    return option_flags(flag, [f"{key}={value}" for key, value in properties.items()])


def _zfs_mount_options(entity: Dict, mount_options: List[str]) -> List[str]:
    """Datasets not using legacy mountpoints are mounted with zfsutil."""
    options = list(mount_options)
    if entity["options"].get("mountpoint", "") != "legacy":
        options.append("zfsutil")
    return options


def member_metadata(member: ZfsVolume, ctx: Context) -> Metadata:
    return dependency("zpool", member["pool"], ctx.parent)


def member_create(member: ZfsVolume, ctx: Context) -> Script:
    # The pool consumes the device when it is created
    ctx.members.add("zpool", member["pool"], ctx.device)
    return ""


def _dataset_context(pool: ZfsPool, ctx: Context) -> Context:
    return ctx._replace(pool=pool["name"])


def pool_metadata(pool: ZfsPool, ctx: Context) -> Metadata:
    ds_ctx = _dataset_context(pool, ctx)
    return merge_all(registry.metadata(ds, ds_ctx) for ds in pool["datasets"].values())


def pool_create(pool: ZfsPool, ctx: Context) -> Script:
    """
    Create a pool from every device recorded for it, then its datasets.

    Args:
        pool: Pool node
        ctx: Context holding the member registry

    Returns:
        Creation commands
    """
    devices = ctx.members.get("zpool", pool["name"])
    logger.debug(f"Pool {pool['name']} uses {', '.join(devices) or 'no devices'}")
    script = command(
        "zpool", "create", pool["name"],
        pool["mode"].split(),
        _properties("-o", pool["options"]),
        _properties("-O", pool["root_fs_options"]),
        devices,
    ) + "\n"
    ds_ctx = _dataset_context(pool, ctx)
    for ds in pool["datasets"].values():
        script += registry.create(ds, ds_ctx)
    return script


def pool_mount(pool: ZfsPool, ctx: Context) -> MountFragment:
    """
    Import the pool unless it is already imported, then mount its datasets.

    Args:
        pool: Pool node
        ctx: Context holding the target root

    Returns:
        Mount fragment of the pool and its datasets
    """
    ds_ctx = _dataset_context(pool, ctx)
    datasets = merge_fragments(registry.mount(ds, ds_ctx) for ds in pool["datasets"].values())
    activation = (
        f"{command('zpool', 'list', pool['name'])} >/dev/null 2>/dev/null || "
        f"{command('zpool', 'import', pool['name'])}\n"
    )
    filesystems = dict(datasets["filesystems"])
    if pool["mountpoint"] is not None:
        filesystems[pool["mountpoint"]] = mount_filesystem(
            pool["name"], ctx.root_mountpoint, pool["mountpoint"],
            _zfs_mount_options(pool, pool["mount_options"]), fs_type="zfs",
        )
    return MountFragment(activation=activation + datasets["activation"], filesystems=filesystems)


def pool_config(pool: ZfsPool, ctx: Context) -> List[ConfigFact]:
    ds_ctx = _dataset_context(pool, ctx)
    facts: List[ConfigFact] = []
    for ds in pool["datasets"].values():
        facts.extend(registry.config(ds, ds_ctx))
    if pool["mountpoint"] is not None:
        facts.append(FilesystemFact(
            fact="filesystem",
            mountpoint=pool["mountpoint"],
            device=pool["name"],
            fs_type="zfs",
            options=_zfs_mount_options(pool, pool["mount_options"]),
        ))
    return facts


def pool_tools(pool: ZfsPool, ctx: Context) -> Set[ToolRef]:
    tools = {"util-linux", "zfs"}
    ds_ctx = _dataset_context(pool, ctx)
    for ds in pool["datasets"].values():
        tools |= registry.tools(ds, ds_ctx)
    return tools


def _is_mounted_filesystem(ds: ZfsDataset) -> bool:
    return (
        ds["zfs_type"] == "filesystem"
        and ds["mountpoint"] is not None
        and ds["options"].get("mountpoint", "") != "none"
    )


def _volume_context(ds: ZfsDataset, ctx: Context) -> Context:
    return ctx._replace(device=zvol_path(ctx.pool, ds["name"]))


def dataset_metadata(ds: ZfsDataset, ctx: Context) -> Metadata:
    if ds["content"] is None:
        return {}
    return registry.metadata(ds["content"], ctx)


def dataset_create(ds: ZfsDataset, ctx: Context) -> Script:
    """
    Build the commands creating a dataset.

    Volumes get their size with -V and, once udev has created their device
    node, their content is created on it.

    Args:
        ds: Dataset node
        ctx: Context holding the pool name

    Returns:
        Creation commands
    """
    is_volume = ds["zfs_type"] == "volume"
    script = command(
        "zfs", "create", f"{ctx.pool}/{ds['name']}",
        _properties("-o", ds["options"]),
        ["-V", ds["size"]] if is_volume else None,
    ) + "\n"
    if is_volume:
        script += SETTLE_DEVICES
        if ds["content"] is not None:
            script += registry.create(ds["content"], _volume_context(ds, ctx))
    return script


def dataset_mount(ds: ZfsDataset, ctx: Context) -> MountFragment:
    if ds["zfs_type"] == "volume":
        if ds["content"] is None:
            return empty_fragment()
        return registry.mount(ds["content"], _volume_context(ds, ctx))
    if not _is_mounted_filesystem(ds):
        return empty_fragment()
    return MountFragment(
        activation="",
        filesystems={
            ds["mountpoint"]: mount_filesystem(
                f"{ctx.pool}/{ds['name']}", ctx.root_mountpoint, ds["mountpoint"],
                _zfs_mount_options(ds, ds["mount_options"]), fs_type="zfs",
            )
        },
    )


def dataset_config(ds: ZfsDataset, ctx: Context) -> List[ConfigFact]:
    if ds["zfs_type"] == "volume":
        if ds["content"] is None:
            return []
        return registry.config(ds["content"], _volume_context(ds, ctx))
    if not _is_mounted_filesystem(ds):
        return []
    return [FilesystemFact(
        fact="filesystem",
        mountpoint=ds["mountpoint"],
        device=f"{ctx.pool}/{ds['name']}",
        fs_type="zfs",
        options=_zfs_mount_options(ds, ds["mount_options"]),
    )]


def dataset_tools(ds: ZfsDataset, ctx: Context) -> Set[ToolRef]:
    tools = {"util-linux"}
    if ds["content"] is not None:
        tools |= registry.tools(ds["content"], ctx)
    return tools


registry.register("zfs", registry.KindOps(
    metadata=member_metadata,
    create=member_create,
    mount=lambda member, ctx: empty_fragment(),
    config=lambda member, ctx: [],
    tools=lambda member, ctx: {"zfs"},
))

registry.register("zpool", registry.KindOps(
    metadata=pool_metadata,
    create=pool_create,
    mount=pool_mount,
    config=pool_config,
    tools=pool_tools,
))

registry.register("zfs_dataset", registry.KindOps(
    metadata=dataset_metadata,
    create=dataset_create,
    mount=dataset_mount,
    config=dataset_config,
    tools=dataset_tools,
))
