"""
Layout validation and normalisation.

This module turns the raw layout mapping (as read from YAML or JSON) into the
normalised node tree used by the compiler: defaults are filled in, option
names are converted to their Python spelling, and the structural rules of the
tree are enforced. Type checking of scalar values is left to the caller.
"""
import logging
import shlex
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from strata.core.exceptions import SchemaError
from strata.core.nodes import (
    DEVICE_CONTENT, GROUPS, GROUP_KINDS, PARTITION_CONTENT, Hooks, Layout, Node
)

logger = logging.getLogger('strata')

_MISSING = object()


class Field(NamedTuple):
    """Description of one option of a node kind"""
    key: str
    attr: str
    default: Any = _MISSING
    parse: Optional[Callable[[Any, str], Any]] = None


HOOK_KEYS = {
    "preCreateHook": "pre_create",
    "postCreateHook": "post_create",
    "preMountHook": "pre_mount",
    "postMountHook": "post_mount",
}


def _list(value: Any, path: str) -> List[str]:
    if not isinstance(value, (list, tuple)):
        raise SchemaError(f"{path}: expected a list, got {value!r}")
    return [str(item) for item in value]


def _args(value: Any, path: str) -> List[str]:
    """Extra arguments may be given as a shell string or a list."""
    if isinstance(value, str):
        return shlex.split(value)
    return _list(value, path)


def _mapping(value: Any, path: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise SchemaError(f"{path}: expected a mapping, got {value!r}")
    return {str(k): str(v) for k, v in value.items()}


def _absolute(value: Any, path: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not value.startswith("/"):
        raise SchemaError(f"{path}: mountpoint must be an absolute path, got {value!r}")
    return value


def _content(allowed: frozenset) -> Callable[[Any, str], Optional[Node]]:
    def parse(value: Any, path: str) -> Optional[Node]:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise SchemaError(f"{path}: expected a node, got {value!r}")
        kind = value.get("type")
        if kind is None:
            raise SchemaError(f"{path}: missing required field 'type'")
        if kind not in _KINDS:
            raise SchemaError(f"{path}: unknown node type {kind!r}")
        if kind not in allowed:
            raise SchemaError(
                f"{path}: a {kind} node cannot be placed here "
                f"(allowed: {', '.join(sorted(allowed))})"
            )
        return parse_node(value, path, kind)
    return parse


def _children(kind: str) -> Callable[[Any, str], Dict[str, Node]]:
    """Parse a named collection of child nodes (lvs, datasets, subvolumes)."""
    def parse(value: Any, path: str) -> Dict[str, Node]:
        if not isinstance(value, dict):
            raise SchemaError(f"{path}: expected a mapping of {kind} nodes, got {value!r}")
        return {
            str(name): parse_node(child, f"{path}.{name}", kind, name=str(name))
            for name, child in value.items()
        }
    return parse


def _partitions(value: Any, path: str) -> List[Node]:
    if not isinstance(value, (list, tuple)):
        raise SchemaError(f"{path}: expected a list of partitions, got {value!r}")
    partitions = [
        parse_node(raw, f"{path}[{position}]", "partition", position=position)
        for position, raw in enumerate(value)
    ]
    seen: Dict[int, str] = {}
    for position, part in enumerate(partitions):
        index = part["index"]
        if not isinstance(index, int) or isinstance(index, bool) or index < 1:
            raise SchemaError(f"{path}[{position}]: partition index must be a positive integer, got {index!r}")
        if index in seen:
            raise SchemaError(f"{path}[{position}]: partition index {index} is already used by {seen[index]}")
        seen[index] = f"{path}[{position}]"
    return partitions


# Options of every node kind. A field without default is required.
_KINDS: Dict[str, List[Field]] = {
    "disk": [
        Field("name", "name"),
        Field("device", "device"),
        Field("content", "content", None, _content(DEVICE_CONTENT)),
    ],
    "table": [
        Field("format", "format", "gpt"),
        Field("partitions", "partitions", [], _partitions),
    ],
    "partition": [
        Field("name", "name", None),
        Field("part-type", "part_type", "primary"),
        Field("fs-type", "fs_type", None),
        Field("start", "start", "0%"),
        Field("end", "end", "100%"),
        Field("index", "index"),
        Field("flags", "flags", [], _list),
        Field("bootable", "bootable", False),
        Field("content", "content", None, _content(PARTITION_CONTENT)),
    ],
    "filesystem": [
        Field("format", "format"),
        Field("mountpoint", "mountpoint", _MISSING, _absolute),
        Field("extraArgs", "extra_args", [], _args),
        Field("mountOptions", "mount_options", ["defaults"], _list),
    ],
    "btrfs": [
        Field("extraArgs", "extra_args", [], _args),
        Field("mountOptions", "mount_options", ["defaults"], _list),
        Field("mountpoint", "mountpoint", None, _absolute),
        Field("subvolumes", "subvolumes", {}, _children("btrfs_subvol")),
    ],
    "btrfs_subvol": [
        Field("name", "name"),
        Field("extraArgs", "extra_args", [], _args),
        Field("mountOptions", "mount_options", ["defaults"], _list),
        Field("mountpoint", "mountpoint", None, _absolute),
    ],
    "swap": [
        Field("randomEncryption", "random_encryption", False),
    ],
    "lvm_pv": [
        Field("vg", "vg"),
    ],
    "lvm_vg": [
        Field("name", "name"),
        Field("lvs", "lvs", {}, _children("lvm_lv")),
    ],
    "lvm_lv": [
        Field("name", "name"),
        Field("size", "size"),
        Field("lvm_type", "lvm_type", None),
        Field("extraArgs", "extra_args", [], _args),
        Field("content", "content", None, _content(PARTITION_CONTENT)),
    ],
    "zfs": [
        Field("pool", "pool"),
    ],
    "zpool": [
        Field("name", "name"),
        Field("mode", "mode", ""),
        Field("options", "options", {}, _mapping),
        Field("rootFsOptions", "root_fs_options", {}, _mapping),
        Field("mountpoint", "mountpoint", None, _absolute),
        Field("mountOptions", "mount_options", ["defaults"], _list),
        Field("datasets", "datasets", {}, _children("zfs_dataset")),
    ],
    "zfs_dataset": [
        Field("name", "name"),
        Field("zfs_type", "zfs_type"),
        Field("options", "options", {}, _mapping),
        Field("mountOptions", "mount_options", ["defaults"], _list),
        Field("mountpoint", "mountpoint", None, _absolute),
        Field("size", "size", None),
        Field("content", "content", None, _content(PARTITION_CONTENT)),
    ],
    "mdraid": [
        Field("name", "name"),
    ],
    "mdadm": [
        Field("name", "name"),
        Field("level", "level", 1),
        Field("metadata", "metadata", "default"),
        Field("content", "content", None, _content(DEVICE_CONTENT)),
    ],
    "luks": [
        Field("name", "name"),
        Field("keyFile", "key_file", None),
        Field("extraArgs", "extra_args", [], _args),
        Field("content", "content", None, _content(DEVICE_CONTENT)),
    ],
    "nodev": [
        Field("fsType", "fs_type"),
        Field("device", "device", "none"),
        Field("mountpoint", "mountpoint", _MISSING, _absolute),
        Field("mountOptions", "mount_options", ["defaults"], _list),
    ],
}

# Kinds whose name (or mountpoint, for nodev) defaults to their key
_KEY_DEFAULTS = {
    "disk": "name", "btrfs_subvol": "name", "lvm_vg": "name", "lvm_lv": "name",
    "zpool": "name", "zfs_dataset": "name", "mdadm": "name", "nodev": "mountpoint",
}


def parse_node(
    raw: Any,
    path: str,
    kind: str,
    name: Optional[str] = None,
    position: Optional[int] = None,
) -> Node:
    """
    Validate and normalise one node and its descendants.

    Args:
        raw: Raw node mapping
        path: Location of the node, for error messages
        kind: Kind implied by the node's position in the tree
        name: Key of the node in its parent collection, if any
        position: Position of the node in a partition list, if any

    Returns:
        Normalised node

    Raises:
        SchemaError: If the node is structurally invalid
    """
    if not isinstance(raw, dict):
        raise SchemaError(f"{path}: expected a {kind} node, got {raw!r}")

    declared = raw.get("type", kind)
    if declared not in _KINDS:
        raise SchemaError(f"{path}: unknown node type {declared!r}")
    if declared != kind:
        raise SchemaError(f"{path}: expected a {kind} node, got type {declared!r}")

    fields = _KINDS[kind]
    known = {"type"} | {f.key for f in fields} | set(HOOK_KEYS)
    unknown = sorted(set(raw) - known)
    if unknown:
        logger.warning(f"{path}: ignoring unknown option(s) {', '.join(unknown)}")

    node: Dict[str, Any] = {"type": kind}
    for field in fields:
        default = field.default
        if field.attr == _KEY_DEFAULTS.get(kind) and name is not None:
            default = name
        if field.attr == "index" and position is not None:
            default = position + 1

        # An explicit null counts as an absent option
        if raw.get(field.key) is not None:
            value = raw[field.key]
        elif default is _MISSING:
            raise SchemaError(f"{path}: missing required field '{field.key}'")
        else:
            value = default

        if field.parse is not None and value is not None:
            value = field.parse(value, f"{path}.{field.key}")
        elif isinstance(value, (list, dict)):
            # Never share mutable defaults between nodes
            value = type(value)(value)
        node[field.attr] = value

    if kind == "zfs_dataset":
        if node["zfs_type"] not in ("filesystem", "volume"):
            raise SchemaError(f"{path}: zfs_type must be 'filesystem' or 'volume', got {node['zfs_type']!r}")
        if node["zfs_type"] == "volume" and node["size"] is None:
            raise SchemaError(f"{path}: missing required field 'size' for a ZFS volume")
    if kind == "table" and node["format"] not in ("gpt", "msdos"):
        raise SchemaError(f"{path}: partition table format must be 'gpt' or 'msdos', got {node['format']!r}")

    node["hooks"] = Hooks(**{
        attr: str(raw.get(key) or "") for key, attr in HOOK_KEYS.items()
    })
    return node


def parse_layout(tree: Any) -> Layout:
    """
    Validate and normalise a complete layout.

    The layout maps group names (disk, mdadm, zpool, lvm_vg, nodev) to
    mappings of named root nodes. It may be wrapped in a "devices" key.

    Args:
        tree: Raw layout mapping

    Returns:
        Normalised layout holding every group

    Raises:
        SchemaError: If the layout is structurally invalid
    """
    if isinstance(tree, dict) and set(tree) == {"devices"}:
        tree = tree["devices"]
    if not isinstance(tree, dict):
        raise SchemaError(f"Layout must be a mapping of device groups, got {type(tree).__name__}")

    unknown = sorted(set(tree) - set(GROUPS))
    if unknown:
        raise SchemaError(
            f"Unknown device group(s): {', '.join(unknown)} (expected {', '.join(GROUPS)})"
        )

    layout: Layout = {}
    for group in GROUPS:
        entries = tree.get(group) or {}
        if not isinstance(entries, dict):
            raise SchemaError(f"{group}: expected a mapping of named devices, got {entries!r}")
        layout[group] = {
            str(name): parse_node(raw, f"{group}.{name}", GROUP_KINDS[group], name=str(name))
            for name, raw in entries.items()
        }

    logger.debug(
        "Parsed layout with " + ", ".join(f"{len(layout[g])} {g}" for g in GROUPS)
    )
    return layout
