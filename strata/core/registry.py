"""
Node registry.

Each node kind provides the same five operations: metadata, create, mount,
config and tools. Kind modules register their implementation under the
value of the node's "type" key, and the rest of the compiler goes through
the dispatch functions below.
"""
import logging
from typing import Callable, Dict, List, NamedTuple, Set

from strata.core.exceptions import SchemaError
from strata.core.nodes import Context, Node
from strata.utils.format import indent
from strata.utils.types import ConfigFact, Metadata, MountFragment, Script, ToolRef

logger = logging.getLogger('strata')


class KindOps(NamedTuple):
    """Behaviour of one node kind"""
    metadata: Callable[[Node, Context], Metadata]
    create: Callable[[Node, Context], Script]
    mount: Callable[[Node, Context], MountFragment]
    config: Callable[[Node, Context], List[ConfigFact]]
    tools: Callable[[Node, Context], Set[ToolRef]]


KINDS: Dict[str, KindOps] = {}


def register(kind: str, ops: KindOps) -> None:
    """
    Register the behaviour of a node kind.

    Args:
        kind: Value of the node's "type" key
        ops: Implementation of the five operations
    """
    if kind in KINDS:
        raise ValueError(f"Node kind {kind} is already registered")
    KINDS[kind] = ops


def lookup(node: Node) -> KindOps:
    """
    Find the behaviour of a node.

    Raises:
        SchemaError: If the node kind is unknown
    """
    kind = node.get("type")
    try:
        return KINDS[kind]
    except KeyError:
        raise SchemaError(f"Unknown node type: {kind!r}")


def _identity(node: Node) -> str:
    for key in ("name", "device", "mountpoint", "format"):
        value = node.get(key)
        if value:
            return f" {value}"
    return ""


def metadata(node: Node, ctx: Context) -> Metadata:
    return lookup(node).metadata(node, ctx)


def create(node: Node, ctx: Context) -> Script:
    """
    Build the creation commands of a node and its descendants.

    The commands are framed by a comment naming the node and by the
    node's pre/post create hooks.
    """
    body = lookup(node).create(node, ctx)
    hooks = node["hooks"]
    logger.debug(f"Built creation commands for {node['type']}{_identity(node)}")
    return (
        f"# {node['type']}{_identity(node)}\n"
        + _hook(hooks["pre_create"])
        + body
        + _hook(hooks["post_create"])
    )


def mount(node: Node, ctx: Context) -> MountFragment:
    """
    Build the activation commands and filesystem mounts of a node.

    The node's pre/post mount hooks frame its activation commands.
    """
    fragment = lookup(node).mount(node, ctx)
    hooks = node["hooks"]
    activation = fragment["activation"]
    if hooks["pre_mount"] or hooks["post_mount"]:
        activation = _hook(hooks["pre_mount"]) + activation + _hook(hooks["post_mount"])
    return MountFragment(activation=activation, filesystems=fragment["filesystems"])


def config(node: Node, ctx: Context) -> List[ConfigFact]:
    return lookup(node).config(node, ctx)


def tools(node: Node, ctx: Context) -> Set[ToolRef]:
    return lookup(node).tools(node, ctx)


def _hook(snippet: str) -> Script:
    if not snippet:
        return ""
    return "(\n" + indent(snippet.rstrip("\n") + "\n") + ")\n"


# Kind modules register themselves on import
from strata.core import disk, partition, filesystem, encryption, lvm, zfs, raid  # noqa: E402,F401
