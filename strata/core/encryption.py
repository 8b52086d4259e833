"""
Disk encryption module.

This module handles LUKS containers: formatting and opening them with
cryptsetup, reopening them before mounting, and declaring them for unlocking
at boot.
"""
import logging
from typing import List, Set

from strata.core import registry
from strata.core.device import mapper_path
from strata.core.mount import empty_fragment
from strata.core.nodes import Context, Luks
from strata.utils.format import command
from strata.utils.types import ConfigFact, Metadata, MountFragment, Script, ToolRef, UnlockFact

logger = logging.getLogger('strata')


def _open_command(luks: Luks, device: str) -> str:
    key_args = ["--key-file", luks["key_file"]] if luks["key_file"] else None
    return command("cryptsetup", "luksOpen", device, luks["name"], key_args)


def _content_context(luks: Luks, ctx: Context) -> Context:
    return ctx._replace(device=mapper_path(luks["name"]))


def luks_metadata(luks: Luks, ctx: Context) -> Metadata:
    if luks["content"] is None:
        return {}
    return registry.metadata(luks["content"], ctx)


def luks_create(luks: Luks, ctx: Context) -> Script:
    """
    Build the commands formatting and opening a LUKS container.

    Args:
        luks: LUKS node
        ctx: Context holding the device to encrypt

    Returns:
        Creation commands for the container and its content
    """
    logger.debug(f"Setting up LUKS container {luks['name']} on {ctx.device}")
    script = command(
        "cryptsetup", "-q", "luksFormat", ctx.device, luks["key_file"], luks["extra_args"]
    ) + "\n"
    script += _open_command(luks, ctx.device) + "\n"
    if luks["content"] is not None:
        script += registry.create(luks["content"], _content_context(luks, ctx))
    return script


def luks_mount(luks: Luks, ctx: Context) -> MountFragment:
    """
    Open the container unless it is already open, then activate its content.

    Args:
        luks: LUKS node
        ctx: Context holding the encrypted device

    Returns:
        Mount fragment of the container and its content
    """
    content = empty_fragment()
    if luks["content"] is not None:
        content = registry.mount(luks["content"], _content_context(luks, ctx))

    activation = (
        f"{command('cryptsetup', 'status', luks['name'])} >/dev/null 2>/dev/null ||\n"
        f"  {_open_command(luks, ctx.device)}\n"
    )
    return MountFragment(
        activation=activation + content["activation"],
        filesystems=content["filesystems"],
    )


def luks_config(luks: Luks, ctx: Context) -> List[ConfigFact]:
    facts: List[ConfigFact] = [
        UnlockFact(fact="unlock", name=luks["name"], device=ctx.device, key_file=luks["key_file"])
    ]
    if luks["content"] is not None:
        facts.extend(registry.config(luks["content"], _content_context(luks, ctx)))
    return facts


def luks_tools(luks: Luks, ctx: Context) -> Set[ToolRef]:
    tools = {"cryptsetup"}
    if luks["content"] is not None:
        tools |= registry.tools(luks["content"], ctx)
    return tools


registry.register("luks", registry.KindOps(
    metadata=luks_metadata,
    create=luks_create,
    mount=luks_mount,
    config=luks_config,
    tools=luks_tools,
))
