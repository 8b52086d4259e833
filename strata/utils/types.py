"""
Type definitions for strata.

This module provides TypedDict definitions and other type aliases
for the artifacts produced while compiling a layout.
"""
from typing import Any, Dict, List, Literal, Optional, Tuple, TypedDict, Union


# Reference to a top-level device: (group, name), e.g. ("disk", "main")
DeviceRef = Tuple[str, str]

# Shell script text
Script = str

# Package reference for an external utility (e.g. "lvm2")
ToolRef = str

# Merged metadata facts contributed by nodes
Metadata = Dict[str, Any]


class MountFragment(TypedDict):
    """Result of the mount operation of a node"""
    activation: Script
    filesystems: Dict[str, Script]


class FilesystemFact(TypedDict):
    """A filesystem table entry"""
    fact: Literal["filesystem"]
    mountpoint: str
    device: str
    fs_type: str
    options: List[str]


class SwapFact(TypedDict):
    """A swap device entry"""
    fact: Literal["swap"]
    device: str
    random_encryption: bool


class UnlockFact(TypedDict):
    """A boot-time unlock entry for an encrypted volume"""
    fact: Literal["unlock"]
    name: str
    device: str
    key_file: Optional[str]


class KernelModuleFact(TypedDict):
    """A kernel module needed early at boot"""
    fact: Literal["kernel_module"]
    module: str


ConfigFact = Union[FilesystemFact, SwapFact, UnlockFact, KernelModuleFact]
