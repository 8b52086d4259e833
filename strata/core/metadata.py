"""
Metadata aggregation.

Nodes contribute structural facts bottom-up; the facts of siblings are
combined with a pure deep merge in tree traversal order. The only facts
currently contributed are the dependency edges of aggregate members:

    {"dependencies": {"lvm_vg": {"pool": [("disk", "a"), ("disk", "b")]}}}
"""
import logging
from functools import reduce
from typing import Any, Dict, Iterable, List

from strata.utils.types import DeviceRef, Metadata

logger = logging.getLogger('strata')

DEPENDENCIES = "dependencies"


def deep_merge(base: Metadata, update: Metadata) -> Metadata:
    """
    Merge two metadata mappings without modifying either.

    Nested mappings are merged recursively and lists are concatenated with
    duplicates dropped. Any other conflicting value is taken from ``update``.

    Args:
        base: Facts gathered so far
        update: Facts of the next node in traversal order

    Returns:
        The merged mapping
    """
    merged: Dict[str, Any] = dict(base)
    for key, value in update.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            merged[key] = current + [item for item in value if item not in current]
        else:
            # TODO: raise on conflicting scalars once layouts in the wild are audited
            merged[key] = value
    return merged


def merge_all(parts: Iterable[Metadata]) -> Metadata:
    """Fold a sequence of metadata mappings in order."""
    return reduce(deep_merge, parts, {})


def dependency(group: str, name: str, producer: DeviceRef) -> Metadata:
    """
    Build the fact recording that aggregate ``group.name`` consumes a member
    living under the top-level device ``producer``.
    """
    return {DEPENDENCIES: {group: {name: [producer]}}}


def dependencies_of(metadata: Metadata) -> Dict[str, Dict[str, List[DeviceRef]]]:
    """Return the dependency edges contained in merged metadata."""
    return metadata.get(DEPENDENCIES, {})
