"""
Aggregate membership accumulator.

While the creation script is assembled, member nodes (LVM physical volumes,
RAID members, ZFS pool members) record their device path here; the aggregate
they belong to reads the complete list when its own creation step is built.
"""
import logging
from typing import Dict, List, Tuple

logger = logging.getLogger('strata')


class MemberRegistry:
    """
    Device paths of aggregate members, keyed by (aggregate group, aggregate name).

    Each member writes once, each aggregate reads once. Compilation is
    sequential so no locking is involved.
    """
    def __init__(self):
        self._members: Dict[Tuple[str, str], List[str]] = {}

    def add(self, group: str, name: str, device: str) -> None:
        """
        Record a member device of an aggregate.

        Args:
            group: Aggregate group (lvm_vg, zpool, mdadm)
            name: Aggregate name
            device: Device path of the member
        """
        logger.debug(f"Recording {device} as member of {group}.{name}")
        self._members.setdefault((group, name), []).append(device)

    def get(self, group: str, name: str) -> List[str]:
        """
        Return the member devices recorded for an aggregate.

        An aggregate without members still compiles, but the generated
        command will fail when run, so this is reported.
        """
        devices = list(self._members.get((group, name), []))
        if not devices:
            logger.warning(f"No member devices were found for {group}.{name}")
        return devices
