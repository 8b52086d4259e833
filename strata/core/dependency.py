"""
Dependency resolution between top-level devices.

Disks, RAID arrays, ZFS pools and volume groups can feed each other across
branches of the layout tree. This module orders them so that every device
is created after the devices holding its members.
"""
import logging
from typing import Dict, List

import networkx as nx

from strata.core.exceptions import DependencyCycleError
from strata.core.nodes import GROUPS, Layout
from strata.utils.types import DeviceRef

logger = logging.getLogger('strata')

Dependencies = Dict[str, Dict[str, List[DeviceRef]]]


def device_list(layout: Layout) -> List[DeviceRef]:
    """
    List every top-level device as a (group, name) pair.

    Groups are listed in the fixed order of GROUPS and names in declaration
    order, which makes the resolved order reproducible.

    Args:
        layout: Normalised layout

    Returns:
        List of device references
    """
    return [
        (group, name)
        for group in GROUPS
        for name in layout.get(group, {})
    ]


def dependency_graph(dependencies: Dependencies, layout: Layout) -> nx.DiGraph:
    """
    Build the graph of top-level devices with an edge from producer to consumer.

    References to devices that are not part of the layout are dropped.

    Args:
        dependencies: Dependency edges, consumer group -> name -> producer refs
        layout: Normalised layout

    Returns:
        Directed graph over device references
    """
    graph = nx.DiGraph()
    graph.add_nodes_from(device_list(layout))
    for group, consumers in dependencies.items():
        for name, producers in consumers.items():
            consumer = (group, name)
            if consumer not in graph:
                continue
            for producer in producers:
                producer = tuple(producer)
                if producer in graph:
                    graph.add_edge(producer, consumer)
    return graph


def _cycle(graph: nx.DiGraph) -> List[DeviceRef]:
    edges = nx.find_cycle(graph)
    return [edge[0] for edge in edges] + [edges[-1][1]]


def sort_devices(dependencies: Dependencies, layout: Layout) -> List[DeviceRef]:
    """
    Sort top-level devices so that producers precede their consumers.

    The sort is stable: at each step the earliest listed device whose
    producers have all been placed comes next.

    Args:
        dependencies: Dependency edges, consumer group -> name -> producer refs
        layout: Normalised layout

    Returns:
        Ordered list of device references

    Raises:
        DependencyCycleError: If devices depend on each other in a loop
    """
    position = {device: i for i, device in enumerate(device_list(layout))}
    graph = dependency_graph(dependencies, layout)

    if not nx.is_directed_acyclic_graph(graph):
        raise DependencyCycleError(_cycle(graph))

    ordered = list(nx.lexicographical_topological_sort(graph, key=position.__getitem__))
    logger.debug(f"Resolved device order: {', '.join(f'{g}.{n}' for g, n in ordered)}")
    return ordered
