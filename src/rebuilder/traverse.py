from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping, Sequence

from rebuilder.graph import PackageGraph

logger = logging.getLogger(__name__)


def expand_closure(
    pkgnames: Sequence[str],
    reverse_deps: Mapping[str, list[str]],
) -> PackageGraph:
    """Build the rebuild graph from a worklist seeded with ``pkgnames``.

    Every popped package gets a node, and an edge to each of its dependents.
    A package only pushes its dependents onto the worklist if it has not
    itself been seen as someone's dependent. Dependents are marked the
    moment they are recorded, so only the seeds push anything: their
    dependents get popped and contribute edges to their own dependents,
    which are never popped. The walk stops there, two levels below the
    seeds, rather than at the full transitive closure.

    Args:
        pkgnames: Seed package names, in the order they were requested.
        reverse_deps: Mapping of package name → packages depending on it.

    Returns:
        The populated graph. Each seed has a node.
    """
    graph = PackageGraph()
    to_visit: deque[str] = deque(pkgnames)
    to_build: set[str] = set()

    while to_visit:
        current = to_visit.popleft()
        root = graph.ensure_node(current)

        dependents = reverse_deps.get(current)
        if dependents is None:
            continue

        if current not in to_build:
            to_visit.extend(dependents)

        for dependent in dependents:
            node = graph.ensure_node(dependent)
            graph.add_edge(root, node)
        to_build.update(dependents)

    logger.debug(
        "Closure graph: %d nodes, %d edges", len(graph), len(graph.weights)
    )
    return graph


def bfs_order(graph: PackageGraph, pkgname: str) -> list[str]:
    """Breadth-first walk from ``pkgname``; empty if it has no node."""
    start = graph.node(pkgname)
    if start is None:
        return []

    order: list[str] = []
    seen = {start}
    queue: deque[int] = deque([start])
    while queue:
        current = queue.popleft()
        order.append(graph.names[current])
        for successor in graph.successors(current):
            if successor not in seen:
                seen.add(successor)
                queue.append(successor)
    return order


def render_report(graph: PackageGraph, pkgnames: Sequence[str]) -> list[str]:
    """One space-separated line per seed, in seed order."""
    lines = []
    for pkgname in pkgnames:
        order = bfs_order(graph, pkgname)
        if not order:
            continue
        lines.append(" ".join(order))
    return lines
