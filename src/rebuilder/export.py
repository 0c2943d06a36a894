from __future__ import annotations

import logging
from pathlib import Path

import pydot

from rebuilder.graph import PackageGraph

logger = logging.getLogger(__name__)


def to_dot(graph: PackageGraph) -> str:
    """Render ``graph`` as a Graphviz digraph.

    Vertices are node handles labelled with the package name. Edges carry
    neither a label nor the weight.
    """
    dot = pydot.Dot(graph_type="digraph")
    for handle, name in enumerate(graph.names):
        dot.add_node(pydot.Node(str(handle), label=f'"{name}"'))
    for source, target in graph.edges():
        dot.add_edge(pydot.Edge(str(source), str(target)))
    return dot.to_string()


def write_dot(graph: PackageGraph, path: Path) -> None:
    """Write the DOT rendering of ``graph`` to ``path``, replacing any file there.

    Raises:
        OSError: If the file cannot be created or written.
    """
    path = Path(path)
    path.write_text(to_dot(graph), encoding="utf-8")
    logger.debug("Wrote dot graph with %d nodes to %s", len(graph), path)
