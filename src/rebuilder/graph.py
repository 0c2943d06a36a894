from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

# Edges only record that a rebuild propagates; the weight carries no meaning.
EDGE_WEIGHT = 1


@dataclass
class PackageGraph:
    """Directed graph of packages, stored as an arena of integer handles.

    ``names[h]`` is the package for handle ``h``. An edge ``a -> b`` means
    ``b`` depends on ``a`` and has to be rebuilt when ``a`` changes. At most
    one edge exists per ordered pair.
    """

    names: list[str] = field(default_factory=list)
    handles: dict[str, int] = field(default_factory=dict)
    adjacency: list[list[int]] = field(default_factory=list)
    weights: dict[tuple[int, int], int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.handles

    def node(self, name: str) -> int | None:
        return self.handles.get(name)

    def ensure_node(self, name: str) -> int:
        """Return the handle for ``name``, creating the node on first use."""
        handle = self.handles.get(name)
        if handle is None:
            handle = len(self.names)
            self.names.append(name)
            self.adjacency.append([])
            self.handles[name] = handle
        return handle

    def has_edge(self, source: int, target: int) -> bool:
        return (source, target) in self.weights

    def add_edge(self, source: int, target: int, weight: int = EDGE_WEIGHT) -> bool:
        """Add ``source -> target``. Returns False if the edge already existed."""
        if self.has_edge(source, target):
            return False
        self.weights[(source, target)] = weight
        self.adjacency[source].append(target)
        return True

    def successors(self, handle: int) -> list[int]:
        """Targets of ``handle``'s outgoing edges, in insertion order."""
        return self.adjacency[handle]

    def edges(self) -> Iterator[tuple[int, int]]:
        for source, targets in enumerate(self.adjacency):
            for target in targets:
                yield source, target
