"""
In-memory undirected graph.

Nodes map to adjacency sets. ``nodes()`` and ``edges()`` return live
iterators that raise ConcurrentModificationError if the graph is
structurally modified (node/edge added or removed) while they are being
consumed, so layout phases can detect a mutation from another thread and
restart instead of working on a torn view.
"""

import threading
from typing import Any, Dict, Iterable, Iterator, Optional, Set

from ..errors import ConcurrentModificationError
from .abstraction import EndpointPair


class Graph:
    """Undirected simple graph with self-loop support."""

    def __init__(self, nodes: Optional[Iterable[Any]] = None,
                 edges: Optional[Iterable[tuple]] = None):
        self._adjacency: Dict[Any, Set[Any]] = {}
        self._mod_count = 0
        self._lock = threading.Lock()

        for node in nodes or ():
            self.add_node(node)
        for u, v in edges or ():
            self.add_edge(u, v)

    # --- Mutation ---

    def add_node(self, node: Any) -> bool:
        """Add a node. Returns False if it was already present."""
        with self._lock:
            if node in self._adjacency:
                return False
            self._adjacency[node] = set()
            self._mod_count += 1
            return True

    def remove_node(self, node: Any) -> bool:
        """Remove a node and its incident edges."""
        with self._lock:
            neighbors = self._adjacency.pop(node, None)
            if neighbors is None:
                return False
            for other in neighbors:
                if other != node:
                    self._adjacency[other].discard(node)
            self._mod_count += 1
            return True

    def add_edge(self, u: Any, v: Any) -> bool:
        """Add an undirected edge, adding missing endpoints."""
        with self._lock:
            added = False
            for node in (u, v):
                if node not in self._adjacency:
                    self._adjacency[node] = set()
                    added = True
            if v not in self._adjacency[u]:
                self._adjacency[u].add(v)
                self._adjacency[v].add(u)
                added = True
            if added:
                self._mod_count += 1
            return added

    def remove_edge(self, u: Any, v: Any) -> bool:
        with self._lock:
            if u not in self._adjacency or v not in self._adjacency[u]:
                return False
            self._adjacency[u].discard(v)
            self._adjacency[v].discard(u)
            self._mod_count += 1
            return True

    # --- Queries ---

    def has_node(self, node: Any) -> bool:
        return node in self._adjacency

    def has_edge(self, u: Any, v: Any) -> bool:
        return u in self._adjacency and v in self._adjacency[u]

    def neighbors(self, node: Any) -> Set[Any]:
        """Return a copy of a node's neighbor set."""
        return set(self._adjacency.get(node, ()))

    def degree(self, node: Any) -> int:
        """Number of incident edges (a self-loop counts twice)."""
        neighbors = self._adjacency.get(node)
        if neighbors is None:
            return 0
        return len(neighbors) + (1 if node in neighbors else 0)

    def node_count(self) -> int:
        return len(self._adjacency)

    def edge_count(self) -> int:
        with self._lock:
            items = [(node, list(neighbors)) for node, neighbors in self._adjacency.items()]
        return sum(1 for _ in self._edge_pairs(items))

    @property
    def modification_count(self) -> int:
        """Counter bumped on every structural change."""
        return self._mod_count

    # --- Iteration ---

    def nodes(self) -> Iterator[Any]:
        """Iterate nodes, failing fast on concurrent structural change."""
        with self._lock:
            expected = self._mod_count
            snapshot = list(self._adjacency)
        for node in self._guarded(iter(snapshot), expected):
            yield node

    def edges(self) -> Iterator[EndpointPair]:
        """Iterate each undirected edge once, failing fast on change."""
        with self._lock:
            expected = self._mod_count
            items = [(node, list(neighbors)) for node, neighbors in self._adjacency.items()]
        for pair in self._guarded(self._edge_pairs(items), expected):
            yield pair

    def _guarded(self, iterator: Iterator[Any], expected: int) -> Iterator[Any]:
        for item in iterator:
            if self._mod_count != expected:
                raise ConcurrentModificationError(
                    "graph modified during iteration"
                )
            yield item
        if self._mod_count != expected:
            raise ConcurrentModificationError("graph modified during iteration")

    @staticmethod
    def _edge_pairs(items) -> Iterator[EndpointPair]:
        seen: Set[Any] = set()
        for node, neighbors in items:
            for other in neighbors:
                if other in seen:
                    continue
                yield EndpointPair(node, other)
            seen.add(node)

    def __contains__(self, node: Any) -> bool:
        return node in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def __repr__(self) -> str:
        return f"Graph(nodes={self.node_count()}, edges={self.edge_count()})"
