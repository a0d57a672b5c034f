"""
Layout Model

Holds node positions inside a width x height rectangle, plus the set of
locked (pinned) nodes. A renderer may read positions from another thread
while a layout algorithm writes them; both sides take ``lock`` when they
need a consistent view of the whole layout.
"""

import logging
import random
import threading
from typing import Any, Dict, Iterable, Optional, Set

from .abstraction import GraphView, Point

logger = logging.getLogger(__name__)


class LayoutModel:
    """
    Position store for a graph layout.

    Positions are clamped to ``[0, width] x [0, height]`` on write. Writes to
    locked nodes are ignored so that pinned nodes keep their place no
    matter which algorithm is driving the layout.
    """

    def __init__(self, width: float, height: float,
                 graph: Optional[GraphView] = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"Layout size must be positive, got {width}x{height}")
        self._width = width
        self._height = height
        self.graph = graph
        self._positions: Dict[Any, Point] = {}
        self._locked: Set[Any] = set()
        self.lock = threading.RLock()

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    # --- Positions ---

    def get(self, node: Any) -> Optional[Point]:
        """Current position of a node, or None if it has not been placed."""
        return self._positions.get(node)

    def set(self, node: Any, x: float, y: float) -> None:
        """Place a node, clamping to the layout bounds.

        Locked nodes are left where they are. A node locked before it has a
        position still takes its first placement.
        """
        with self.lock:
            if node in self._locked and node in self._positions:
                return
            self._positions[node] = Point(
                min(max(x, 0.0), self._width),
                min(max(y, 0.0), self._height),
            )

    def remove(self, node: Any) -> Optional[Point]:
        """Forget a node's position and lock."""
        with self.lock:
            self._locked.discard(node)
            return self._positions.pop(node, None)

    def snapshot(self) -> Dict[Any, Point]:
        """Copy of all positions taken under the lock."""
        with self.lock:
            return dict(self._positions)

    def place_random(self, nodes: Iterable[Any], seed: Optional[int] = None,
                     overwrite: bool = False) -> int:
        """Scatter nodes uniformly over the layout area.

        Nodes that already have a position are kept unless ``overwrite``.
        Returns the number of nodes placed.
        """
        rng = random.Random(seed)
        placed = 0
        with self.lock:
            for node in nodes:
                if node in self._positions and not overwrite:
                    continue
                if node in self._locked and node in self._positions:
                    continue
                self._positions[node] = Point(
                    rng.uniform(0.0, self._width),
                    rng.uniform(0.0, self._height),
                )
                placed += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Randomly placed %d nodes in %sx%s", placed,
                         self._width, self._height)
        return placed

    # --- Locking ---

    def lock_node(self, node: Any) -> None:
        """Pin a node at its current position."""
        with self.lock:
            self._locked.add(node)

    def unlock_node(self, node: Any) -> None:
        with self.lock:
            self._locked.discard(node)

    def is_locked(self, node: Any) -> bool:
        return node in self._locked

    def locked_nodes(self) -> Set[Any]:
        with self.lock:
            return set(self._locked)

    def __contains__(self, node: Any) -> bool:
        return node in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __repr__(self) -> str:
        return (f"LayoutModel(width={self._width}, height={self._height}, "
                f"nodes={len(self._positions)}, locked={len(self._locked)})")
