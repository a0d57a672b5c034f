"""Barnes-Hut quadtree for approximate n-body queries.

Every cell tracks the total mass and centre of mass of the nodes below it.
A query walks the tree from the root and, for a cell whose side length
divided by its distance to the query point is below ``theta``, reports the
whole cell as one aggregated force object instead of descending into it.
This turns an all-pairs repulsion pass from O(N^2) into O(N log N).

Coincident nodes share a leaf bucket, and subdivision stops at
``MAX_DEPTH``, so insertion terminates for any input.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping, Optional

from ..layout.abstraction import ForceObject, Point

logger = logging.getLogger(__name__)

MAX_DEPTH = 32


@dataclass
class QuadTreeNode:
    """A square cell of the quadtree.

    Leaves hold their bodies directly; internal cells hold four children
    ordered NW, NE, SW, SE (y grows downwards, as in screen space).
    """
    x: float  # min corner
    y: float
    size: float
    depth: int = 0
    mass: float = 0.0
    com_x: float = 0.0
    com_y: float = 0.0
    bodies: List[ForceObject] = field(default_factory=list)
    children: Optional[List['QuadTreeNode']] = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    @property
    def center_of_mass(self) -> Point:
        return Point(self.com_x, self.com_y)

    def contains(self, point: Point) -> bool:
        return (self.x <= point.x <= self.x + self.size and
                self.y <= point.y <= self.y + self.size)

    def insert(self, body: ForceObject):
        """Insert a body, subdividing occupied leaves as needed."""
        total = self.mass + body.mass
        if total > 0:
            self.com_x = (self.com_x * self.mass + body.point.x * body.mass) / total
            self.com_y = (self.com_y * self.mass + body.point.y * body.mass) / total
        self.mass = total

        if self.children is None:
            if (not self.bodies
                    or self.depth >= MAX_DEPTH
                    or self.bodies[0].point == body.point):
                self.bodies.append(body)
                return
            self._subdivide()

        self._child_for(body.point).insert(body)

    def _subdivide(self):
        half = self.size / 2
        depth = self.depth + 1
        self.children = [
            QuadTreeNode(self.x, self.y, half, depth),
            QuadTreeNode(self.x + half, self.y, half, depth),
            QuadTreeNode(self.x, self.y + half, half, depth),
            QuadTreeNode(self.x + half, self.y + half, half, depth),
        ]
        # Mass already accounted for at this level; push bodies down.
        bodies, self.bodies = self.bodies, []
        for body in bodies:
            self._child_for(body.point).insert(body)

    def _child_for(self, point: Point) -> 'QuadTreeNode':
        half = self.size / 2
        index = 0
        if point.x >= self.x + half:
            index += 1
        if point.y >= self.y + half:
            index += 2
        return self.children[index]


class BarnesHutQuadTree:
    """
    Spatial index over a layout model's positions.

    The tree reflects the positions captured by the last ``rebuild()`` (or
    ``build()``); it does not follow later moves.
    """

    def __init__(self, layout_model=None, theta: float = 0.5):
        if theta <= 0:
            raise ValueError(f"theta must be positive, got {theta}")
        self.layout_model = layout_model
        self.theta = theta
        self.root: Optional[QuadTreeNode] = None
        self._size = 0

    def rebuild(self):
        """Rebuild from the layout model's current positions."""
        if self.layout_model is None:
            raise ValueError("No layout model to rebuild from")
        self.build(self.layout_model.snapshot())

    def build(self, positions: Mapping[Any, Point]):
        """Build the tree from a node -> position mapping."""
        self.clear()
        if not positions:
            return

        min_x = min(p.x for p in positions.values())
        min_y = min(p.y for p in positions.values())
        max_x = max(p.x for p in positions.values())
        max_y = max(p.y for p in positions.values())
        if self.layout_model is not None:
            min_x = min(min_x, 0.0)
            min_y = min(min_y, 0.0)
            max_x = max(max_x, self.layout_model.width)
            max_y = max(max_y, self.layout_model.height)
        # Square root cell so the theta ratio means the same on both axes
        size = max(max_x - min_x, max_y - min_y, 1.0)

        self.root = QuadTreeNode(min_x, min_y, size)
        for node, point in positions.items():
            self.root.insert(ForceObject(node, point))
            self._size += 1

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Built quadtree: bodies=%d size=%.1f depth=%d theta=%.2f",
                self._size, size, self.depth(), self.theta,
            )

    def clear(self):
        self.root = None
        self._size = 0

    def approximate_force_query(self, point: Point) -> Iterator[ForceObject]:
        """Yield force objects approximating every body as seen from ``point``.

        Leaf bodies are yielded individually (including a body at ``point``
        itself; callers skip their own node). A cell containing ``point`` is
        always opened, whatever ``theta`` is.
        """
        if self.root is None:
            return
        stack = [self.root]
        while stack:
            cell = stack.pop()
            if cell.mass <= 0:
                continue
            if cell.is_leaf:
                for body in cell.bodies:
                    yield body
                continue

            dx = cell.com_x - point.x
            dy = cell.com_y - point.y
            distance = math.sqrt(dx * dx + dy * dy)
            if (distance > 0 and not cell.contains(point)
                    and cell.size / distance < self.theta):
                yield ForceObject(None, cell.center_of_mass, cell.mass)
            else:
                stack.extend(reversed(cell.children))

    def depth(self) -> int:
        """Depth of the deepest cell (0 for a single-leaf tree)."""
        if self.root is None:
            return 0
        deepest = 0
        stack = [self.root]
        while stack:
            cell = stack.pop()
            deepest = max(deepest, cell.depth)
            if cell.children:
                stack.extend(cell.children)
        return deepest

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"BarnesHutQuadTree(bodies={self._size}, theta={self.theta})"
