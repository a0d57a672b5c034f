"""
Layout Abstraction Layer

Defines the value types and collaborator interfaces the layout algorithms
work against. The force computation never touches a concrete graph,
position store or spatial index; anything satisfying these protocols can be
attached, which keeps the engine independent of how graphs are stored and
how layouts are rendered.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Hashable, Iterator, NamedTuple, Optional, Protocol


Node = Hashable


@dataclass(frozen=True)
class Point:
    """A 2-D position in layout coordinates."""
    x: float
    y: float

    def distance_squared(self, other: 'Point') -> float:
        """Squared Euclidean distance to another point."""
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def distance(self, other: 'Point') -> float:
        return math.sqrt(self.distance_squared(other))


class EndpointPair(NamedTuple):
    """An undirected edge between two nodes."""
    u: Any
    v: Any


@dataclass(frozen=True)
class ForceObject:
    """A spatial index query result.

    Represents either a single node (``element`` set, ``mass`` 1) or an
    aggregated region of the index (``element`` is None, ``point`` is the
    region's centre of mass and ``mass`` the number of nodes it stands for).
    """
    element: Optional[Any]
    point: Point
    mass: float = 1.0


class GraphView(Protocol):
    """Read access to a graph's structure."""

    def nodes(self) -> Iterator[Any]:
        ...

    def edges(self) -> Iterator[EndpointPair]:
        ...

    def degree(self, node: Any) -> int:
        ...


class PositionStore(Protocol):
    """Node positions bounded by a width/height rectangle.

    ``lock`` must be held by anyone who needs to see (or write) a consistent
    set of positions.
    """

    lock: Any

    @property
    def width(self) -> float:
        ...

    @property
    def height(self) -> float:
        ...

    def get(self, node: Any) -> Optional[Point]:
        ...

    def set(self, node: Any, x: float, y: float) -> None:
        ...

    def is_locked(self, node: Any) -> bool:
        ...


class SpatialIndex(Protocol):
    """Approximate n-body query structure built from a position snapshot."""

    def rebuild(self) -> None:
        ...

    def approximate_force_query(self, point: Point) -> Iterator[ForceObject]:
        ...


class IterativeContext(ABC):
    """A process that advances in discrete steps until ``done()``."""

    @abstractmethod
    def step(self) -> None:
        """Advance one unit of work."""

    @abstractmethod
    def done(self) -> bool:
        """Whether the process has finished."""


class IterativeProcess(IterativeContext):
    """An iterative context with the lifecycle hooks drivers rely on."""

    def initialize(self) -> None:
        """Prepare for the first step."""

    def is_incremental(self) -> bool:
        """Whether each ``step()`` is a bounded unit rather than a full solve."""
        return True

    def reset(self) -> None:
        """Discard progress so the process can be run again."""
