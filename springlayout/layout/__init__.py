"""Layout engine: graph and position store, spring/Barnes-Hut algorithm, drivers."""

from .abstraction import (
    Point,
    EndpointPair,
    ForceObject,
    GraphView,
    PositionStore,
    SpatialIndex,
    IterativeContext,
    IterativeProcess,
)
from .graph import Graph
from .model import LayoutModel
from .spring_bh import (
    SpringBHConfig,
    SpringBHLayoutAlgorithm,
    ForceState,
    ForceStateTable,
    constant_length,
)
from .runner import LayoutRunner, relax

__all__ = [
    "Point",
    "EndpointPair",
    "ForceObject",
    "GraphView",
    "PositionStore",
    "SpatialIndex",
    "IterativeContext",
    "IterativeProcess",
    "Graph",
    "LayoutModel",
    "SpringBHConfig",
    "SpringBHLayoutAlgorithm",
    "ForceState",
    "ForceStateTable",
    "constant_length",
    "LayoutRunner",
    "relax",
]
