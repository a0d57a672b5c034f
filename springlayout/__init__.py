"""
springlayout - Incremental spring layout for graphs

Positions graph nodes in 2-D by simulating springs along edges and
Barnes-Hut approximated repulsion between nodes, one bounded step at a
time, so a renderer can animate the layout while it settles.
"""

__version__ = "0.1.0"
__author__ = "springlayout Team"

from .errors import (
    SpringLayoutError,
    ConcurrentModificationError,
    LayoutNotAttachedError,
    ConfigError,
)
from .layout import (
    Point,
    EndpointPair,
    Graph,
    LayoutModel,
    SpringBHConfig,
    SpringBHLayoutAlgorithm,
    LayoutRunner,
    relax,
)
from .spatial import BarnesHutQuadTree
from .settings import load_config, default_config

__all__ = [
    "SpringLayoutError",
    "ConcurrentModificationError",
    "LayoutNotAttachedError",
    "ConfigError",
    "Point",
    "EndpointPair",
    "Graph",
    "LayoutModel",
    "SpringBHConfig",
    "SpringBHLayoutAlgorithm",
    "LayoutRunner",
    "relax",
    "BarnesHutQuadTree",
    "load_config",
    "default_config",
]
