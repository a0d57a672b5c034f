"""
Spring Layout with Barnes-Hut Repulsion

Iterative force-directed layout. Each ``step()`` moves every unlocked node
a bounded distance under two forces:

- Spring (edge) forces pull connected nodes toward a desired edge length.
  Pull through busy nodes is damped by ``stretch ** (deg(u) + deg(v) - 2)``.
- Repulsion pushes every unlocked node away from the others. The other
  nodes are read from a Barnes-Hut spatial index, so far-away clusters are
  treated as a single body.

A step runs four phases in order: velocity decay, edge relaxation,
repulsion, and integration. Only the last phase writes positions, and it
does so holding the layout model's lock so a renderer never sees half of a
step. The algorithm never decides it is finished; whoever drives it chooses
when to stop calling ``step()``.
"""

import logging
import math
import random
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import ConcurrentModificationError, ConfigError, LayoutNotAttachedError
from .abstraction import (
    EndpointPair,
    GraphView,
    IterativeProcess,
    PositionStore,
    SpatialIndex,
)

logger = logging.getLogger(__name__)

DEFAULT_EDGE_LENGTH = 30.0

# Substituted for a zero edge length to keep the spring force finite
ZERO_LENGTH = 0.0001

LengthFunction = Callable[[EndpointPair], float]
IndexFactory = Callable[[PositionStore], SpatialIndex]


def constant_length(length: float) -> LengthFunction:
    """Length function giving every edge the same rest length."""
    def _length(endpoints: EndpointPair) -> float:
        return length
    return _length


@dataclass
class SpringBHConfig:
    """Configuration for the spring/Barnes-Hut layout."""
    # Spring forces
    stretch: float = 0.70  # Per-degree damping base for edge pull
    force_multiplier: float = 1.0 / 3.0
    edge_length: float = DEFAULT_EDGE_LENGTH
    length_function: Optional[LengthFunction] = None  # Overrides edge_length when set

    # Repulsion
    repulsion_range: int = 100  # No repulsion beyond this distance
    theta: float = 0.5  # Barnes-Hut opening criterion (size / distance)
    jitter: float = 1.0  # Max per-axis offset for coincident nodes
    seed: Optional[int] = None  # Jitter RNG seed; None = nondeterministic

    # Integration
    velocity_decay: float = 0.25  # Velocity multiplier at the start of each step
    max_speed: float = 5.0  # Max per-axis displacement per step

    # Concurrent graph mutation
    max_phase_retries: int = 16

    def __post_init__(self):
        if self.stretch <= 0:
            raise ConfigError(f"stretch must be positive, got {self.stretch}")
        if self.repulsion_range < 0:
            raise ConfigError(
                f"repulsion_range must be non-negative, got {self.repulsion_range}"
            )
        if self.theta <= 0:
            raise ConfigError(f"theta must be positive, got {self.theta}")
        if self.jitter < 0:
            raise ConfigError(f"jitter must be non-negative, got {self.jitter}")
        if not 0.0 <= self.velocity_decay <= 1.0:
            raise ConfigError(
                f"velocity_decay must be within [0, 1], got {self.velocity_decay}"
            )
        if self.max_speed <= 0:
            raise ConfigError(f"max_speed must be positive, got {self.max_speed}")
        if self.max_phase_retries < 0:
            raise ConfigError(
                f"max_phase_retries must be non-negative, got {self.max_phase_retries}"
            )

    @property
    def repulsion_range_sq(self) -> int:
        return self.repulsion_range * self.repulsion_range

    def edge_length_for(self, endpoints: EndpointPair) -> float:
        """Rest length of an edge, read from the current settings."""
        if self.length_function is not None:
            return self.length_function(endpoints)
        return self.edge_length


@dataclass
class ForceState:
    """Per-node simulation state.

    ``dx``/``dy`` is a velocity that decays every step and carries over
    between steps. The edge and repulsion accumulators only hold the
    current step's contribution.
    """
    dx: float = 0.0
    dy: float = 0.0
    edgedx: float = 0.0
    edgedy: float = 0.0
    repulsiondx: float = 0.0
    repulsiondy: float = 0.0

    def decay(self, factor: float):
        """Damp the velocity and clear this step's accumulators."""
        self.dx *= factor
        self.dy *= factor
        self.edgedx = self.edgedy = 0.0
        self.repulsiondx = self.repulsiondy = 0.0


class ForceStateTable:
    """Node -> ForceState mapping with thread-safe lazy creation."""

    def __init__(self):
        self._states: Dict[Any, ForceState] = {}
        self._lock = threading.Lock()

    def get(self, node: Any) -> Optional[ForceState]:
        """Existing state for a node, or None if it was never referenced."""
        return self._states.get(node)

    def get_or_create(self, node: Any) -> ForceState:
        state = self._states.get(node)
        if state is None:
            with self._lock:
                state = self._states.setdefault(node, ForceState())
        return state

    def clear(self):
        with self._lock:
            self._states.clear()

    def items(self) -> List[Tuple[Any, ForceState]]:
        with self._lock:
            return list(self._states.items())

    def __contains__(self, node: Any) -> bool:
        return node in self._states

    def __len__(self) -> int:
        return len(self._states)


class SpringBHLayoutAlgorithm(IterativeProcess):
    """
    Incremental spring layout with Barnes-Hut repulsion.

    Usage:
        algorithm = SpringBHLayoutAlgorithm()
        algorithm.attach(layout_model, graph)
        for _ in range(200):
            algorithm.step()

    The spatial index is built once in ``attach()`` and is not rebuilt by
    ``step()``: repulsion during a run is computed against the positions
    captured at attach time. Call ``attach()`` again to refresh it.
    """

    def __init__(
        self,
        config: Optional[SpringBHConfig] = None,
        index_factory: Optional[IndexFactory] = None,
    ):
        self.config = config or SpringBHConfig()
        self._index_factory = index_factory or self._default_index_factory
        self._states = ForceStateTable()
        self._random = random.Random(self.config.seed)

        self._layout_model: Optional[PositionStore] = None
        self._graph: Optional[GraphView] = None
        self._index: Optional[SpatialIndex] = None
        self._step_count = 0

    def _default_index_factory(self, layout_model: PositionStore) -> SpatialIndex:
        from ..spatial.quadtree import BarnesHutQuadTree
        return BarnesHutQuadTree(layout_model, theta=self.config.theta)

    # --- Configuration accessors ---

    @property
    def stretch(self) -> float:
        return self.config.stretch

    @stretch.setter
    def stretch(self, value: float):
        if value <= 0:
            raise ConfigError(f"stretch must be positive, got {value}")
        self.config.stretch = value

    @property
    def repulsion_range(self) -> int:
        return self.config.repulsion_range

    @repulsion_range.setter
    def repulsion_range(self, value: int):
        if value < 0:
            raise ConfigError(f"repulsion_range must be non-negative, got {value}")
        self.config.repulsion_range = value

    @property
    def force_multiplier(self) -> float:
        return self.config.force_multiplier

    @force_multiplier.setter
    def force_multiplier(self, value: float):
        self.config.force_multiplier = value

    @property
    def length_function(self) -> LengthFunction:
        if self.config.length_function is not None:
            return self.config.length_function
        return constant_length(self.config.edge_length)

    @length_function.setter
    def length_function(self, function: LengthFunction):
        self.config.length_function = function

    # --- State ---

    @property
    def layout_model(self) -> Optional[PositionStore]:
        return self._layout_model

    @property
    def graph(self) -> Optional[GraphView]:
        return self._graph

    @property
    def spatial_index(self) -> Optional[SpatialIndex]:
        return self._index

    @property
    def force_states(self) -> ForceStateTable:
        return self._states

    @property
    def step_count(self) -> int:
        return self._step_count

    # --- Lifecycle ---

    def attach(self, layout_model: PositionStore,
               graph: Optional[GraphView] = None):
        """Bind to a layout model and graph and build the spatial index."""
        if graph is None:
            graph = getattr(layout_model, "graph", None)
        if graph is None:
            raise ValueError("No graph given and the layout model carries none")

        self._layout_model = layout_model
        self._graph = graph
        self._index = self._index_factory(layout_model)
        self._index.rebuild()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Attached spring layout: size=%sx%s stretch=%.2f repulsion_range=%d "
                "force_multiplier=%.3f theta=%.2f",
                layout_model.width,
                layout_model.height,
                self.config.stretch,
                self.config.repulsion_range,
                self.config.force_multiplier,
                self.config.theta,
            )

    def initialize(self):
        """No-op; all setup happens in ``attach()``."""

    def is_incremental(self) -> bool:
        return True

    def done(self) -> bool:
        """Always False: the layout has no convergence criterion."""
        return False

    def reset(self):
        """No-op; force states persist and decay on their own."""

    def step(self):
        """Advance the simulation by one time step."""
        if self._layout_model is None or self._graph is None or self._index is None:
            raise LayoutNotAttachedError("attach() must be called before step()")

        self._run_phase("decay", self._decay)
        self._run_phase("edge relaxation", self._relax_edges)
        self._run_phase("repulsion", self._calculate_repulsion)
        self._run_phase("integration", self._move_nodes)
        self._step_count += 1

        if logger.isEnabledFor(logging.DEBUG) and self._step_count % 10 == 0:
            max_speed = 0.0
            for _, state in self._states.items():
                max_speed = max(max_speed, math.sqrt(state.dx * state.dx + state.dy * state.dy))
            logger.debug(
                "Step %d: states=%d max_velocity=%.4f",
                self._step_count, len(self._states), max_speed,
            )

    def _run_phase(self, name: str, phase: Callable[[], None]) -> bool:
        """Run a phase, restarting it if the graph changes underneath it.

        Phases collect their results before writing anything, so a restart
        never applies a partial pass twice. Gives up on the phase for this
        step after ``max_phase_retries`` restarts.
        """
        attempts = self.config.max_phase_retries + 1
        for attempt in range(attempts):
            try:
                phase()
                return True
            except ConcurrentModificationError:
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug("Graph modified during %s (attempt %d/%d), restarting",
                                 name, attempt + 1, attempts)
        logger.warning(
            "Skipped %s phase of step %d: graph kept changing across %d attempts",
            name, self._step_count + 1, attempts,
        )
        return False

    # --- Phases ---

    def _decay(self):
        # State table only; never touches the graph iterators
        factor = self.config.velocity_decay
        for _, state in self._states.items():
            state.decay(factor)

    def _relax_edges(self):
        graph = self._graph
        model = self._layout_model
        multiplier = self.config.force_multiplier
        stretch = self.config.stretch

        pulls: Dict[Any, List[float]] = {}
        for endpoints in graph.edges():
            node1, node2 = endpoints
            p1 = model.get(node1)
            p2 = model.get(node2)
            if p1 is None or p2 is None:
                continue

            vx = p1.x - p2.x
            vy = p1.y - p2.y
            length = math.sqrt(vx * vx + vy * vy)
            desired_length = self.config.edge_length_for(endpoints)

            if length == 0:
                length = ZERO_LENGTH

            f = multiplier * (desired_length - length) / length
            f = f * math.pow(stretch, graph.degree(node1) + graph.degree(node2) - 2)

            # Movement is the force times the distance still to go
            dx = f * vx
            dy = f * vy

            pull1 = pulls.setdefault(node1, [0.0, 0.0])
            pull1[0] += dx
            pull1[1] += dy
            pull2 = pulls.setdefault(node2, [0.0, 0.0])
            pull2[0] -= dx
            pull2[1] -= dy

        for node, (dx, dy) in pulls.items():
            state = self._states.get_or_create(node)
            state.edgedx += dx
            state.edgedy += dy

    def _calculate_repulsion(self):
        model = self._layout_model
        range_sq = self.config.repulsion_range_sq

        pushes: Dict[Any, Tuple[float, float]] = {}
        for node in self._graph.nodes():
            if model.is_locked(node):
                continue
            p = model.get(node)
            if p is None:
                continue

            dx = dy = 0.0
            for force_object in self._index.approximate_force_query(p):
                if force_object.element is not None and force_object.element == node:
                    continue
                p2 = force_object.point
                vx = p.x - p2.x
                vy = p.y - p2.y
                distance_sq = p.distance_squared(p2)
                if distance_sq == 0:
                    dx += self._jitter()
                    dy += self._jitter()
                elif distance_sq < range_sq:
                    dx += vx / distance_sq
                    dy += vy / distance_sq

            dlen = dx * dx + dy * dy
            if dlen > 0:
                dlen = math.sqrt(dlen) / 2
                pushes[node] = (dx / dlen, dy / dlen)

        for node, (dx, dy) in pushes.items():
            state = self._states.get_or_create(node)
            state.repulsiondx += dx
            state.repulsiondy += dy

    def _move_nodes(self):
        model = self._layout_model
        max_speed = self.config.max_speed

        with model.lock:
            width = model.width
            height = model.height

            moves = []
            for node in self._graph.nodes():
                if model.is_locked(node):
                    continue
                position = model.get(node)
                if position is None:
                    continue
                state = self._states.get_or_create(node)

                vdx = state.dx + state.repulsiondx + state.edgedx
                vdy = state.dy + state.repulsiondy + state.edgedy

                # Cap the displacement, not the stored velocity
                x = position.x + max(-max_speed, min(max_speed, vdx))
                y = position.y + max(-max_speed, min(max_speed, vdy))

                x = min(max(x, 0.0), width)
                y = min(max(y, 0.0), height)
                moves.append((node, state, vdx, vdy, x, y))

            for node, state, vdx, vdy, x, y in moves:
                state.dx = vdx
                state.dy = vdy
                model.set(node, x, y)

    def _jitter(self) -> float:
        return self._random.uniform(-self.config.jitter, self.config.jitter)

