"""
Shared test fixtures for springlayout tests.

Provides reusable graphs, layout models and algorithm configurations.
"""

import random

import pytest

from springlayout.errors import ConcurrentModificationError
from springlayout.layout.graph import Graph
from springlayout.layout.model import LayoutModel
from springlayout.layout.spring_bh import SpringBHConfig, SpringBHLayoutAlgorithm


@pytest.fixture
def edge_graph() -> Graph:
    """Two nodes joined by a single edge."""
    return Graph(edges=[("a", "b")])


@pytest.fixture
def far_apart_model(edge_graph) -> LayoutModel:
    """The single edge stretched to 100 units (rest length is 30)."""
    model = LayoutModel(200, 100, graph=edge_graph)
    model.set("a", 10.0, 50.0)
    model.set("b", 110.0, 50.0)
    return model


@pytest.fixture
def no_repulsion_config() -> SpringBHConfig:
    """Configuration with repulsion switched off."""
    return SpringBHConfig(repulsion_range=0, seed=7)


@pytest.fixture
def ring_graph() -> Graph:
    """A cycle of ten nodes."""
    return Graph(edges=[(i, (i + 1) % 10) for i in range(10)])


@pytest.fixture
def random_graph() -> Graph:
    """A fixed pseudo-random graph of 30 nodes."""
    rng = random.Random(1234)
    graph = Graph(nodes=range(30))
    for _ in range(45):
        u, v = rng.randrange(30), rng.randrange(30)
        if u != v:
            graph.add_edge(u, v)
    return graph


@pytest.fixture
def random_model(random_graph) -> LayoutModel:
    """The random graph scattered over a 300x200 area."""
    model = LayoutModel(300, 200, graph=random_graph)
    model.place_random(random_graph.nodes(), seed=99)
    return model


@pytest.fixture
def make_algorithm():
    """Factory attaching a seeded algorithm to a model."""
    def _make(model, config=None, graph=None):
        algorithm = SpringBHLayoutAlgorithm(config or SpringBHConfig(seed=42))
        algorithm.attach(model, graph)
        return algorithm
    return _make


class FlakyGraph:
    """Graph view whose iterators fail a set number of times.

    Each failing iteration yields its first item and then raises
    ConcurrentModificationError, as if another thread had changed the graph
    half way through.
    """

    def __init__(self, graph: Graph, node_failures: int = 0, edge_failures: int = 0):
        self.graph = graph
        self.node_failures = node_failures
        self.edge_failures = edge_failures
        self.node_iterations = 0
        self.edge_iterations = 0

    def nodes(self):
        self.node_iterations += 1
        if self.node_failures > 0:
            self.node_failures -= 1
            return self._fail_after_first(self.graph.nodes())
        return self.graph.nodes()

    def edges(self):
        self.edge_iterations += 1
        if self.edge_failures > 0:
            self.edge_failures -= 1
            return self._fail_after_first(self.graph.edges())
        return self.graph.edges()

    def degree(self, node):
        return self.graph.degree(node)

    @staticmethod
    def _fail_after_first(iterator):
        for item in iterator:
            yield item
            break
        raise ConcurrentModificationError("simulated concurrent change")


@pytest.fixture
def flaky_graph_factory():
    return FlakyGraph
