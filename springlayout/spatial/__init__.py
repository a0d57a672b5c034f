"""Spatial indexes for approximate force queries."""

from .quadtree import BarnesHutQuadTree, QuadTreeNode

__all__ = ["BarnesHutQuadTree", "QuadTreeNode"]
