"""
Spatial data structures for efficient force calculations.

Provides a dynamic quadtree for Barnes-Hut O(n log n) force approximation.
"""

from .quadtree import MAX_DEPTH, QuadNode, QuadTree

__all__ = ["MAX_DEPTH", "QuadNode", "QuadTree"]
