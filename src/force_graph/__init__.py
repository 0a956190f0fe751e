"""
force-graph: Barnes-Hut charge simulation for force-directed graph layout.

This package computes approximate pairwise repulsion/attraction between a
dynamic set of host-owned particles and hands each particle its net force
once per tick.

Available components:
- types: Point/Vector/Rect primitives and the host particle protocol
- spatial: Dynamic region quadtree with aggregate centers and charges
- force: Barnes-Hut simulation and the particle adapter
"""

__version__ = "0.1.0"

# Base class for building simulations
from .base import IterativeSimulation

# Force simulation
from .force import BarnesHutSimulation, BoundsWarning, ForceBodyNode

# Spatial data structures
from .spatial import QuadNode, QuadTree

# Shared types
from .types import (
    Event,
    EventType,
    ForceBody,
    Particle,
    Point,
    PointLike,
    QuadTreeElement,
    Rect,
    RectLike,
    Vector,
)

# Validation utilities
from .validation import (
    DuplicateElementError,
    InvalidBoundsError,
    InvalidParameterError,
    OutOfBoundsError,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Point",
    "Vector",
    "Rect",
    "Particle",
    "ForceBody",
    "QuadTreeElement",
    "EventType",
    "Event",
    "PointLike",
    "RectLike",
    # Base classes
    "IterativeSimulation",
    # Force simulation
    "BarnesHutSimulation",
    "BoundsWarning",
    "ForceBodyNode",
    # Spatial data structures
    "QuadNode",
    "QuadTree",
    # Validation
    "ValidationError",
    "InvalidBoundsError",
    "InvalidParameterError",
    "OutOfBoundsError",
    "DuplicateElementError",
]
