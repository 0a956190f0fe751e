"""
Force simulation.

This module provides:
- BarnesHutSimulation: Per-tick Barnes-Hut charge forces over host particles
- ForceBodyNode: Tree element wrapping one host particle
"""

from .barnes_hut import JIGGLE_THRESHOLD, BarnesHutSimulation, BoundsWarning, jiggle
from .body import ForceBodyNode

__all__ = [
    "BarnesHutSimulation",
    "BoundsWarning",
    "ForceBodyNode",
    "JIGGLE_THRESHOLD",
    "jiggle",
]
