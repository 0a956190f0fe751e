"""
Barnes-Hut force simulation over host-owned particles.

Each tick the simulation:
1. Recomputes the quadtree aggregates from current particle positions
2. Accumulates the net force on every particle, approximating distant
   regions (size / distance <= theta) as a single charge at their center
3. Adds an optional constant pull toward a clustering center
4. Hands every force to its particle (the host moves it)
5. Moves particles that left their leaf's region to the correct leaf

Forces follow an inverse-square law: same-sign charges repel, opposite
signs attract. The host owns positions and motion; this module never writes
a position.
"""

from __future__ import annotations

import math
import warnings
from typing import Iterator, Optional, Sequence

import numpy as np

from ..base import IterativeSimulation
from ..spatial.quadtree import QuadNode, QuadTree
from ..types import EventCallback, EventType, ForceBody, Point, PointLike, Rect, RectLike, Vector
from ..validation import (
    validate_bounds,
    validate_center,
    validate_centering_strength,
    validate_distance_range,
    validate_jiggle_threshold,
    validate_theta,
)
from .body import ForceBodyNode

# Displacements with both components within this distance of zero are
# jiggled before their direction is taken.
JIGGLE_THRESHOLD = 0.1


class BoundsWarning(UserWarning):
    """Warning issued when particles leave the simulation bounds."""

    pass


def jiggle(displacement: Vector, rng: np.random.Generator) -> Vector:
    """
    Push a near-zero displacement apart by a random offset.

    Each component grows away from zero by a uniform amount in [0, 1),
    keeping its sign (zero counts as positive).
    """
    ox, oy = rng.random(2)
    return Vector(
        displacement.dx - ox if displacement.dx < 0.0 else displacement.dx + ox,
        displacement.dy - oy if displacement.dy < 0.0 else displacement.dy + oy,
    )


def _axis_pull(delta: float, pull: float) -> float:
    """Constant pull of size `pull` toward delta's sign; none for 0 or non-finite."""
    if not math.isfinite(delta) or delta == 0.0:
        return 0.0
    return math.copysign(pull, delta)


class BarnesHutSimulation(IterativeSimulation):
    """
    Approximate n-body charge simulation for force-directed layout.

    The theta parameter controls the accuracy/speed tradeoff:
    - small theta (-> 0): nearly exact, every region is expanded
    - theta = 0.5: good balance (default)
    - theta = 1.0+: fast but less accurate

    Example:
        particles = [Particle(100, 100), Particle(200, 150, charge=-1)]
        sim = BarnesHutSimulation(
            bounds=(0, 0, 800, 600),
            bodies=particles,
            theta=0.5,
            center=(400, 300),
        )
        sim.update()

        for particle in sim:
            print(particle.position)
    """

    def __init__(
        self,
        *,
        bounds: RectLike,
        bodies: Sequence[ForceBody] = (),
        theta: float = 0.5,
        min_distance: float = 0.0,
        max_distance: float = math.inf,
        center: Optional[PointLike] = None,
        centering_strength: float = 0.0002,
        jiggle_threshold: float = JIGGLE_THRESHOLD,
        random_seed: Optional[int] = None,
        on_tick: Optional[EventCallback] = None,
        on_restructure: Optional[EventCallback] = None,
    ) -> None:
        """
        Initialize the simulation.

        Args:
            bounds: Region covered by the quadtree, (min_x, min_y, max_x, max_y)
            bodies: Host particles; every position must lie within bounds
            theta: Barnes-Hut threshold (> 0, smaller = more accurate)
            min_distance: Pairs closer than this exert no force
            max_distance: Pairs farther than this exert no force
            center: Clustering center; a non-finite coordinate disables that axis
            centering_strength: Strength of the constant pull toward center
            jiggle_threshold: Per-axis size below which a displacement is jiggled
            random_seed: Seed for the jiggle random generator
            on_tick: Callback for tick event
            on_restructure: Callback for restructure event

        Raises:
            InvalidBoundsError: If bounds are invalid
            InvalidParameterError: If a parameter is out of range
            OutOfBoundsError: If a body lies outside bounds
        """
        super().__init__(
            random_seed=random_seed,
            on_tick=on_tick,
            on_restructure=on_restructure,
        )

        self._theta: float = validate_theta(theta)
        self._min_distance, self._max_distance = validate_distance_range(
            min_distance, max_distance
        )
        self._center: Optional[Point] = validate_center(center)
        self._centering_strength: float = validate_centering_strength(centering_strength)
        self._jiggle_threshold: float = validate_jiggle_threshold(jiggle_threshold)

        self._nodes: list[ForceBodyNode] = [
            ForceBodyNode(i, body) for i, body in enumerate(bodies)
        ]
        self._tree: QuadTree[ForceBodyNode] = QuadTree(validate_bounds(bounds), self._nodes)
        self._expansions: np.ndarray = np.zeros(len(self._nodes), dtype=np.int64)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def bounds(self) -> Rect:
        """Region covered by the quadtree."""
        return self._tree.bounds

    @property
    def tree(self) -> QuadTree[ForceBodyNode]:
        return self._tree

    @property
    def theta(self) -> float:
        """Get Barnes-Hut theta parameter (accuracy)."""
        return self._theta

    @theta.setter
    def theta(self, value: float) -> None:
        self._theta = validate_theta(value)

    @property
    def min_distance(self) -> float:
        return self._min_distance

    @min_distance.setter
    def min_distance(self, value: float) -> None:
        self._min_distance, _ = validate_distance_range(value, self._max_distance)

    @property
    def max_distance(self) -> float:
        return self._max_distance

    @max_distance.setter
    def max_distance(self, value: float) -> None:
        _, self._max_distance = validate_distance_range(self._min_distance, value)

    @property
    def center(self) -> Optional[Point]:
        """Get clustering center (None = no centering pull)."""
        return self._center

    @center.setter
    def center(self, value: Optional[PointLike]) -> None:
        self._center = validate_center(value)

    @property
    def centering_strength(self) -> float:
        return self._centering_strength

    @centering_strength.setter
    def centering_strength(self, value: float) -> None:
        self._centering_strength = validate_centering_strength(value)

    @property
    def jiggle_threshold(self) -> float:
        return self._jiggle_threshold

    @jiggle_threshold.setter
    def jiggle_threshold(self, value: float) -> None:
        self._jiggle_threshold = validate_jiggle_threshold(value)

    @property
    def forces(self) -> np.ndarray:
        """Most recently accumulated forces as an (n, 2) array, by body index."""
        return np.array(
            [(node.force.dx, node.force.dy) for node in self._nodes], dtype=np.float64
        ).reshape(-1, 2)

    @property
    def last_expansions(self) -> np.ndarray:
        """Number of regions expanded per body during the last force pass."""
        return self._expansions.copy()

    def positions(self) -> np.ndarray:
        """Current host positions as an (n, 2) array, by body index."""
        return np.array(
            [(p.x, p.y) for p in (node.position for node in self._nodes)], dtype=np.float64
        ).reshape(-1, 2)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ForceBody]:
        """Host particles currently tracked, in tree order."""
        for node in self._tree:
            yield node.body

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    def update(self, elapsed: Optional[float] = None) -> None:
        """
        Advance the simulation by one tick.

        Args:
            elapsed: Time since the previous tick (unused by the force model)
        """
        self.compute_forces()

        bounds = self._tree.bounds
        restructure: list[ForceBodyNode] = []
        escaped = 0
        for node, leaf in self._tree.items():
            node.deliver()
            position = node.position
            if leaf.bounds.contains(position):
                continue
            if bounds.contains(position):
                restructure.append(node)
            else:
                escaped += 1

        if escaped:
            warnings.warn(
                f"{escaped} particle(s) left the simulation bounds {bounds}; "
                "they keep their current tree slot until they return.",
                BoundsWarning,
                stacklevel=2,
            )

        # Remove the whole batch before reinserting any of it
        for node in restructure:
            self._tree.remove(node)
        for node in restructure:
            self._tree.insert(node)

        if restructure:
            self.trigger(
                {
                    "type": EventType.restructure,
                    "tick": self._ticks,
                    "restructured": len(restructure),
                }
            )

        self._ticks += 1
        self.trigger(
            {
                "type": EventType.tick,
                "tick": self._ticks,
                "elapsed": elapsed,
                "restructured": len(restructure),
            }
        )

    def compute_forces(self) -> np.ndarray:
        """
        Accumulate the net force on every body without delivering it.

        Returns:
            (n, 2) array of forces, by body index
        """
        self._tree.recompute_aggregates()
        root = self._tree.root

        for node in self._nodes:
            node.reset()
            position = node.position
            self._expansions[node.index] = self._accumulate(node, position, node.charge, root)

            if self._center is not None:
                delta = self._center - position
                pull = 0.5 * self._centering_strength
                node.add(Vector(_axis_pull(delta.dx, pull), _axis_pull(delta.dy, pull)))

        return self.forces

    def _accumulate(
        self,
        body: ForceBodyNode,
        position: Point,
        charge: float,
        quad: QuadNode[ForceBodyNode],
    ) -> int:
        """
        Add the force exerted by the region `quad` on body.

        Returns:
            Number of regions expanded into their children
        """
        if quad.count == 0:
            return 0

        if quad.is_leaf():
            for element in quad.elements:
                if element.index != body.index:
                    self._add_pair_force(body, position, charge, element.position, element.charge)
            return 0

        s = quad.bounds.size
        d = (quad.center - position).magnitude
        if d == 0.0 or s / d > self._theta:
            expanded = 1
            for child in self._tree.children(quad):
                expanded += self._accumulate(body, position, charge, child)
            return expanded

        self._add_pair_force(body, position, charge, quad.center, quad.charge)
        return 0

    def _add_pair_force(
        self,
        body: ForceBodyNode,
        position: Point,
        charge: float,
        other: Point,
        other_charge: float,
    ) -> None:
        """Inverse-square force from a charge at `other`, pointing away from it."""
        displacement = position - other
        threshold = self._jiggle_threshold
        while abs(displacement.dx) <= threshold and abs(displacement.dy) <= threshold:
            displacement = jiggle(displacement, self._rng)

        distance = displacement.magnitude
        if distance < self._min_distance or distance > self._max_distance:
            return

        strength = (charge * other_charge) / (distance * distance)
        body.add(displacement.normalized() * strength)


__all__ = ["BarnesHutSimulation", "BoundsWarning", "JIGGLE_THRESHOLD", "jiggle"]
