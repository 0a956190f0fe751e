"""
Common types for the force simulation.

This module provides the fundamental types used across the package:
- Point / Vector: 2D position and displacement algebra
- Rect: Axis-aligned bounds with exact quadrant subdivision
- QuadTreeElement / ForceBody: Protocols for tree elements and host particles
- Particle: Minimal host particle implementing ForceBody
- EventType / Event: Simulation lifecycle events
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional, Protocol, Sequence, TypedDict, Union, overload


@dataclass(frozen=True)
class Vector:
    """Displacement (or force) vector."""

    dx: float = 0.0
    dy: float = 0.0

    def __add__(self, other: Vector) -> Vector:
        return Vector(self.dx + other.dx, self.dy + other.dy)

    def __sub__(self, other: Vector) -> Vector:
        return Vector(self.dx - other.dx, self.dy - other.dy)

    def __neg__(self) -> Vector:
        return Vector(-self.dx, -self.dy)

    def __mul__(self, k: float) -> Vector:
        return Vector(self.dx * k, self.dy * k)

    __rmul__ = __mul__

    def __truediv__(self, k: float) -> Vector:
        return Vector(self.dx / k, self.dy / k)

    @property
    def magnitude(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.dx * self.dx + self.dy * self.dy)

    def normalized(self) -> Vector:
        """
        Unit vector in the same direction.

        Raises:
            ValueError: If the vector has zero length
        """
        length = self.magnitude
        if length == 0.0:
            raise ValueError("Cannot normalize a zero-length vector")
        return Vector(self.dx / length, self.dy / length)

    def __repr__(self) -> str:
        return f"Vector(dx={self.dx:.4g}, dy={self.dy:.4g})"


@dataclass(frozen=True)
class Point:
    """2D position."""

    x: float = 0.0
    y: float = 0.0

    @overload
    def __sub__(self, other: Point) -> Vector: ...

    @overload
    def __sub__(self, other: Vector) -> Point: ...

    def __sub__(self, other: Union[Point, Vector]) -> Union[Vector, Point]:
        if isinstance(other, Vector):
            return Point(self.x - other.dx, self.y - other.dy)
        return Vector(self.x - other.x, self.y - other.y)

    def __add__(self, other: Union[Point, Vector]) -> Point:
        if isinstance(other, Vector):
            return Point(self.x + other.dx, self.y + other.dy)
        return Point(self.x + other.x, self.y + other.y)

    def __mul__(self, k: float) -> Point:
        return Point(self.x * k, self.y * k)

    def __truediv__(self, k: float) -> Point:
        return Point(self.x / k, self.y / k)

    def is_finite(self) -> bool:
        """True if both coordinates are finite numbers."""
        return math.isfinite(self.x) and math.isfinite(self.y)

    @classmethod
    def coerce(cls, value: PointLike) -> Point:
        """Build a Point from a Point, an (x, y) sequence, or an object with x/y."""
        if isinstance(value, Point):
            return value
        if hasattr(value, "x") and hasattr(value, "y"):
            return cls(float(value.x), float(value.y))
        x, y = value  # type: ignore[misc]
        return cls(float(x), float(y))

    def __repr__(self) -> str:
        return f"Point(x={self.x:.4g}, y={self.y:.4g})"


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle stored by its edges.

    Containment is half-open (min <= p < max on both axes) so that the four
    quadrants of a rectangle partition it exactly.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_origin(cls, x: float, y: float, width: float, height: float) -> Rect:
        """Build from the minimum corner and a size."""
        return cls(x, y, x + width, y + height)

    @classmethod
    def coerce(cls, value: RectLike) -> Rect:
        """Build a Rect from a Rect or a (min_x, min_y, max_x, max_y) sequence."""
        if isinstance(value, Rect):
            return value
        min_x, min_y, max_x, max_y = value
        return cls(float(min_x), float(min_y), float(max_x), float(max_y))

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def size(self) -> float:
        """Mean of width and height."""
        return (self.width + self.height) / 2

    @property
    def midpoint(self) -> Point:
        return Point((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)

    def contains(self, point: Point) -> bool:
        """Check if point lies in [min_x, max_x) x [min_y, max_y)."""
        return self.min_x <= point.x < self.max_x and self.min_y <= point.y < self.max_y

    def clamp(self, point: Point) -> Point:
        """Nearest point to `point` inside the closed rectangle."""
        return Point(
            min(max(point.x, self.min_x), self.max_x),
            min(max(point.y, self.min_y), self.max_y),
        )

    def quadrants(self) -> tuple[Rect, Rect, Rect, Rect]:
        """
        Split into four equal quadrants.

        Returns:
            (NW, NE, SW, SE), with north being the upper half (larger y)
        """
        mid = self.midpoint
        return (
            Rect(self.min_x, mid.y, mid.x, self.max_y),
            Rect(mid.x, mid.y, self.max_x, self.max_y),
            Rect(self.min_x, self.min_y, mid.x, mid.y),
            Rect(mid.x, self.min_y, self.max_x, mid.y),
        )


class QuadTreeElement(Protocol):
    """Anything storable in a QuadTree: a stable index, a position and a charge."""

    @property
    def index(self) -> int: ...

    @property
    def position(self) -> Point: ...

    @property
    def charge(self) -> float: ...


class ForceBody(Protocol):
    """
    Host-owned particle.

    The host owns position and charge and integrates applied forces into
    motion. The simulation only reads position/charge and calls apply_force.
    """

    @property
    def position(self) -> PointLike: ...

    @property
    def charge(self) -> float: ...

    def apply_force(self, force: Vector) -> None: ...


class Particle:
    """
    Minimal host particle implementing the ForceBody protocol.

    Attributes:
        x, y: Current position
        charge: Signed charge (same signs repel, opposite signs attract)
        mobility: Displacement per unit force applied in apply_force (0 = static)
        force: Last force received
    """

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        charge: float = 1.0,
        mobility: float = 0.0,
    ) -> None:
        self.x = float(x)
        self.y = float(y)
        self.charge = float(charge)
        self.mobility = float(mobility)
        self.force = Vector()

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def apply_force(self, force: Vector) -> None:
        self.force = force
        if self.mobility:
            self.x += force.dx * self.mobility
            self.y += force.dy * self.mobility

    def __repr__(self) -> str:
        return f"Particle(x={self.x:.2f}, y={self.y:.2f}, charge={self.charge:g})"


class EventType(IntEnum):
    """
    Simulation lifecycle events.

    - tick: Fired once at the end of every update
    - restructure: Fired when bodies were moved between tree leaves
    """

    tick = 0
    restructure = 1


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    tick: int
    elapsed: Optional[float]
    restructured: int


EventCallback = Callable[[Optional[Event]], None]

PointLike = Union[Point, tuple[float, float], Sequence[float], Any]
"""Input type for positions: Point, (x, y) sequence, or object with x/y."""

RectLike = Union[Rect, tuple[float, float, float, float], Sequence[float]]
"""Bounds: Rect or (min_x, min_y, max_x, max_y) sequence."""


__all__ = [
    "Vector",
    "Point",
    "Rect",
    "QuadTreeElement",
    "ForceBody",
    "Particle",
    "EventType",
    "Event",
    "EventCallback",
    "PointLike",
    "RectLike",
]
