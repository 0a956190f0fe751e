"""
Tree element wrapping a host-owned particle.
"""

from __future__ import annotations

from ..types import ForceBody, Point, Vector


class ForceBodyNode:
    """
    Non-owning handle onto a host particle.

    Position and charge are read through to the host on every access; the
    accumulated force is owned here and handed to the host with deliver().
    Two handles are equal only if they refer to the same slot index.

    Attributes:
        index: Stable slot identifier (position in the simulation's body list)
        body: The host particle
        force: Force accumulated during the current tick
    """

    __slots__ = ("index", "body", "force")

    def __init__(self, index: int, body: ForceBody) -> None:
        self.index = index
        self.body = body
        self.force = Vector()

    @property
    def position(self) -> Point:
        return Point.coerce(self.body.position)

    @property
    def charge(self) -> float:
        return float(self.body.charge)

    def reset(self) -> None:
        """Zero the force accumulator."""
        self.force = Vector()

    def add(self, force: Vector) -> None:
        self.force = self.force + force

    def deliver(self) -> None:
        """Hand the accumulated force to the host particle."""
        self.body.apply_force(self.force)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ForceBodyNode):
            return NotImplemented
        return self.index == other.index

    def __hash__(self) -> int:
        return hash(self.index)

    def __repr__(self) -> str:
        return f"ForceBodyNode(index={self.index}, force={self.force!r})"


__all__ = ["ForceBodyNode"]
