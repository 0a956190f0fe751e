"""
Region quadtree for Barnes-Hut force approximation.

The quadtree recursively subdivides 2D space into quadrants on demand,
enabling O(n log n) approximate n-body force calculations. Nodes live in an
arena owned by the tree; an internal node stores the arena index of the
first of its four consecutive children.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, Iterator, List, Optional, Set, TypeVar

from ..types import Point, QuadTreeElement, Rect, RectLike
from ..validation import DuplicateElementError, OutOfBoundsError, validate_bounds

T = TypeVar("T", bound=QuadTreeElement)

# Leaves at this depth hold coincident elements as a bucket instead of
# subdividing further.
MAX_DEPTH = 48


@dataclass
class QuadNode(Generic[T]):
    """
    A node in the quadtree.

    Attributes:
        bounds: Region covered by this node (fixed at creation)
        center: Aggregate center of the elements below this node
        charge: Aggregate (summed) charge of the elements below this node
        count: Number of elements below this node
        elements: Stored element(s) if this is an occupied leaf
        children: Arena index of the first of four children [NW, NE, SW, SE]
            if internal
        depth: Distance from the root
    """

    bounds: Rect
    center: Point = field(init=False)
    charge: float = 0.0
    count: int = 0
    elements: List[T] = field(default_factory=list)
    children: Optional[int] = None
    depth: int = 0

    def __post_init__(self) -> None:
        self.center = self.bounds.midpoint

    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return self.children is None

    def is_empty(self) -> bool:
        """True if this node contains no elements."""
        return self.count == 0

    @property
    def element(self) -> Optional[T]:
        """The stored element of an occupied leaf, else None."""
        return self.elements[0] if self.elements else None


class QuadTree(Generic[T]):
    """
    Dynamic region quadtree over elements with an index, position and charge.

    Elements are compared by their ``index`` attribute. Aggregates (center and
    charge) are only meaningful after recompute_aggregates() and go stale as
    soon as elements move or the tree is modified.

    Usage:
        tree = QuadTree(bounds=(0, 0, 1000, 1000))
        for body in bodies:
            tree.insert(body)
        tree.recompute_aggregates()

        for element, leaf in tree.items():
            ...
    """

    def __init__(self, bounds: RectLike, elements: Optional[Iterable[T]] = None):
        """
        Initialize quadtree.

        Args:
            bounds: Rect or (min_x, min_y, max_x, max_y) covered by the root
            elements: Elements to insert, in order

        Raises:
            InvalidBoundsError: If bounds are invalid
            OutOfBoundsError: If an initial element lies outside bounds
        """
        self._nodes: List[QuadNode[T]] = [QuadNode(validate_bounds(bounds))]
        self._free: List[int] = []
        self._members: Set[int] = set()

        if elements is not None:
            for element in elements:
                self.insert(element)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def root(self) -> QuadNode[T]:
        return self._nodes[0]

    @property
    def bounds(self) -> Rect:
        return self.root.bounds

    def __len__(self) -> int:
        return self.root.count

    def __contains__(self, element: object) -> bool:
        return getattr(element, "index", None) in self._members

    def children(self, node: QuadNode[T]) -> tuple[QuadNode[T], ...]:
        """Four children of an internal node, or () for a leaf."""
        if node.children is None:
            return ()
        first = node.children
        return tuple(self._nodes[first : first + 4])

    # -------------------------------------------------------------------------
    # Insertion
    # -------------------------------------------------------------------------

    def insert(self, element: T) -> None:
        """
        Insert an element.

        Raises:
            OutOfBoundsError: If the element's position is outside the root bounds
            DuplicateElementError: If an element with the same index is present
        """
        position = Point.coerce(element.position)
        if not self.bounds.contains(position):
            raise OutOfBoundsError(
                f"Element {element.index} at ({position.x}, {position.y}) "
                f"is outside bounds {self.bounds}"
            )
        if element.index in self._members:
            raise DuplicateElementError(f"Element {element.index} is already in the tree")

        self._insert_into(0, element, position)
        self._members.add(element.index)

    def _insert_into(self, index: int, element: T, position: Point) -> None:
        """Recursively insert element into the subtree rooted at index."""
        node = self._nodes[index]

        if node.children is None:
            if not node.elements or node.depth >= MAX_DEPTH:
                node.elements.append(element)
                node.count += 1
                return

            # Occupied leaf: subdivide and push the existing element down
            existing = node.elements.pop()
            self._subdivide(index)
            existing_position = node.bounds.clamp(Point.coerce(existing.position))
            self._insert_into(self._child_for(node, existing_position), existing, existing_position)

        self._insert_into(self._child_for(node, position), element, position)
        node.count += 1

    def _child_for(self, node: QuadNode[T], position: Point) -> int:
        """Arena index of the child of node whose bounds contain position."""
        assert node.children is not None
        for i in range(4):
            if self._nodes[node.children + i].bounds.contains(position):
                return node.children + i
        # Only reachable for an element that drifted onto the closed max edge
        # of its leaf: pick the quadrant by midpoint comparison.
        mid = node.bounds.midpoint
        east = position.x >= mid.x
        north = position.y >= mid.y
        return node.children + (0 if north else 2) + (1 if east else 0)

    def _subdivide(self, index: int) -> None:
        """Give the leaf at index four empty children."""
        node = self._nodes[index]
        children = [QuadNode(rect, depth=node.depth + 1) for rect in node.bounds.quadrants()]
        if self._free:
            first = self._free.pop()
            self._nodes[first : first + 4] = children
        else:
            first = len(self._nodes)
            self._nodes.extend(children)
        node.children = first

    # -------------------------------------------------------------------------
    # Removal
    # -------------------------------------------------------------------------

    def remove(self, element: T) -> None:
        """Remove an element. Removing an absent element is a no-op."""
        if element.index not in self._members:
            return
        if self._remove_from(0, element):
            self._members.discard(element.index)

    def _remove_from(self, index: int, element: T) -> bool:
        """Remove element from the subtree at index, reporting success."""
        node = self._nodes[index]

        if node.children is None:
            for i, stored in enumerate(node.elements):
                if stored.index == element.index:
                    del node.elements[i]
                    node.count -= 1
                    return True
            return False

        found = False
        for child in range(node.children, node.children + 4):
            if self._remove_from(child, element):
                node.count -= 1
                found = True
                break

        if found and node.count == 1:
            # Consolidate: hoist the sole remaining element into this node
            node.elements = [stored for stored, _ in self._items_from(node)]
            self._release(node)

        return found

    def _release(self, node: QuadNode[T]) -> None:
        """Discard the children of node (and their descendants)."""
        if node.children is None:
            return
        for child in self.children(node):
            self._release(child)
        self._free.append(node.children)
        node.children = None

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def recompute_aggregates(self) -> None:
        """Recompute center and charge of every node from current positions."""
        self._compute_center(self.root)

    def _compute_center(self, node: QuadNode[T]) -> Point:
        """Recursively compute aggregates, returning the node's center."""
        if node.children is None:
            if node.elements:
                x = y = charge = 0.0
                for element in node.elements:
                    position = Point.coerce(element.position)
                    x += position.x
                    y += position.y
                    charge += element.charge
                n = len(node.elements)
                node.center = Point(x / n, y / n)
                node.charge = charge
            return node.center

        # Count-weighted mean of child centers, summed charge
        x = y = charge = 0.0
        for child in self.children(node):
            if child.count == 0:
                continue
            center = self._compute_center(child)
            x += center.x * child.count
            y += center.y * child.count
            charge += child.charge
        node.center = Point(x / node.count, y / node.count)
        node.charge = charge
        return node.center

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def items(self) -> Iterator[tuple[T, QuadNode[T]]]:
        """Depth-first (element, leaf) pairs for every stored element."""
        yield from self._items_from(self.root)

    def _items_from(self, node: QuadNode[T]) -> Iterator[tuple[T, QuadNode[T]]]:
        if node.children is None:
            for element in node.elements:
                yield element, node
            return
        for child in self.children(node):
            if child.count:
                yield from self._items_from(child)

    def for_each(self, callback: Callable[[T, QuadNode[T]], None]) -> None:
        """Call callback(element, leaf) for every stored element."""
        for element, node in self.items():
            callback(element, node)

    def __iter__(self) -> Iterator[T]:
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.children is None:
                yield from node.elements
            else:
                stack.extend(self.children(node))

    def nodes(self) -> Iterator[QuadNode[T]]:
        """Every node reachable from the root, parents before children."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(self.children(node))

    def depth(self) -> int:
        """Depth of the deepest reachable node (0 for a lone root)."""
        return max(node.depth for node in self.nodes())


__all__ = ["MAX_DEPTH", "QuadNode", "QuadTree"]
