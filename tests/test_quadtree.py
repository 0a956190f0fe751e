"""Tests for the dynamic QuadTree."""

import random
from dataclasses import dataclass

import pytest

from force_graph.spatial.quadtree import MAX_DEPTH, QuadNode, QuadTree
from force_graph.types import Point, Rect
from force_graph.validation import DuplicateElementError, OutOfBoundsError


@dataclass(eq=False)
class Body:
    """Minimal tree element."""

    x: float
    y: float
    charge: float = 1.0
    index: int = -1

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)


def assert_invariants(tree):
    """Check count sums, leaf occupancy and leaf containment for every node."""
    for node in tree.nodes():
        children = tree.children(node)
        if children:
            assert not node.elements
            assert node.count == sum(child.count for child in children)
            assert node.count >= 2
        else:
            assert node.count == len(node.elements)
            if node.depth < MAX_DEPTH:
                assert len(node.elements) <= 1
            for element in node.elements:
                assert node.bounds.contains(element.position)


class TestQuadNode:
    """Tests for QuadNode."""

    def test_node_creation(self):
        """New node is an empty leaf centered on its bounds."""
        node = QuadNode(Rect(0, 0, 100, 100))
        assert node.is_leaf()
        assert node.is_empty()
        assert node.element is None
        assert node.center == Point(50.0, 50.0)
        assert node.charge == 0.0


class TestQuadTreeInsertion:
    """Tests for QuadTree insertion operations."""

    def test_empty_tree(self):
        """Test empty tree state."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        assert len(tree) == 0
        assert tree.root.is_empty()
        assert list(tree) == []

    def test_single_insertion(self):
        """A single element is stored directly in the root."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        body = Body(25.0, 25.0, index=0)
        tree.insert(body)

        assert len(tree) == 1
        assert tree.root.element is body
        assert tree.root.is_leaf()
        assert body in tree

    def test_two_insertions_subdivide(self):
        """Second element subdivides the occupied leaf."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        a = Body(25.0, 75.0, index=0)
        b = Body(75.0, 25.0, index=1)
        tree.insert(a)
        tree.insert(b)

        assert not tree.root.is_leaf()
        assert tree.root.element is None
        assert tree.root.count == 2

        nw, ne, sw, se = tree.children(tree.root)
        assert nw.element is a
        assert se.element is b
        assert ne.is_empty() and sw.is_empty()
        assert_invariants(tree)

    def test_children_cover_quadrants(self):
        """Children are NW, NE, SW, SE with north = larger y."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(10, 10, index=0))
        tree.insert(Body(90, 90, index=1))

        nw, ne, sw, se = tree.children(tree.root)
        assert nw.bounds == Rect(0, 50, 50, 100)
        assert ne.bounds == Rect(50, 50, 100, 100)
        assert sw.bounds == Rect(0, 0, 50, 50)
        assert se.bounds == Rect(50, 0, 100, 50)
        assert all(child.depth == 1 for child in (nw, ne, sw, se))

    def test_midpoint_goes_to_one_child(self):
        """A point on the shared midpoint belongs to exactly one child."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(10, 10, index=0))
        center = Body(50, 50, index=1)
        tree.insert(center)

        _, ne, _, _ = tree.children(tree.root)
        assert ne.element is center
        assert_invariants(tree)

    def test_initial_elements(self):
        """Constructor inserts initial elements."""
        bodies = [Body(10 * i + 5, 10 * i + 5, index=i) for i in range(8)]
        tree = QuadTree((0, 0, 100, 100), bodies)
        assert len(tree) == 8
        assert_invariants(tree)

    def test_out_of_bounds_raises(self):
        """Insert outside bounds raises and leaves the tree unchanged."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(10, 10, index=0))

        with pytest.raises(OutOfBoundsError, match="outside bounds"):
            tree.insert(Body(150, 10, index=1))

        assert len(tree) == 1
        assert tree.root.is_leaf()
        assert Body(0, 0, index=1) not in tree

    def test_max_edge_is_outside(self):
        """Bounds are half-open: the max edge is not contained."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        with pytest.raises(OutOfBoundsError):
            tree.insert(Body(100.0, 50.0, index=0))
        tree.insert(Body(0.0, 0.0, index=1))
        assert len(tree) == 1

    def test_nan_position_raises(self):
        """Non-finite positions are never inside the bounds."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        with pytest.raises(OutOfBoundsError):
            tree.insert(Body(float("nan"), 10, index=0))

    def test_duplicate_raises(self):
        """Inserting the same index twice raises."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(10, 10, index=3))
        with pytest.raises(DuplicateElementError):
            tree.insert(Body(60, 60, index=3))
        assert len(tree) == 1

    def test_coincident_elements(self):
        """Coincident elements share a bucket at the depth limit."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        bodies = [Body(30.0, 30.0, index=i) for i in range(3)]
        for body in bodies:
            tree.insert(body)

        assert len(tree) == 3
        assert tree.depth() == MAX_DEPTH
        buckets = [node for node in tree.nodes() if len(node.elements) > 1]
        assert len(buckets) == 1
        assert buckets[0].count == 3
        assert_invariants(tree)

    def test_drifted_element_is_kept_on_subdivide(self):
        """An element that moved out of its leaf survives that leaf's subdivision."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        a = Body(10, 10, index=0)
        tree.insert(a)
        tree.insert(Body(90, 90, index=1))

        # Move a out of the SW leaf without restructuring
        a.x = 60.0
        tree.insert(Body(5, 5, index=2))

        assert len(tree) == 3
        assert {element.index for element in tree} == {0, 1, 2}


class TestQuadTreeRemoval:
    """Tests for removal and consolidation."""

    def test_remove_only_element(self):
        """Removing the only element leaves an empty root."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        body = Body(10, 10, index=0)
        tree.insert(body)
        tree.remove(body)

        assert len(tree) == 0
        assert tree.root.is_empty()
        assert body not in tree

    def test_remove_consolidates(self):
        """Dropping to one element converts the parent back into a leaf."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        a = Body(10, 10, index=0)
        b = Body(12, 12, index=1)
        tree.insert(a)
        tree.insert(b)
        assert tree.depth() > 1

        tree.remove(b)

        assert tree.root.is_leaf()
        assert tree.root.element is a
        assert tree.root.count == 1
        assert tree.depth() == 0

    def test_remove_consolidates_only_local_parent(self):
        """Consolidation stops at nodes that still hold two or more elements."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        a = Body(10, 10, index=0)
        b = Body(20, 20, index=1)
        c = Body(90, 90, index=2)
        for body in (a, b, c):
            tree.insert(body)

        tree.remove(b)

        assert not tree.root.is_leaf()
        _, ne, sw, _ = tree.children(tree.root)
        assert sw.is_leaf() and sw.element is a
        assert ne.element is c
        assert_invariants(tree)

    def test_remove_absent_is_noop(self):
        """Removing an element that is not present changes nothing."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(10, 10, index=0))
        tree.insert(Body(90, 90, index=1))

        tree.remove(Body(10, 10, index=7))

        assert len(tree) == 2
        assert_invariants(tree)

    def test_remove_matches_by_index(self):
        """Removal compares elements by index, not by position."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(10, 10, index=0))
        tree.insert(Body(90, 90, index=1))

        tree.remove(Body(50, 50, index=1))

        assert len(tree) == 1
        assert tree.root.element.index == 0

    def test_remove_from_bucket(self):
        """Removing coincident elements collapses the chain back to the root."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        bodies = [Body(30.0, 30.0, index=i) for i in range(3)]
        for body in bodies:
            tree.insert(body)

        tree.remove(bodies[0])
        assert len(tree) == 2
        assert tree.depth() == MAX_DEPTH

        tree.remove(bodies[1])
        assert len(tree) == 1
        assert tree.depth() == 0
        assert tree.root.element is bodies[2]

    def test_released_children_are_reused(self):
        """Children released by consolidation are recycled on later splits."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        a = Body(10, 10, index=0)
        b = Body(90, 90, index=1)
        tree.insert(a)
        tree.insert(b)
        arena_size = len(tree._nodes)

        for _ in range(5):
            tree.remove(b)
            tree.insert(b)

        assert len(tree._nodes) == arena_size

    def test_random_insert_remove_keeps_invariants(self):
        """Invariants hold through a random sequence of inserts and removes."""
        rng = random.Random(7)
        tree = QuadTree(bounds=(0, 0, 256, 256))
        present = {}

        for step in range(400):
            if present and rng.random() < 0.4:
                index = rng.choice(sorted(present))
                tree.remove(present.pop(index))
            else:
                body = Body(rng.uniform(0, 255), rng.uniform(0, 255), index=step)
                tree.insert(body)
                present[body.index] = body

            assert len(tree) == len(present)
            assert_invariants(tree)

        for body in list(present.values()):
            tree.remove(body)
        assert tree.root.is_empty()
        assert tree.root.is_leaf()


class TestQuadTreeAggregates:
    """Tests for center and charge recomputation."""

    def test_single_element(self):
        """Leaf aggregate is the element's position and charge."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        tree.insert(Body(30.0, 40.0, charge=2.0, index=0))
        tree.recompute_aggregates()

        assert tree.root.charge == 2.0
        assert tree.root.center == Point(30.0, 40.0)

    def test_center_is_count_weighted(self):
        """Internal center averages positions by count, not by charge."""
        tree = QuadTree(bounds=(0, 0, 200, 200))
        tree.insert(Body(0.0, 0.0, charge=3.0, index=0))
        tree.insert(Body(100.0, 0.0, charge=1.0, index=1))
        tree.recompute_aggregates()

        assert tree.root.charge == 4.0
        assert tree.root.center.x == pytest.approx(50.0)
        assert tree.root.center.y == pytest.approx(0.0)

    def test_center_with_uneven_children(self):
        """Children holding more elements weigh more in the parent center."""
        tree = QuadTree(bounds=(0, 0, 200, 200))
        tree.insert(Body(10.0, 10.0, index=0))
        tree.insert(Body(20.0, 10.0, index=1))
        tree.insert(Body(150.0, 150.0, charge=-1.0, index=2))
        tree.recompute_aggregates()

        assert tree.root.center.x == pytest.approx(60.0)
        assert tree.root.center.y == pytest.approx(170.0 / 3)
        assert tree.root.charge == pytest.approx(1.0)

    def test_recompute_idempotent(self):
        """Recomputing twice without changes yields identical aggregates."""
        rng = random.Random(3)
        bodies = [
            Body(rng.uniform(0, 99), rng.uniform(0, 99), charge=rng.uniform(-2, 2), index=i)
            for i in range(50)
        ]
        tree = QuadTree((0, 0, 100, 100), bodies)

        tree.recompute_aggregates()
        first = [(node.center, node.charge) for node in tree.nodes()]
        tree.recompute_aggregates()
        second = [(node.center, node.charge) for node in tree.nodes()]

        assert first == second

    def test_aggregates_follow_moved_elements(self):
        """Aggregates are computed from current element positions."""
        tree = QuadTree(bounds=(0, 0, 100, 100))
        a = Body(10.0, 10.0, index=0)
        b = Body(90.0, 90.0, index=1)
        tree.insert(a)
        tree.insert(b)
        tree.recompute_aggregates()
        assert tree.root.center == Point(50.0, 50.0)

        a.x = 30.0
        tree.recompute_aggregates()
        assert tree.root.center.x == pytest.approx(60.0)


class TestQuadTreeTraversal:
    """Tests for element traversal."""

    def _tree(self):
        bodies = [Body(float(x), float(y), index=i) for i, (x, y) in enumerate(
            [(5, 5), (95, 5), (5, 95), (95, 95), (50, 50), (52, 48)]
        )]
        return bodies, QuadTree((0, 0, 100, 100), bodies)

    def test_items_visit_each_once(self):
        """items() yields every element once with the leaf holding it."""
        bodies, tree = self._tree()
        pairs = list(tree.items())

        assert sorted(element.index for element, _ in pairs) == [b.index for b in bodies]
        for element, leaf in pairs:
            assert leaf.is_leaf()
            assert element in leaf.elements
            assert leaf.bounds.contains(element.position)

    def test_iter_matches_items(self):
        """Iterating the tree yields the same elements as items()."""
        _, tree = self._tree()
        assert {e.index for e in tree} == {e.index for e, _ in tree.items()}

    def test_iteration_is_restartable(self):
        """Each iteration is a fresh pass."""
        _, tree = self._tree()
        assert len(list(tree)) == len(list(tree)) == 6

    def test_for_each(self):
        """for_each invokes the callback with (element, leaf)."""
        _, tree = self._tree()
        seen = []
        tree.for_each(lambda element, leaf: seen.append((element.index, leaf.count)))

        assert sorted(index for index, _ in seen) == list(range(6))
        assert all(count == 1 for _, count in seen)
