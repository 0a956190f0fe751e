"""
Input validation utilities for the force simulation.

Provides centralized validation functions for bounds, Barnes-Hut parameters
and tree operations. Raises descriptive exceptions on invalid input.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from .types import Point, Rect, RectLike


class ValidationError(ValueError):
    """Base exception for simulation validation errors."""

    pass


class InvalidBoundsError(ValidationError):
    """Raised when simulation bounds are invalid."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a simulation parameter is out of range."""

    pass


class OutOfBoundsError(ValidationError):
    """Raised when an element is inserted outside the tree's bounds."""

    pass


class DuplicateElementError(ValidationError):
    """Raised when an element with the same index is already in the tree."""

    pass


def validate_bounds(bounds: RectLike) -> Rect:
    """
    Validate simulation bounds.

    Args:
        bounds: Rect or (min_x, min_y, max_x, max_y) sequence

    Returns:
        Validated Rect

    Raises:
        InvalidBoundsError: If bounds are malformed, empty or not finite
    """
    try:
        rect = Rect.coerce(bounds)
    except (TypeError, ValueError) as exc:
        raise InvalidBoundsError(
            f"Bounds must be (min_x, min_y, max_x, max_y), got {bounds!r}"
        ) from exc

    edges = (rect.min_x, rect.min_y, rect.max_x, rect.max_y)
    if not all(math.isfinite(edge) for edge in edges):
        raise InvalidBoundsError(f"Bounds must be finite, got {edges}")
    if rect.width <= 0:
        raise InvalidBoundsError(f"Bounds width must be positive, got {rect.width}")
    if rect.height <= 0:
        raise InvalidBoundsError(f"Bounds height must be positive, got {rect.height}")

    return rect


def validate_theta(theta: float) -> float:
    """
    Validate Barnes-Hut theta.

    Raises:
        InvalidParameterError: If theta is not a positive finite number
    """
    theta = float(theta)
    if not math.isfinite(theta) or theta <= 0:
        raise InvalidParameterError(f"theta must be > 0, got {theta}")
    return theta


def validate_distance_range(min_distance: float, max_distance: float) -> tuple[float, float]:
    """
    Validate the interaction distance range.

    max_distance may be infinite.

    Raises:
        InvalidParameterError: If min_distance < 0 or min_distance > max_distance
    """
    min_distance, max_distance = float(min_distance), float(max_distance)
    if math.isnan(min_distance) or math.isnan(max_distance):
        raise InvalidParameterError("Distance range must not contain NaN")
    if min_distance < 0 or math.isinf(min_distance):
        raise InvalidParameterError(
            f"min_distance must be finite and >= 0, got {min_distance}"
        )
    if max_distance < min_distance:
        raise InvalidParameterError(
            f"max_distance ({max_distance}) must be >= min_distance ({min_distance})"
        )
    return min_distance, max_distance


def validate_centering_strength(strength: float) -> float:
    """
    Validate centering strength.

    Raises:
        InvalidParameterError: If strength is not finite
    """
    strength = float(strength)
    if not math.isfinite(strength):
        raise InvalidParameterError(f"centering_strength must be finite, got {strength}")
    return strength


def validate_jiggle_threshold(threshold: float) -> float:
    """
    Validate the near-zero displacement threshold.

    Raises:
        InvalidParameterError: If threshold is not a positive finite number
    """
    threshold = float(threshold)
    if not math.isfinite(threshold) or threshold <= 0:
        raise InvalidParameterError(f"jiggle_threshold must be > 0, got {threshold}")
    return threshold


def validate_center(center: Optional[Any]) -> Optional[Point]:
    """
    Validate the clustering center.

    Non-finite coordinates are allowed and disable the pull along that axis.

    Raises:
        InvalidParameterError: If center cannot be read as a point
    """
    if center is None:
        return None
    try:
        return Point.coerce(center)
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"center must be a point, got {center!r}") from exc


__all__ = [
    "ValidationError",
    "InvalidBoundsError",
    "InvalidParameterError",
    "OutOfBoundsError",
    "DuplicateElementError",
    "validate_bounds",
    "validate_theta",
    "validate_distance_range",
    "validate_centering_strength",
    "validate_jiggle_threshold",
    "validate_center",
]
