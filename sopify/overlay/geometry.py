"""Percentage geometry for callout placement.

All callout coordinates are stored as percentages (0-100) of the rendered
image box, so the same record lays out identically whether the screenshot is
displayed at 400px or 1600px wide. This module provides:
- Pointer to percentage conversion against the container's client rect
- Edge clamping that shifts (never resizes) a box back inside [0, 100]
- Center-anchored placement for newly created callouts
- Percentage to pixel conversion and the paint-time minimum pixel floor

Examples:
    Convert a pointer position to percentages:
        >>> container = ContainerRect(left=10, top=20, width=400, height=300)
        >>> pointer_to_percent(210, 170, container)
        (50.0, 50.0)

    Place a 6x6 circle centered on the click point:
        >>> place_centered(50.0, 50.0, 6, 6)
        Box(x=47.0, y=47.0, width=6, height=6)

    Shift a box that would spill past the right edge:
        >>> clamp_box(95.0, 10.0, 15, 10)
        Box(x=85.0, y=10.0, width=15, height=10)

    An unmeasured container rejects placement:
        >>> pointer_to_percent(5, 5, ContainerRect(0, 0, 0, 0)) is None
        True
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

PERCENT_MAX = 100.0


def is_finite_number(value) -> bool:
    """Return True for real, finite numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ContainerRect:
    """Bounding client rect of the image container, in screen pixels."""

    left: float
    top: float
    width: float
    height: float

    @property
    def is_measured(self) -> bool:
        """False until the container has a positive, finite layout size."""
        return (
            is_finite_number(self.width)
            and is_finite_number(self.height)
            and self.width > 0
            and self.height > 0
            and is_finite_number(self.left)
            and is_finite_number(self.top)
        )


@dataclass(frozen=True)
class Box:
    """Callout bounding box in percentages of the image box.

    Attributes:
        x: Left edge (0-100).
        y: Top edge (0-100).
        width: Width (0-100).
        height: Height (0-100).
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def to_pixels(self, container_width: float, container_height: float) -> PixelRect:
        """Convert to a pixel rect relative to the container's top-left."""
        return PixelRect(
            x=self.x / PERCENT_MAX * container_width,
            y=self.y / PERCENT_MAX * container_height,
            width=self.width / PERCENT_MAX * container_width,
            height=self.height / PERCENT_MAX * container_height,
        )


@dataclass(frozen=True)
class PixelRect:
    """Painted frame of a callout in container pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, px: float, py: float) -> bool:
        return (
            self.x <= px <= self.x + self.width
            and self.y <= py <= self.y + self.height
        )


def pointer_to_percent(
    pointer_x: Optional[float],
    pointer_y: Optional[float],
    container: ContainerRect,
) -> Optional[Tuple[float, float]]:
    """Convert a pointer position to clamped container percentages.

    percent = (pointer - container_origin) / container_size * 100, clamped to
    [0, 100] on each axis.

    Args:
        pointer_x: Pointer client X (may be None for malformed events).
        pointer_y: Pointer client Y (may be None for malformed events).
        container: Bounding client rect of the image container.

    Returns:
        (percent_x, percent_y), or None when the container has not been laid
        out yet or a coordinate is missing/non-finite.
    """
    if not container.is_measured:
        return None
    if not (is_finite_number(pointer_x) and is_finite_number(pointer_y)):
        return None

    percent_x = (pointer_x - container.left) / container.width * PERCENT_MAX
    percent_y = (pointer_y - container.top) / container.height * PERCENT_MAX

    return (
        _clamp(percent_x, 0.0, PERCENT_MAX),
        _clamp(percent_y, 0.0, PERCENT_MAX),
    )


def clamp_box(x: float, y: float, width: float, height: float) -> Box:
    """Keep a box inside [0, 100] by shifting it.

    Sizes are capped at 100 and negative sizes become 0; the overflow past the
    right/bottom edge is subtracted from x/y, then x/y are floored at 0.

    Examples:
        >>> clamp_box(-4.0, 98.0, 6, 6)
        Box(x=0.0, y=94.0, width=6, height=6)
    """
    width = _clamp(width, 0, PERCENT_MAX)
    height = _clamp(height, 0, PERCENT_MAX)
    new_x = _clamp(x, 0.0, PERCENT_MAX - width)
    new_y = _clamp(y, 0.0, PERCENT_MAX - height)
    return Box(x=new_x, y=new_y, width=width, height=height)


def place_centered(
    center_x: float, center_y: float, width: float, height: float
) -> Box:
    """Place a box so the given point is its center, then clamp it."""
    return clamp_box(center_x - width / 2, center_y - height / 2, width, height)


def path_bounds(points: Iterable[Tuple[float, float]]) -> Optional[Box]:
    """Bounding box of a vertex list (None for an empty list)."""
    points = list(points)
    if not points:
        return None
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return Box(
        x=min(xs), y=min(ys), width=max(xs) - min(xs), height=max(ys) - min(ys)
    )


def apply_min_pixels(
    rect: PixelRect, min_width: float, min_height: float, square: bool = False
) -> PixelRect:
    """Apply the paint-time minimum pixel floor to a frame.

    Mirrors CSS semantics so every renderer agrees: the frame grows right and
    down from its top-left corner (min-width/min-height), and a square frame
    takes its height from its width (height: auto; aspect-ratio: 1 / 1).

    Examples:
        >>> apply_min_pixels(PixelRect(188, 141, 24, 18), 40, 40, square=True)
        PixelRect(x=188, y=141, width=40, height=40)
    """
    width = max(rect.width, min_width)
    if square:
        height = max(width, min_height)
        width = height
    else:
        height = max(rect.height, min_height)
    return PixelRect(x=rect.x, y=rect.y, width=width, height=height)


def map_into_image_box(box: Box, image_box: Optional[Box]) -> Box:
    """Map a callout box into wrapper percentages for a letterboxed image.

    image_box is the image's own rect as percentages of the positioned
    wrapper; None means the image fills the wrapper.
    """
    if image_box is None:
        return box
    scale_x = image_box.width / PERCENT_MAX
    scale_y = image_box.height / PERCENT_MAX
    return Box(
        x=image_box.x + box.x * scale_x,
        y=image_box.y + box.y * scale_y,
        width=box.width * scale_x,
        height=box.height * scale_y,
    )
