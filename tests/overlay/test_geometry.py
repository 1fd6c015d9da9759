"""Tests for percentage geometry helpers."""

import math
import random

import pytest

from sopify.overlay.geometry import (
    Box,
    ContainerRect,
    PixelRect,
    apply_min_pixels,
    clamp_box,
    map_into_image_box,
    path_bounds,
    place_centered,
    pointer_to_percent,
)


CONTAINER = ContainerRect(left=0, top=0, width=400, height=300)


def test_pointer_to_percent_center():
    """Pointer at the container center maps to (50, 50)."""
    assert pointer_to_percent(200, 150, CONTAINER) == (50.0, 50.0)


def test_pointer_to_percent_offset_container():
    """Container origin is subtracted before scaling."""
    container = ContainerRect(left=100, top=50, width=200, height=100)
    assert pointer_to_percent(150, 75, container) == (25.0, 25.0)


def test_pointer_to_percent_clamps_outside_points():
    """Pointers outside the container clamp to the nearest edge."""
    assert pointer_to_percent(-20, 500, CONTAINER) == (0.0, 100.0)


@pytest.mark.parametrize(
    "container",
    [
        ContainerRect(0, 0, 0, 300),
        ContainerRect(0, 0, 400, 0),
        ContainerRect(0, 0, -10, 300),
        ContainerRect(0, 0, float("nan"), 300),
    ],
)
def test_pointer_to_percent_rejects_unmeasured_container(container):
    """An unmeasured container rejects placement instead of producing NaN."""
    assert pointer_to_percent(10, 10, container) is None


@pytest.mark.parametrize(
    "x, y",
    [(None, 10), (10, None), (float("nan"), 10), (10, float("inf")), (True, 10)],
)
def test_pointer_to_percent_rejects_malformed_coordinates(x, y):
    assert pointer_to_percent(x, y, CONTAINER) is None


def test_place_centered_circle_default():
    """A 6x6 circle clicked at the center lands at (47, 47)."""
    box = place_centered(50.0, 50.0, 6, 6)
    assert box == Box(x=47.0, y=47.0, width=6, height=6)


def test_clamp_box_shifts_instead_of_resizing():
    box = clamp_box(95.0, 98.0, 15, 10)
    assert box.x == pytest.approx(85.0)
    assert box.y == pytest.approx(90.0)
    assert (box.width, box.height) == (15, 10)


def test_clamp_box_negative_origin():
    box = clamp_box(-3.0, -1.0, 6, 6)
    assert (box.x, box.y) == (0.0, 0.0)


def test_clamp_box_caps_oversized_box():
    box = clamp_box(10.0, 10.0, 150, 120)
    assert box == Box(x=0.0, y=0.0, width=100.0, height=100.0)


def test_clamp_invariant_random_points():
    """Any click with any default size yields a box inside [0, 100]."""
    rng = random.Random(42)
    for _ in range(500):
        cx = rng.uniform(0, 100)
        cy = rng.uniform(0, 100)
        w = rng.uniform(0, 100)
        h = rng.uniform(0, 100)
        box = place_centered(cx, cy, w, h)
        assert box.x >= 0 and box.y >= 0
        assert box.x + box.width <= 100 + 1e-9
        assert box.y + box.height <= 100 + 1e-9
        assert not math.isnan(box.x) and not math.isnan(box.y)


def test_box_to_pixels():
    rect = Box(x=47.0, y=47.0, width=6, height=6).to_pixels(400, 300)
    assert rect.x == pytest.approx(188.0)
    assert rect.y == pytest.approx(141.0)
    assert rect.width == pytest.approx(24.0)
    assert rect.height == pytest.approx(18.0)


def test_box_center_and_contains():
    box = Box(x=10, y=20, width=30, height=40)
    assert box.center == (25, 40)
    assert box.contains(10, 20)
    assert not box.contains(41, 20)


def test_apply_min_pixels_square_grows_right_and_down():
    rect = apply_min_pixels(PixelRect(188, 141, 24, 18), 40, 40, square=True)
    assert (rect.x, rect.y) == (188, 141)
    assert (rect.width, rect.height) == (40, 40)


def test_apply_min_pixels_square_uses_width_above_floor():
    """Square frames take their height from the width (aspect-ratio 1 / 1)."""
    rect = apply_min_pixels(PixelRect(0, 0, 60, 45), 40, 40, square=True)
    assert (rect.width, rect.height) == (60, 60)


def test_apply_min_pixels_rectangle_floors_each_axis():
    rect = apply_min_pixels(PixelRect(5, 5, 60, 10), 40, 25)
    assert (rect.width, rect.height) == (60, 25)


def test_path_bounds():
    assert path_bounds([]) is None
    box = path_bounds([(10, 20), (30, 5), (15, 40)])
    assert box == Box(x=10, y=5, width=20, height=35)


def test_map_into_image_box_identity_and_letterbox():
    box = Box(x=50, y=50, width=10, height=10)
    assert map_into_image_box(box, None) is box

    mapped = map_into_image_box(box, Box(x=10, y=0, width=80, height=100))
    assert mapped.x == pytest.approx(50.0)
    assert mapped.y == pytest.approx(50.0)
    assert mapped.width == pytest.approx(8.0)
    assert mapped.height == pytest.approx(10.0)
