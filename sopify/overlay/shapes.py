"""Shape registry: default sizing, paint rules and hit-test rules.

Every Shape member owns one ShapeSpec. The paint rule turns a Callout into a
PaintPlan (see paint.py) that all renderers interpret; the hit-test rule
decides whether a pointer position lands on the painted callout. Unknown
shapes fail closed: no registry entry, no plan, no hit.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

from .callout import Callout, Shape
from .geometry import ContainerRect, PixelRect, apply_min_pixels, is_finite_number
from .overlay_config import OverlayConfig
from .paint import (
    BlurEffect,
    Color,
    Ellipse,
    Fill,
    Label,
    MagnifierEffect,
    PaintPlan,
    Polygon,
    RevealIndicator,
    RoundedRect,
    Stroke,
)

logger = logging.getLogger(__name__)

# Arrow silhouette pointing right, in a 100x100 view box
ARROW_POINTS = (
    (10.0, 30.0),
    (65.0, 30.0),
    (65.0, 10.0),
    (95.0, 50.0),
    (65.0, 90.0),
    (65.0, 70.0),
    (10.0, 70.0),
)

MIN_POLYGON_SIDES = 3
MAX_POLYGON_SIDES = 12
MIN_ZOOM = 1.5
MAX_ZOOM = 5.0
HIT_TOLERANCE_PX = 4


@dataclass(frozen=True)
class ShapeSpec:
    """Registry entry for one shape.

    Attributes:
        shape: The shape this entry describes.
        default_width: Width of a newly placed callout (percent).
        default_height: Height of a newly placed callout (percent).
        accepts_text: Whether a text label may be attached.
        number_mode: "none", "optional" (badge) or "required".
        min_width_px: Paint-time width floor.
        min_height_px: Paint-time height floor.
        square: Paint with height derived from width.
        paint: Builds the primitives for a callout.
        hit: Hit rule in frame view-box units (u, v) plus pixel context.
    """

    shape: Shape
    default_width: float
    default_height: float
    accepts_text: bool
    number_mode: str
    min_width_px: float
    min_height_px: float
    square: bool
    paint: Callable
    hit: Callable


def _resolve_style(callout: Callout, config: OverlayConfig) -> dict:
    """Merge config defaults, shape overrides and the record's own style."""
    style = config.get_style_for_shape(callout.shape)
    overrides = callout.style
    if overrides is not None:
        for key in ("border_width", "fill_opacity", "font_size", "font_family", "font_color"):
            value = getattr(overrides, key)
            if value is not None:
                style[key] = value
    base = Color.parse(callout.color, fallback=config.default_color)
    style["base"] = base
    style["fill_color"] = (
        Color.parse(overrides.fill_color, fallback=base.hex())
        if overrides is not None and overrides.fill_color
        else base
    )
    style["border_color"] = (
        Color.parse(overrides.border_color, fallback=base.hex())
        if overrides is not None and overrides.border_color
        else base
    )
    style["opacity"] = (
        overrides.opacity
        if overrides is not None and overrides.opacity is not None
        else 1.0
    )
    style["explicit_font_size"] = overrides is not None and overrides.font_size is not None
    return style


def _label(text: str, style: dict, font_size: float, bold: bool = False) -> Label:
    return Label(
        text=text,
        color=Color.parse(style["font_color"]),
        font_size=font_size,
        font_family=style["font_family"],
        bold=bold,
    )


def _badge_font_size(callout: Callout, style: dict) -> float:
    if style["explicit_font_size"]:
        return style["font_size"]
    return max(14.0, callout.width * 2)


def regular_polygon_points(sides: int) -> Tuple[Tuple[float, float], ...]:
    """Vertices of a regular polygon inscribed in the view box, from 12 o'clock."""
    points = []
    for i in range(sides):
        angle = i * 2 * math.pi / sides - math.pi / 2
        points.append((50.0 + 50.0 * math.cos(angle), 50.0 + 50.0 * math.sin(angle)))
    return tuple(points)


# Paint rules


def _paint_circle(callout: Callout, style: dict, config: OverlayConfig) -> list:
    primitives = [
        Ellipse(
            fill=Fill(style["fill_color"], style["fill_opacity"]),
            stroke=style["border_color"],
            stroke_width=style["border_width"],
        )
    ]
    if callout.number:
        primitives.append(
            _label(str(callout.number), style, _badge_font_size(callout, style), bold=True)
        )
    return primitives


def _paint_rectangle(callout: Callout, style: dict, config: OverlayConfig) -> list:
    primitives = [
        RoundedRect(
            fill=Fill(style["fill_color"], style["fill_opacity"]),
            stroke=style["border_color"],
            stroke_width=style["border_width"],
            radius_px=4,
        )
    ]
    if callout.text:
        primitives.append(_label(callout.text, style, style["font_size"]))
    return primitives


def _paint_arrow(callout: Callout, style: dict, config: OverlayConfig) -> list:
    primitives = [
        Polygon(
            points=ARROW_POINTS,
            fill=Fill(style["fill_color"]),
            stroke=style["border_color"],
            stroke_width=style["border_width"],
        )
    ]
    if callout.text:
        primitives.append(_label(callout.text, style, style["font_size"]))
    return primitives


def _paint_number(callout: Callout, style: dict, config: OverlayConfig) -> Optional[list]:
    if not isinstance(callout.number, int) or callout.number < 1:
        logger.warning("Numbered callout %s has no valid number", callout.id)
        return None
    if callout.is_revealable:
        start, end = config.reveal_gradient
        fill = Fill(Color.parse(start), gradient_to=Color.parse(end))
    else:
        fill = Fill(style["fill_color"])
    primitives = [
        Ellipse(fill=fill, stroke=style["border_color"], stroke_width=style["border_width"]),
        _label(str(callout.number), style, _badge_font_size(callout, style), bold=True),
    ]
    if callout.is_revealable:
        primitives.append(RevealIndicator())
    return primitives


def _paint_oval(callout: Callout, style: dict, config: OverlayConfig) -> list:
    return [
        Ellipse(
            fill=Fill(style["fill_color"], style["fill_opacity"]),
            stroke=style["border_color"],
            stroke_width=style["border_width"],
        )
    ]


def _paint_polygon(callout: Callout, style: dict, config: OverlayConfig) -> list:
    sides = callout.polygon_data.sides if callout.polygon_data else 6
    if not isinstance(sides, int) or not MIN_POLYGON_SIDES <= sides <= MAX_POLYGON_SIDES:
        logger.warning("Polygon sides %r out of range, clamping", sides)
        try:
            sides = int(sides)
        except (TypeError, ValueError):
            sides = 6
        sides = max(MIN_POLYGON_SIDES, min(MAX_POLYGON_SIDES, sides))
    return [
        Polygon(
            points=regular_polygon_points(sides),
            fill=Fill(style["fill_color"], style["fill_opacity"]),
            stroke=style["border_color"],
            stroke_width=style["border_width"],
        )
    ]


def _paint_blur(callout: Callout, style: dict, config: OverlayConfig) -> list:
    data = callout.blur_data
    intensity = data.intensity if data else 5
    intensity = max(1.0, min(10.0, float(intensity)))
    mode = "pixelate" if data and data.type == "pixelate" else "blur"
    frame_color = Color.parse(config.blur_frame_color)
    return [
        BlurEffect(intensity=intensity, mode=mode),
        RoundedRect(
            fill=Fill(frame_color, 0.1),
            stroke=frame_color,
            stroke_width=2,
            radius_px=4,
            dashed=True,
        ),
        Label(
            text="PIXELATED" if mode == "pixelate" else "BLURRED",
            color=frame_color,
            font_size=10,
            font_family=style["font_family"],
            bold=True,
        ),
    ]


def _paint_magnifier(callout: Callout, style: dict, config: OverlayConfig) -> list:
    data = callout.magnifier_data
    zoom = float(data.zoom_level) if data else 2.0
    if not MIN_ZOOM <= zoom <= MAX_ZOOM:
        logger.warning("Magnifier zoom %r out of range, clamping", zoom)
        zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
    center_x, center_y = callout.box.center
    primitives = [
        MagnifierEffect(zoom_level=zoom, focus_x=center_x, focus_y=center_y, frame=callout.box)
    ]
    if data is None or data.show_border:
        border = callout.style.border_width if callout.style and callout.style.border_width else 3
        primitives.append(Ellipse(fill=None, stroke=style["border_color"], stroke_width=border))
    return primitives


def _paint_freehand(callout: Callout, style: dict, config: OverlayConfig) -> Optional[list]:
    data = callout.freehand_data
    if data is None or len(data.path) < 2:
        logger.warning("Freehand callout %s has no drawable path", callout.id)
        return None
    local = []
    for px, py in data.path:
        u = (px - callout.x) / callout.width * 100.0 if callout.width > 0 else 50.0
        v = (py - callout.y) / callout.height * 100.0 if callout.height > 0 else 50.0
        local.append((u, v))
    return [
        Stroke(
            points=tuple(local),
            color=style["border_color"],
            stroke_width=data.stroke_width or config.freehand_stroke_width,
        )
    ]


# Hit rules: (plan, u, v, frame, local_x, local_y) -> bool


def _hit_ellipse(plan, u, v, frame, lx, ly) -> bool:
    return ((u - 50.0) / 50.0) ** 2 + ((v - 50.0) / 50.0) ** 2 <= 1.0


def _hit_box(plan, u, v, frame, lx, ly) -> bool:
    return 0.0 <= u <= 100.0 and 0.0 <= v <= 100.0


def _hit_polygon(plan, u, v, frame, lx, ly) -> bool:
    for primitive in plan.primitives:
        if isinstance(primitive, Polygon):
            return point_in_polygon(u, v, primitive.points)
    return False


def _hit_stroke(plan, u, v, frame, lx, ly) -> bool:
    for primitive in plan.primitives:
        if not isinstance(primitive, Stroke):
            continue
        tolerance = primitive.stroke_width / 2 + HIT_TOLERANCE_PX
        pixels = [
            (frame.x + pu / 100.0 * frame.width, frame.y + pv / 100.0 * frame.height)
            for pu, pv in primitive.points
        ]
        for start, end in zip(pixels, pixels[1:]):
            if _distance_to_segment(lx, ly, start, end) <= tolerance:
                return True
    return False


def point_in_polygon(x: float, y: float, points: Sequence[Tuple[float, float]]) -> bool:
    """Even-odd ray casting test."""
    inside = False
    count = len(points)
    for i in range(count):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % count]
        if (y1 > y) != (y2 > y):
            cross_x = x1 + (y - y1) * (x2 - x1) / (y2 - y1)
            if x < cross_x:
                inside = not inside
    return inside


def _distance_to_segment(px, py, start, end) -> float:
    (x1, y1), (x2, y2) = start, end
    dx, dy = x2 - x1, y2 - y1
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(px - x1, py - y1)
    t = max(0.0, min(1.0, ((px - x1) * dx + (py - y1) * dy) / length_sq))
    return math.hypot(px - (x1 + t * dx), py - (y1 + t * dy))


SHAPE_REGISTRY: dict[Shape, ShapeSpec] = {
    Shape.CIRCLE: ShapeSpec(Shape.CIRCLE, 6, 6, False, "optional", 40, 40, True, _paint_circle, _hit_ellipse),
    Shape.RECTANGLE: ShapeSpec(Shape.RECTANGLE, 15, 10, True, "none", 40, 25, False, _paint_rectangle, _hit_box),
    Shape.ARROW: ShapeSpec(Shape.ARROW, 10, 8, True, "none", 40, 25, False, _paint_arrow, _hit_polygon),
    Shape.NUMBER: ShapeSpec(Shape.NUMBER, 6, 6, False, "required", 40, 40, True, _paint_number, _hit_ellipse),
    Shape.OVAL: ShapeSpec(Shape.OVAL, 10, 8, False, "none", 40, 30, False, _paint_oval, _hit_ellipse),
    Shape.POLYGON: ShapeSpec(Shape.POLYGON, 10, 10, False, "none", 0, 0, False, _paint_polygon, _hit_polygon),
    Shape.BLUR: ShapeSpec(Shape.BLUR, 20, 15, False, "none", 0, 0, False, _paint_blur, _hit_box),
    Shape.MAGNIFIER: ShapeSpec(Shape.MAGNIFIER, 12, 12, False, "none", 0, 0, False, _paint_magnifier, _hit_ellipse),
    # Freehand size comes from the stroke's bounds, not from defaults
    Shape.FREEHAND: ShapeSpec(Shape.FREEHAND, 0, 0, False, "none", 0, 0, False, _paint_freehand, _hit_stroke),
}

assert set(SHAPE_REGISTRY) == set(Shape), "every Shape needs a registry entry"

_ROUND_SHAPES = {Shape.CIRCLE, Shape.NUMBER, Shape.OVAL, Shape.MAGNIFIER}


def get_shape_spec(shape: Union[Shape, str, None]) -> Optional[ShapeSpec]:
    """Look up a shape's registry entry; None for unknown shapes."""
    if shape is None:
        return None
    member = Shape.coerce(shape)
    if not isinstance(member, Shape):
        return None
    return SHAPE_REGISTRY[member]


def build_paint_plan(
    callout: Callout, config: Optional[OverlayConfig] = None
) -> Optional[PaintPlan]:
    """Describe how to draw a callout, or None if it cannot be drawn.

    Never raises: unknown shapes and corrupt records log a warning and return
    None so one bad record cannot break a renderer.
    """
    config = config or OverlayConfig()
    spec = get_shape_spec(callout.shape)
    if spec is None:
        logger.warning("Skipping callout %s with unknown shape %r", callout.id, callout.shape)
        return None

    try:
        geometry = (callout.x, callout.y, callout.width, callout.height)
        if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in geometry):
            logger.warning("Skipping callout %s with invalid geometry %s", callout.id, geometry)
            return None

        style = _resolve_style(callout, config)
        primitives = spec.paint(callout, style, config)
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning("Skipping unpaintable callout %s: %s", callout.id, e)
        return None
    if primitives is None:
        return None

    floor = config.enforce_min_pixels
    return PaintPlan(
        callout_id=callout.id,
        shape=spec.shape.value,
        frame=callout.box,
        min_width_px=spec.min_width_px if floor else 0,
        min_height_px=spec.min_height_px if floor else 0,
        square=spec.square,
        opacity=style["opacity"],
        primitives=tuple(primitives),
        interactive=callout.is_revealable,
        reveal_text=callout.reveal_text if callout.is_revealable else None,
        border_radius="50%" if spec.shape in _ROUND_SHAPES else None,
    )


def painted_frame(plan: PaintPlan, container_width: float, container_height: float) -> PixelRect:
    """Pixel frame of a plan after the minimum floor and square rule."""
    rect = plan.frame.to_pixels(container_width, container_height)
    return apply_min_pixels(rect, plan.min_width_px, plan.min_height_px, plan.square)


def hit_test(
    callout: Callout,
    point_x: float,
    point_y: float,
    container: ContainerRect,
    config: Optional[OverlayConfig] = None,
) -> bool:
    """Whether a client pixel position lands on the painted callout.

    The test runs against the painted frame (after the pixel floor), so
    small callouts are as easy to hit as they look.
    """
    if not container.is_measured:
        return False
    if not (is_finite_number(point_x) and is_finite_number(point_y)):
        return False
    plan = build_paint_plan(callout, config)
    if plan is None:
        return False

    local_x = point_x - container.left
    local_y = point_y - container.top
    frame = painted_frame(plan, container.width, container.height)
    if (frame.width <= 0 or frame.height <= 0) and plan.shape != Shape.FREEHAND.value:
        return False
    u = (local_x - frame.x) / frame.width * 100.0 if frame.width > 0 else 50.0
    v = (local_y - frame.y) / frame.height * 100.0 if frame.height > 0 else 50.0
    spec = get_shape_spec(plan.shape)
    return bool(spec.hit(plan, u, v, frame, local_x, local_y))


def hit_test_topmost(
    callouts: Sequence[Callout],
    point_x: float,
    point_y: float,
    container: ContainerRect,
    config: Optional[OverlayConfig] = None,
) -> Optional[Callout]:
    """Topmost (last painted) callout under the position, if any."""
    for callout in reversed(callouts):
        if hit_test(callout, point_x, point_y, container, config):
            return callout
    return None
