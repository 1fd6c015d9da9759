"""CSS values for paint plans.

The live and export renderers build different outputs (an element tree and
an HTML string) but take every number, color and CSS property from here.
Properties are returned as ordered dicts of kebab-case CSS names; the live
renderer converts them to camelCase props.
"""

from __future__ import annotations

from typing import Optional

from .geometry import Box, map_into_image_box
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
    format_number,
)

INDICATOR_HIDDEN = "?"
INDICATOR_REVEALED = "✓"
POPUP_CLOSE_MARK = "×"

SVG_VIEW_BOX = "0 0 100 100"


def pct(value: float) -> str:
    return f"{format_number(value)}%"


def px(value: float) -> str:
    return f"{format_number(value)}px"


def frame_css(plan: PaintPlan, image_box: Optional[Box] = None) -> dict[str, str]:
    """Positioning of a callout's frame inside the overlay.

    The box is mapped through image_box, then the pixel floor and square
    rule are expressed as min-width/min-height and aspect-ratio.
    """
    box = map_into_image_box(plan.frame, image_box)
    css = {
        "position": "absolute",
        "left": pct(box.x),
        "top": pct(box.y),
        "width": pct(box.width),
    }
    if plan.square:
        css["height"] = "auto"
        css["aspect-ratio"] = "1 / 1"
    else:
        css["height"] = pct(box.height)
    if plan.min_width_px:
        css["min-width"] = px(plan.min_width_px)
    if plan.min_height_px:
        css["min-height"] = px(plan.min_height_px)
    css["box-sizing"] = "border-box"
    if plan.border_radius:
        css["border-radius"] = plan.border_radius
    if any(isinstance(p, (BlurEffect, MagnifierEffect)) for p in plan.primitives):
        css["overflow"] = "hidden"
    if plan.opacity < 1:
        css["opacity"] = format_number(max(0.0, plan.opacity))
    if plan.interactive:
        css["cursor"] = "pointer"
    return css


def _border(stroke: Optional[Color], width: float, dashed: bool = False) -> str:
    if stroke is None or width <= 0:
        return "none"
    return f"{px(width)} {'dashed' if dashed else 'solid'} {stroke.css()}"


def ellipse_css(primitive: Ellipse) -> dict[str, str]:
    return {
        "position": "absolute",
        "inset": "0",
        "box-sizing": "border-box",
        "border-radius": "50%",
        "background": primitive.fill.css() if primitive.fill else "transparent",
        "border": _border(primitive.stroke, primitive.stroke_width),
    }


def rect_css(primitive: RoundedRect) -> dict[str, str]:
    return {
        "position": "absolute",
        "inset": "0",
        "box-sizing": "border-box",
        "border-radius": px(primitive.radius_px),
        "background": primitive.fill.css() if primitive.fill else "transparent",
        "border": _border(primitive.stroke, primitive.stroke_width, primitive.dashed),
    }


def label_css(primitive: Label) -> dict[str, str]:
    return {
        "position": "absolute",
        "inset": "0",
        "display": "flex",
        "align-items": "center",
        "justify-content": "center",
        "color": primitive.color.css(),
        "font-size": px(primitive.font_size),
        "font-family": primitive.font_family,
        "font-weight": "700" if primitive.bold else "400",
        "line-height": "1",
        "text-align": "center",
        "white-space": "nowrap",
        "pointer-events": "none",
    }


def blur_css(primitive: BlurEffect) -> dict[str, str]:
    # Pixelation has no CSS filter; a coarser blur stands in for it
    radius = primitive.intensity if primitive.mode == "blur" else primitive.intensity * 2
    value = f"blur({px(radius)})"
    return {
        "position": "absolute",
        "inset": "0",
        "backdrop-filter": value,
        "-webkit-backdrop-filter": value,
    }


def magnifier_css(primitive: MagnifierEffect) -> dict[str, str]:
    return {
        "position": "absolute",
        "inset": "0",
        "overflow": "hidden",
        "border-radius": "50%",
    }


def magnifier_image_css(primitive: MagnifierEffect) -> Optional[dict[str, str]]:
    """Zoomed image placement inside the lens; None for a zero-size frame."""
    inner = primitive.inner_rect()
    if inner is None:
        return None
    left, top, width, height = inner
    return {
        "position": "absolute",
        "left": pct(left),
        "top": pct(top),
        "width": pct(width),
        "height": pct(height),
        "max-width": "none",
        "pointer-events": "none",
    }


def indicator_css(
    primitive: RevealIndicator, revealed: bool, config: OverlayConfig
) -> dict[str, str]:
    color = config.revealed_indicator_color if revealed else config.reveal_indicator_color
    return {
        "position": "absolute",
        "top": "-4px",
        "right": "-4px",
        "width": px(primitive.size_px),
        "height": px(primitive.size_px),
        "border-radius": "50%",
        "background": Color.parse(color).css(),
        "color": "#FFFFFF",
        "font-size": "8px",
        "font-weight": "700",
        "display": "flex",
        "align-items": "center",
        "justify-content": "center",
        "pointer-events": "none",
    }


def indicator_text(revealed: bool) -> str:
    return INDICATOR_REVEALED if revealed else INDICATOR_HIDDEN


def svg_css() -> dict[str, str]:
    return {
        "position": "absolute",
        "inset": "0",
        "width": "100%",
        "height": "100%",
        "overflow": "visible",
        "pointer-events": "none",
    }


def svg_attrs() -> dict[str, str]:
    return {"viewBox": SVG_VIEW_BOX, "preserveAspectRatio": "none"}


def polygon_attrs(primitive: Polygon) -> dict[str, str]:
    points = " ".join(
        f"{format_number(x)},{format_number(y)}" for x, y in primitive.points
    )
    return {
        "points": points,
        "fill": primitive.fill.color.css(primitive.fill.alpha) if primitive.fill else "none",
        "stroke": primitive.stroke.css() if primitive.stroke else "none",
        "stroke-width": format_number(primitive.stroke_width),
        "stroke-linejoin": "round",
        "vector-effect": "non-scaling-stroke",
    }


def stroke_attrs(primitive: Stroke) -> dict[str, str]:
    return {
        "d": primitive.svg_path(),
        "fill": "none",
        "stroke": primitive.color.css(),
        "stroke-width": format_number(primitive.stroke_width),
        "stroke-linecap": "round",
        "stroke-linejoin": "round",
        "vector-effect": "non-scaling-stroke",
    }


def selection_css(config: OverlayConfig) -> dict[str, str]:
    return {
        "outline": f"2px solid {Color.parse(config.selection_color).css()}",
        "outline-offset": "2px",
    }


def revealed_ring_css(config: OverlayConfig) -> dict[str, str]:
    color = Color.parse(config.revealed_indicator_color)
    return {"box-shadow": f"0 0 0 3px {color.css()}"}


def css_text(css: dict[str, str]) -> str:
    """Serialize a property dict as an inline style attribute value."""
    return "; ".join(f"{name}: {value}" for name, value in css.items())


def popup_css(config: OverlayConfig) -> dict[str, str]:
    """Reveal popup box; the renderer adds left/top."""
    return {
        "display": "flex",
        "align-items": "center",
        "transform": "translate(-50%, calc(-100% - 12px))",
        "background": "#1F2937",
        "color": "#FFFFFF",
        "padding": "8px 12px",
        "border-radius": "8px",
        "font-size": "14px",
        "font-family": config.font_family,
        "line-height": "1.4",
        "max-width": "280px",
        "box-shadow": "0 4px 12px rgba(0, 0, 0, 0.3)",
        "pointer-events": "auto",
        "z-index": "50",
    }


def popup_number_css(config: OverlayConfig) -> dict[str, str]:
    """Step number badge at the start of the reveal popup."""
    start, end = config.reveal_gradient
    fill = Fill(Color.parse(start), gradient_to=Color.parse(end))
    return {
        "display": "inline-flex",
        "align-items": "center",
        "justify-content": "center",
        "width": "20px",
        "height": "20px",
        "margin-right": "8px",
        "border-radius": "50%",
        "background": fill.css(),
        "font-size": "12px",
        "font-weight": "bold",
    }


def popup_close_css() -> dict[str, str]:
    return {
        "margin-left": "8px",
        "padding": "0",
        "border": "none",
        "background": "transparent",
        "color": "inherit",
        "font-size": "16px",
        "line-height": "1",
        "cursor": "pointer",
    }
