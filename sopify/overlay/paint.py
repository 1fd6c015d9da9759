"""Renderer-agnostic paint primitives.

The shape registry describes every callout as a PaintPlan: a frame (the
callout box plus its pixel floor) and a list of primitives laid out in a
0-100 x 0-100 view box local to that frame. The live, export and raster
renderers only interpret these primitives, so placement and appearance are
decided in one place.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .geometry import Box

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

FALLBACK_COLOR = "#FF6B6B"


def format_number(value: float) -> str:
    """Format a coordinate the same way in every renderer.

    Rounds to 4 decimals and strips trailing zeros: 47.0 -> "47",
    12.345678 -> "12.3457", -0.0 -> "0".
    """
    text = f"{round(float(value), 4):.4f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


@dataclass(frozen=True)
class Color:
    """An sRGB color parsed from a hex string."""

    red: int
    green: int
    blue: int

    @classmethod
    def parse(cls, value: Optional[str], fallback: str = FALLBACK_COLOR) -> Color:
        """Parse #RGB / #RRGGBB, falling back for malformed input."""
        match = _HEX_RE.match(value.strip()) if isinstance(value, str) else None
        if match is None:
            if value is not None:
                logger.warning("Invalid color %r, using %s", value, fallback)
            match = _HEX_RE.match(fallback)
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return cls(
            red=int(digits[0:2], 16),
            green=int(digits[2:4], 16),
            blue=int(digits[4:6], 16),
        )

    def hex(self) -> str:
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"

    def css(self, alpha: float = 1.0) -> str:
        """CSS color: hex when opaque, rgba() otherwise."""
        if alpha >= 1.0:
            return self.hex()
        return (
            f"rgba({self.red}, {self.green}, {self.blue}, "
            f"{format_number(max(0.0, alpha))})"
        )

    def rgba(self, alpha: float = 1.0) -> Tuple[int, int, int, int]:
        """RGBA tuple for Pillow."""
        a = int(round(max(0.0, min(1.0, alpha)) * 255))
        return (self.red, self.green, self.blue, a)


@dataclass(frozen=True)
class Fill:
    """Solid fill, or a 135 degree linear gradient when gradient_to is set."""

    color: Color
    alpha: float = 1.0
    gradient_to: Optional[Color] = None

    def css(self) -> str:
        if self.gradient_to is not None:
            return (
                f"linear-gradient(135deg, {self.color.css(self.alpha)}, "
                f"{self.gradient_to.css(self.alpha)})"
            )
        return self.color.css(self.alpha)


@dataclass(frozen=True)
class Ellipse:
    """Ellipse filling the whole frame."""

    fill: Optional[Fill]
    stroke: Optional[Color]
    stroke_width: float = 2


@dataclass(frozen=True)
class RoundedRect:
    """Rectangle filling the whole frame."""

    fill: Optional[Fill]
    stroke: Optional[Color]
    stroke_width: float = 2
    radius_px: float = 0
    dashed: bool = False


@dataclass(frozen=True)
class Polygon:
    """Closed polygon; points are in view-box units (0-100 on each axis)."""

    points: Tuple[Tuple[float, float], ...]
    fill: Optional[Fill]
    stroke: Optional[Color]
    stroke_width: float = 2


@dataclass(frozen=True)
class Stroke:
    """Open polyline with round caps and joins, in view-box units."""

    points: Tuple[Tuple[float, float], ...]
    color: Color
    stroke_width: float = 3

    def svg_path(self) -> str:
        """SVG path data for the polyline ("M x y L x y ...")."""
        commands = []
        for index, (px, py) in enumerate(self.points):
            op = "M" if index == 0 else "L"
            commands.append(f"{op} {format_number(px)} {format_number(py)}")
        return " ".join(commands)


@dataclass(frozen=True)
class Label:
    """Text centered in the frame."""

    text: str
    color: Color
    font_size: float
    font_family: str
    bold: bool = False


@dataclass(frozen=True)
class RevealIndicator:
    """Corner dot marking a click-to-reveal callout (shows ? or a check)."""

    size_px: float = 12


@dataclass(frozen=True)
class BlurEffect:
    """Obscure the image under the frame (mode is "blur" or "pixelate")."""

    intensity: float = 5
    mode: str = "blur"


@dataclass(frozen=True)
class MagnifierEffect:
    """Show the image around (focus_x, focus_y) scaled by zoom_level.

    focus is in image percentages; frame is the callout box it is drawn in.
    """

    zoom_level: float
    focus_x: float
    focus_y: float
    frame: Box

    def inner_rect(self) -> Optional[Tuple[float, float, float, float]]:
        """Zoomed image rect as (left, top, width, height) frame percentages.

        The image is scaled to zoom_level times the container size and
        offset so the focus point sits at the frame center. None when the
        frame has no area to show it in.
        """
        if self.frame.width <= 0 or self.frame.height <= 0:
            return None
        width = 100.0 * self.zoom_level * 100.0 / self.frame.width
        height = 100.0 * self.zoom_level * 100.0 / self.frame.height
        left = 50.0 - self.focus_x / 100.0 * width
        top = 50.0 - self.focus_y / 100.0 * height
        return (left, top, width, height)


Primitive = Union[
    Ellipse,
    RoundedRect,
    Polygon,
    Stroke,
    Label,
    RevealIndicator,
    BlurEffect,
    MagnifierEffect,
]


@dataclass(frozen=True)
class PaintPlan:
    """Everything a renderer needs to draw one callout.

    Attributes:
        callout_id: Id of the source record (None for drafts/previews).
        shape: Shape name, used for data-shape attributes and class names.
        frame: Callout box in image percentages.
        min_width_px: Paint-time width floor in pixels.
        min_height_px: Paint-time height floor in pixels.
        square: Height follows width (aspect-ratio 1 / 1).
        opacity: Element opacity (1.0 = opaque).
        primitives: Draw instructions in frame view-box units, back to front.
        interactive: True for click-to-reveal callouts.
        reveal_text: Hidden text for click-to-reveal callouts.
        border_radius: CSS-style corner rounding of the frame ("50%" for
            round frames), used for clipping effects.
    """

    callout_id: Optional[str]
    shape: str
    frame: Box
    min_width_px: float = 0
    min_height_px: float = 0
    square: bool = False
    opacity: float = 1.0
    primitives: Tuple[Primitive, ...] = field(default_factory=tuple)
    interactive: bool = False
    reveal_text: Optional[str] = None
    border_radius: Optional[str] = None
