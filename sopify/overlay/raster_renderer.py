"""Pillow rendering of callouts onto screenshot pixels.

Used for PDF and PNG export, where no browser is available to lay out the
HTML overlay. Interprets the same paint plans as the HTML renderers, with
the image itself as the container: the frame gets the same pixel floor and
square rule, so a callout lands where the HTML overlay would draw it on an
image shown at its natural size. All functions accept an explicit DPI
scale factor applied to pixel floors, stroke widths and fonts.
"""

import io
import logging
from functools import lru_cache
from typing import Iterable, Optional, Union

from PIL import Image, ImageChops, ImageDraw, ImageFilter, ImageFont

from .callout import Callout, load_callouts
from .geometry import PixelRect, apply_min_pixels
from .overlay_config import OverlayConfig
from .paint import (
    BlurEffect,
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
from .shapes import build_paint_plan

logger = logging.getLogger(__name__)

DASH_LENGTH = 6
DASH_GAP = 4

_BOLD_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")
_REGULAR_FONTS = ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf")


@lru_cache(maxsize=32)
def load_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    """Load a TrueType font, falling back to Pillow's default font."""
    for name in _BOLD_FONTS if bold else _REGULAR_FONTS:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def pixel_frame(plan: PaintPlan, image_size: tuple[int, int], dpi_scale: float = 1.0) -> PixelRect:
    """Painted frame of a plan on an image, floor and square rule applied."""
    width, height = image_size
    rect = plan.frame.to_pixels(width, height)
    return apply_min_pixels(
        rect,
        plan.min_width_px * dpi_scale,
        plan.min_height_px * dpi_scale,
        plan.square,
    )


def _box(frame: PixelRect) -> list[float]:
    return [frame.x, frame.y, frame.x + frame.width, frame.y + frame.height]


def _to_frame(frame: PixelRect, points) -> list[tuple[float, float]]:
    return [
        (frame.x + u / 100.0 * frame.width, frame.y + v / 100.0 * frame.height)
        for u, v in points
    ]


def _scaled_width(width: float, dpi_scale: float) -> int:
    if width <= 0:
        return 0
    return max(1, int(round(width * dpi_scale)))


def _gradient_fill(size: tuple[int, int], fill: Fill) -> Image.Image:
    """135 degree gradient (top-left to bottom-right) of the given size."""
    horizontal = Image.linear_gradient("L").transpose(Image.Transpose.ROTATE_90).resize(size)
    vertical = Image.linear_gradient("L").resize(size)
    mask = ImageChops.add(horizontal, vertical, scale=2.0)
    start = Image.new("RGBA", size, fill.color.rgba(fill.alpha))
    end = Image.new("RGBA", size, fill.gradient_to.rgba(fill.alpha))
    return Image.composite(end, start, mask)


def draw_ellipse(layer: Image.Image, frame: PixelRect, primitive: Ellipse, dpi_scale: float = 1.0) -> None:
    draw = ImageDraw.Draw(layer, "RGBA")
    box = _box(frame)
    fill = primitive.fill
    if fill is not None and fill.gradient_to is not None:
        size = (max(1, int(round(frame.width))), max(1, int(round(frame.height))))
        mask = Image.new("L", size, 0)
        ImageDraw.Draw(mask).ellipse([0, 0, size[0] - 1, size[1] - 1], fill=255)
        layer.paste(_gradient_fill(size, fill), (int(round(frame.x)), int(round(frame.y))), mask)
        fill = None

    width = _scaled_width(primitive.stroke_width, dpi_scale) if primitive.stroke else 0
    draw.ellipse(
        box,
        fill=fill.color.rgba(fill.alpha) if fill is not None else None,
        outline=primitive.stroke.rgba() if width else None,
        width=width or 1,
    )


def _dashed_line(draw: ImageDraw.ImageDraw, start, end, color, width: int, dpi_scale: float) -> None:
    (x1, y1), (x2, y2) = start, end
    length = ((x2 - x1) ** 2 + (y2 - y1) ** 2) ** 0.5
    if length == 0:
        return
    dash = DASH_LENGTH * dpi_scale
    step = (DASH_LENGTH + DASH_GAP) * dpi_scale
    position = 0.0
    while position < length:
        a = position / length
        b = min(position + dash, length) / length
        draw.line(
            [(x1 + (x2 - x1) * a, y1 + (y2 - y1) * a), (x1 + (x2 - x1) * b, y1 + (y2 - y1) * b)],
            fill=color,
            width=width,
        )
        position += step


def draw_rounded_rect(
    layer: Image.Image, frame: PixelRect, primitive: RoundedRect, dpi_scale: float = 1.0
) -> None:
    draw = ImageDraw.Draw(layer, "RGBA")
    box = _box(frame)
    radius = primitive.radius_px * dpi_scale
    fill = primitive.fill.color.rgba(primitive.fill.alpha) if primitive.fill else None
    width = _scaled_width(primitive.stroke_width, dpi_scale) if primitive.stroke else 0

    if not primitive.dashed:
        draw.rounded_rectangle(
            box, radius=radius, fill=fill, outline=primitive.stroke.rgba() if width else None, width=width or 1
        )
        return

    if fill is not None:
        draw.rounded_rectangle(box, radius=radius, fill=fill)
    if width:
        x0, y0, x1, y1 = box
        color = primitive.stroke.rgba()
        for start, end in (((x0, y0), (x1, y0)), ((x1, y0), (x1, y1)), ((x1, y1), (x0, y1)), ((x0, y1), (x0, y0))):
            _dashed_line(draw, start, end, color, width, dpi_scale)


def draw_polygon(layer: Image.Image, frame: PixelRect, primitive: Polygon, dpi_scale: float = 1.0) -> None:
    draw = ImageDraw.Draw(layer, "RGBA")
    width = _scaled_width(primitive.stroke_width, dpi_scale) if primitive.stroke else 0
    draw.polygon(
        _to_frame(frame, primitive.points),
        fill=primitive.fill.color.rgba(primitive.fill.alpha) if primitive.fill else None,
        outline=primitive.stroke.rgba() if width else None,
        width=width or 1,
    )


def draw_stroke(layer: Image.Image, frame: PixelRect, primitive: Stroke, dpi_scale: float = 1.0) -> None:
    draw = ImageDraw.Draw(layer, "RGBA")
    points = _to_frame(frame, primitive.points)
    width = _scaled_width(primitive.stroke_width, dpi_scale)
    color = primitive.color.rgba()
    draw.line(points, fill=color, width=width, joint="curve")
    # Round caps
    radius = width / 2
    for x, y in (points[0], points[-1]):
        draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=color)


def draw_label(layer: Image.Image, frame: PixelRect, primitive: Label, dpi_scale: float = 1.0) -> None:
    draw = ImageDraw.Draw(layer, "RGBA")
    font = load_font(max(1, int(round(primitive.font_size * dpi_scale))), primitive.bold)
    center = (frame.x + frame.width / 2, frame.y + frame.height / 2)
    draw.text(center, primitive.text, fill=primitive.color.rgba(), font=font, anchor="mm")


def apply_blur(image: Image.Image, frame: PixelRect, primitive: BlurEffect, dpi_scale: float = 1.0) -> None:
    """Blur or pixelate the pixels under the frame, in place."""
    left = max(0, int(frame.x))
    top = max(0, int(frame.y))
    right = min(image.width, int(round(frame.x + frame.width)))
    bottom = min(image.height, int(round(frame.y + frame.height)))
    if right <= left or bottom <= top:
        return

    region = image.crop((left, top, right, bottom))
    if primitive.mode == "pixelate":
        pixel_size = max(1, int(round(primitive.intensity * 2 * dpi_scale)))
        small = region.resize(
            (max(1, region.width // pixel_size), max(1, region.height // pixel_size)),
            Image.Resampling.BILINEAR,
        )
        region = small.resize(region.size, Image.Resampling.NEAREST)
    else:
        region = region.filter(ImageFilter.GaussianBlur(primitive.intensity * dpi_scale))
    image.paste(region, (left, top))


def apply_magnifier(
    image: Image.Image, source: Image.Image, frame: PixelRect, primitive: MagnifierEffect
) -> None:
    """Draw the zoomed source image into a round lens, in place.

    The crop matches the positioned image the HTML renderers use, so the
    lens shows the same region at the same scale.
    """
    size = (int(round(frame.width)), int(round(frame.height)))
    if size[0] <= 0 or size[1] <= 0:
        return
    inner = primitive.inner_rect()
    if inner is None:
        return
    left, top, width, height = inner
    inner_left = left / 100.0 * frame.width
    inner_top = top / 100.0 * frame.height
    inner_width = width / 100.0 * frame.width
    inner_height = height / 100.0 * frame.height
    crop = (
        -inner_left / inner_width * source.width,
        -inner_top / inner_height * source.height,
        (frame.width - inner_left) / inner_width * source.width,
        (frame.height - inner_top) / inner_height * source.height,
    )
    lens = source.crop(tuple(int(round(v)) for v in crop)).resize(size, Image.Resampling.LANCZOS)
    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).ellipse([0, 0, size[0] - 1, size[1] - 1], fill=255)
    image.paste(lens, (int(round(frame.x)), int(round(frame.y))), mask)


def _apply_opacity(layer: Image.Image, opacity: float) -> Image.Image:
    if opacity >= 1.0:
        return layer
    alpha = layer.getchannel("A").point(lambda a: int(a * max(0.0, opacity)))
    layer.putalpha(alpha)
    return layer


def render_plan(
    image: Image.Image,
    source: Image.Image,
    plan: PaintPlan,
    dpi_scale: float = 1.0,
) -> Image.Image:
    """Paint one plan onto an RGBA image and return the composite."""
    frame = pixel_frame(plan, image.size, dpi_scale)
    layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
    for primitive in plan.primitives:
        if isinstance(primitive, BlurEffect):
            apply_blur(image, frame, primitive, dpi_scale)
        elif isinstance(primitive, MagnifierEffect):
            apply_magnifier(image, source, frame, primitive)
        elif isinstance(primitive, Ellipse):
            draw_ellipse(layer, frame, primitive, dpi_scale)
        elif isinstance(primitive, RoundedRect):
            draw_rounded_rect(layer, frame, primitive, dpi_scale)
        elif isinstance(primitive, Polygon):
            draw_polygon(layer, frame, primitive, dpi_scale)
        elif isinstance(primitive, Stroke):
            draw_stroke(layer, frame, primitive, dpi_scale)
        elif isinstance(primitive, Label):
            draw_label(layer, frame, primitive, dpi_scale)
        elif isinstance(primitive, RevealIndicator):
            # Static output has no reveal interaction
            continue
        else:
            logger.warning("No raster drawing for primitive %s", type(primitive).__name__)
    return Image.alpha_composite(image, _apply_opacity(layer, plan.opacity))


def render_callouts_on_image(
    image: Image.Image,
    callouts: Iterable[Union[Callout, dict]],
    config: Optional[OverlayConfig] = None,
    dpi_scale: float = 1.0,
) -> Image.Image:
    """Render callouts onto a copy of a screenshot.

    Args:
        image: Screenshot to annotate (left unchanged).
        callouts: Callout records or persisted dicts, in z-order.
        config: Overlay configuration.
        dpi_scale: DPI scale factor (e.g., 2.0 for Retina captures).

    Returns:
        New RGBA image with the callouts drawn.
    """
    config = config or OverlayConfig()
    source = image.convert("RGBA")
    result = source.copy()
    for callout in load_callouts(callouts):
        plan = build_paint_plan(callout, config)
        if plan is None:
            continue
        result = render_plan(result, source, plan, dpi_scale)
    return result


def render_callouts_to_png(
    image: Union[Image.Image, bytes],
    callouts: Iterable[Union[Callout, dict]],
    config: Optional[OverlayConfig] = None,
    dpi_scale: float = 1.0,
) -> bytes:
    """Render callouts onto a screenshot and encode the result as PNG.

    Args:
        image: PIL Image or encoded image bytes.
        callouts: Callout records or persisted dicts, in z-order.
        config: Overlay configuration.
        dpi_scale: DPI scale factor.

    Returns:
        Annotated image as PNG bytes.
    """
    if isinstance(image, bytes):
        image = Image.open(io.BytesIO(image))

    annotated = render_callouts_on_image(image, callouts, config, dpi_scale)

    buf = io.BytesIO()
    annotated.save(buf, format="PNG")
    return buf.getvalue()
