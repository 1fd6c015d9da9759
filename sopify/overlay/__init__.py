from .geometry import (
    Box,
    ContainerRect,
    PixelRect,
    pointer_to_percent,
    clamp_box,
    place_centered,
    apply_min_pixels,
)
from .callout import (
    Shape,
    Callout,
    CalloutStyle,
    BlurData,
    MagnifierData,
    PolygonData,
    FreehandData,
    Screenshot,
    load_callouts,
)
from .overlay_config import OverlayConfig
from .paint import PaintPlan, Color, format_number
from .shapes import (
    ShapeSpec,
    get_shape_spec,
    build_paint_plan,
    hit_test,
    hit_test_topmost,
)
from .reveal import RevealState
from .controller import (
    ControllerState,
    InteractionController,
    OverlayHost,
    PointerEvent,
    ToolOptions,
    next_number,
)
from .live_renderer import OverlayElement, render_live_overlay
from .export_renderer import (
    render_callouts_to_markup,
    render_screenshot_html,
    render_screenshot_page,
)
from .raster_renderer import render_callouts_on_image, render_callouts_to_png

__all__ = [
    "Box",
    "ContainerRect",
    "PixelRect",
    "pointer_to_percent",
    "clamp_box",
    "place_centered",
    "apply_min_pixels",
    "Shape",
    "Callout",
    "CalloutStyle",
    "BlurData",
    "MagnifierData",
    "PolygonData",
    "FreehandData",
    "Screenshot",
    "load_callouts",
    "OverlayConfig",
    "PaintPlan",
    "Color",
    "format_number",
    "ShapeSpec",
    "get_shape_spec",
    "build_paint_plan",
    "hit_test",
    "hit_test_topmost",
    "RevealState",
    "ControllerState",
    "InteractionController",
    "OverlayHost",
    "PointerEvent",
    "ToolOptions",
    "next_number",
    "OverlayElement",
    "render_live_overlay",
    "render_callouts_to_markup",
    "render_screenshot_html",
    "render_screenshot_page",
    "render_callouts_on_image",
    "render_callouts_to_png",
]
