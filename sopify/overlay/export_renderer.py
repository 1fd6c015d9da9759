"""Static HTML export of callouts.

Renders callout records into self-contained HTML with Jinja2 templates
(templates/). The markup is what the document export layer places over each
screenshot: absolutely positioned elements whose left/top/width/height,
pixel floors and colors match the live overlay exactly. Numbered callouts
with reveal text export as plain badges; with interactive=True they also
carry their reveal text and a small click-to-reveal script.

Usage:
    markup = render_callouts_to_markup(screenshot.callouts, interactive=True)
    figure = render_screenshot_html(screenshot, "step-03.png")
    page = render_screenshot_page(screenshot, "step-03.png", title="Step 3")
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from . import styles
from .callout import Callout, Screenshot, load_callouts
from .geometry import Box
from .overlay_config import OverlayConfig
from .paint import (
    BlurEffect,
    Color,
    Ellipse,
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

TEMPLATE_DIR = Path(__file__).parent / "templates"

OVERLAY_CSS = {"position": "absolute", "inset": "0", "pointer-events": "none"}
WRAPPER_CSS = {
    "position": "relative",
    "display": "inline-block",
    "max-width": "100%",
    "margin": "0",
}
IMAGE_CSS = {"display": "block", "width": "100%", "height": "auto"}


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _svg_part(kind: str, attrs: dict[str, str]) -> dict[str, Any]:
    return {
        "kind": kind,
        "svg_style": styles.css_text(styles.svg_css()),
        "svg_attrs": styles.svg_attrs(),
        "attrs": attrs,
    }


def _parts(
    plan: PaintPlan,
    interactive: bool,
    image_src: Optional[str],
    config: OverlayConfig,
) -> list[dict[str, Any]]:
    parts = []
    for primitive in plan.primitives:
        if isinstance(primitive, Ellipse):
            parts.append({"kind": "box", "style": styles.css_text(styles.ellipse_css(primitive))})
        elif isinstance(primitive, RoundedRect):
            parts.append({"kind": "box", "style": styles.css_text(styles.rect_css(primitive))})
        elif isinstance(primitive, Polygon):
            parts.append(_svg_part("polygon", styles.polygon_attrs(primitive)))
        elif isinstance(primitive, Stroke):
            parts.append(_svg_part("path", styles.stroke_attrs(primitive)))
        elif isinstance(primitive, Label):
            parts.append(
                {
                    "kind": "label",
                    "style": styles.css_text(styles.label_css(primitive)),
                    "text": primitive.text,
                }
            )
        elif isinstance(primitive, RevealIndicator):
            # Without the script there is nothing to click, so no indicator
            if interactive:
                parts.append(
                    {
                        "kind": "indicator",
                        "style": styles.css_text(styles.indicator_css(primitive, False, config)),
                        "text": styles.indicator_text(False),
                    }
                )
        elif isinstance(primitive, BlurEffect):
            parts.append(
                {
                    "kind": "effect",
                    "effect": primitive.mode,
                    "style": styles.css_text(styles.blur_css(primitive)),
                }
            )
        elif isinstance(primitive, MagnifierEffect):
            image_css = styles.magnifier_image_css(primitive) if image_src else None
            parts.append(
                {
                    "kind": "magnifier",
                    "zoom": str(primitive.zoom_level),
                    "style": styles.css_text(styles.magnifier_css(primitive)),
                    "image_style": styles.css_text(image_css) if image_css else None,
                    "src": image_src if image_css else None,
                }
            )
        else:
            logger.warning("No export markup for primitive %s", type(primitive).__name__)
    return parts


def build_export_items(
    callouts: Iterable[Union[Callout, dict]],
    image_box: Optional[Box] = None,
    *,
    interactive: bool = False,
    image_src: Optional[str] = None,
    config: Optional[OverlayConfig] = None,
) -> list[dict[str, Any]]:
    """Template context for each paintable callout, in z-order."""
    config = config or OverlayConfig()
    items = []
    for callout in load_callouts(callouts):
        plan = build_paint_plan(callout, config)
        if plan is None:
            continue
        revealable = interactive and plan.interactive
        items.append(
            {
                "id": plan.callout_id,
                "shape": plan.shape,
                "style": styles.css_text(styles.frame_css(plan, image_box)),
                "reveal_text": plan.reveal_text if revealable else None,
                "number": callout.number if revealable else None,
                "parts": _parts(plan, interactive, image_src, config),
            }
        )
    return items


def render_callouts_to_markup(
    callouts: Iterable[Union[Callout, dict]],
    image_box: Optional[Box] = None,
    *,
    interactive: bool = False,
    image_src: Optional[str] = None,
    config: Optional[OverlayConfig] = None,
) -> str:
    """Render callouts as an absolutely positioned HTML overlay.

    Args:
        callouts: Callout records or their persisted dicts, in z-order.
        image_box: Image rect inside the positioned wrapper, in percent
            (default: the image fills the wrapper).
        interactive: Attach reveal text and the click-to-reveal script.
        image_src: Screenshot URL, needed by magnifier callouts.
        config: Overlay configuration.

    Returns:
        HTML fragment, or an empty string if nothing could be painted.
    """
    config = config or OverlayConfig()
    items = build_export_items(
        callouts, image_box, interactive=interactive, image_src=image_src, config=config
    )
    if not items:
        return ""

    has_reveal = any(item["reveal_text"] is not None for item in items)
    template = _environment().get_template("callouts.html")
    return template.render(
        items=items,
        overlay_style=styles.css_text(OVERLAY_CSS),
        interactive=interactive and has_reveal,
        popup_style=styles.css_text(styles.popup_css(config)),
        number_style=styles.css_text(styles.popup_number_css(config)),
        close_style=styles.css_text(styles.popup_close_css()),
        close_mark=styles.POPUP_CLOSE_MARK,
        ring_style=styles.revealed_ring_css(config)["box-shadow"],
        revealed_mark=styles.indicator_text(True),
        revealed_color=Color.parse(config.revealed_indicator_color).css(),
    ).strip()


def render_screenshot_html(
    screenshot: Screenshot,
    image_src: str,
    *,
    interactive: bool = False,
    alt: Optional[str] = None,
    config: Optional[OverlayConfig] = None,
) -> str:
    """Render a screenshot image with its callout overlay.

    Args:
        screenshot: Screenshot whose callouts are drawn.
        image_src: URL or data URI of the screenshot image.
        interactive: Enable click-to-reveal.
        alt: Image alt text (defaults to the image reference).
        config: Overlay configuration.

    Returns:
        A positioned <figure> wrapping the image and its callouts.
    """
    markup = render_callouts_to_markup(
        screenshot.callouts,
        interactive=interactive,
        image_src=image_src,
        config=config,
    )
    template = _environment().get_template("screenshot.html")
    return template.render(
        wrapper_style=styles.css_text(WRAPPER_CSS),
        image_src=image_src,
        image_style=styles.css_text(IMAGE_CSS),
        alt=alt if alt is not None else screenshot.image_ref,
        markup=markup,
    ).strip()


def render_screenshot_page(
    screenshot: Screenshot,
    image_src: str,
    *,
    title: Optional[str] = None,
    interactive: bool = False,
    alt: Optional[str] = None,
    config: Optional[OverlayConfig] = None,
) -> str:
    """Render a standalone HTML page around render_screenshot_html().

    The title defaults to the image file name.
    """
    figure = render_screenshot_html(
        screenshot, image_src, interactive=interactive, alt=alt, config=config
    )
    if title is None:
        title = Path(screenshot.image_ref).name if screenshot.image_ref else "Screenshot"
    template = _environment().get_template("page.html")
    return template.render(title=title, figure=figure)
