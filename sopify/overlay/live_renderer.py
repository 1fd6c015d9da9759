"""Live overlay renderer.

Builds a tree of DOM-style elements (tag, camelCase style props, attributes,
children) for the interactive editor. The host UI mounts the tree as-is;
to_dict() gives a JSON form for transport. Layout and colors come from the
shared paint plans and styles, so this tree and the static export agree on
where every callout sits. On top of that the live tree adds decorations the
export has no use for: the selection ring, the revealed ring and indicator
state, the reveal popup, a placement preview and the stroke being drawn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Optional, Sequence, Tuple, Union

from . import styles
from .callout import Callout, MagnifierData, Shape
from .geometry import Box, ContainerRect, map_into_image_box, place_centered
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
from .reveal import RevealState
from .shapes import build_paint_plan, get_shape_spec

logger = logging.getLogger(__name__)

PREVIEW_OPACITY = 0.5


def camel_case(name: str) -> str:
    """Convert a kebab-case CSS/SVG name to a camelCase prop name.

    >>> camel_case("-webkit-backdrop-filter")
    'WebkitBackdropFilter'
    """
    parts = [part for part in name.split("-") if part]
    head = parts[0].capitalize() if name.startswith("-") else parts[0]
    return head + "".join(part.capitalize() for part in parts[1:])


def _props(css: dict[str, str]) -> dict[str, str]:
    return {camel_case(name): value for name, value in css.items()}


def _attrs(attrs: dict[str, str]) -> dict[str, str]:
    # data-* attributes keep their names
    return {
        name if name.startswith("data-") else camel_case(name): value
        for name, value in attrs.items()
    }


@dataclass
class OverlayElement:
    """One node of the live overlay tree."""

    tag: str
    style: dict[str, str] = field(default_factory=dict)
    attrs: dict[str, str] = field(default_factory=dict)
    children: list[OverlayElement] = field(default_factory=list)
    text: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tag": self.tag, "style": dict(self.style), "attrs": dict(self.attrs)}
        if self.text is not None:
            data["text"] = self.text
        data["children"] = [child.to_dict() for child in self.children]
        return data

    def walk(self) -> Iterator[OverlayElement]:
        """This element and all descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find_all(self, predicate: Callable[[OverlayElement], bool]) -> list[OverlayElement]:
        return [element for element in self.walk() if predicate(element)]

    def find_callout(self, callout_id: str) -> Optional[OverlayElement]:
        for element in self.walk():
            if element.attrs.get("data-callout-id") == callout_id:
                return element
        return None


def _svg(child: OverlayElement) -> OverlayElement:
    return OverlayElement(
        "svg", style=_props(styles.svg_css()), attrs=_attrs(styles.svg_attrs()), children=[child]
    )


def _primitive_element(
    primitive,
    revealed: bool,
    image_src: Optional[str],
    config: OverlayConfig,
) -> Optional[OverlayElement]:
    if isinstance(primitive, Ellipse):
        return OverlayElement("div", style=_props(styles.ellipse_css(primitive)))
    if isinstance(primitive, RoundedRect):
        return OverlayElement("div", style=_props(styles.rect_css(primitive)))
    if isinstance(primitive, Polygon):
        return _svg(OverlayElement("polygon", attrs=_attrs(styles.polygon_attrs(primitive))))
    if isinstance(primitive, Stroke):
        return _svg(OverlayElement("path", attrs=_attrs(styles.stroke_attrs(primitive))))
    if isinstance(primitive, Label):
        return OverlayElement("span", style=_props(styles.label_css(primitive)), text=primitive.text)
    if isinstance(primitive, RevealIndicator):
        return OverlayElement(
            "span",
            style=_props(styles.indicator_css(primitive, revealed, config)),
            attrs={"data-reveal-indicator": "revealed" if revealed else "hidden"},
            text=styles.indicator_text(revealed),
        )
    if isinstance(primitive, BlurEffect):
        return OverlayElement(
            "div",
            style=_props(styles.blur_css(primitive)),
            attrs={"data-effect": primitive.mode},
        )
    if isinstance(primitive, MagnifierEffect):
        lens = OverlayElement(
            "div",
            style=_props(styles.magnifier_css(primitive)),
            attrs={"data-effect": "magnifier", "data-zoom": str(primitive.zoom_level)},
        )
        image_css = styles.magnifier_image_css(primitive) if image_src else None
        if image_css is not None:
            lens.children.append(
                OverlayElement(
                    "img",
                    style=_props(image_css),
                    attrs={"src": image_src, "alt": "", "draggable": "false"},
                )
            )
        return lens
    logger.warning("No live element for primitive %s", type(primitive).__name__)
    return None


def render_plan(
    plan: PaintPlan,
    image_box: Optional[Box] = None,
    image_src: Optional[str] = None,
    config: Optional[OverlayConfig] = None,
    revealed: bool = False,
    selected: bool = False,
) -> OverlayElement:
    """Element for one paint plan, positioned inside the overlay."""
    config = config or OverlayConfig()
    css = styles.frame_css(plan, image_box)
    if plan.interactive and revealed:
        css.update(styles.revealed_ring_css(config))
    if selected:
        css.update(styles.selection_css(config))

    attrs = {"className": f"callout callout-{plan.shape}", "data-shape": plan.shape}
    if plan.callout_id is not None:
        attrs["data-callout-id"] = plan.callout_id
    if plan.interactive:
        attrs["data-revealed"] = "true" if revealed else "false"
    if selected:
        attrs["data-selected"] = "true"

    element = OverlayElement("div", style=_props(css), attrs=attrs)
    for primitive in plan.primitives:
        child = _primitive_element(primitive, revealed, image_src, config)
        if child is not None:
            element.children.append(child)
    return element


def _preview_element(
    callouts: Sequence[Callout],
    tool: Union[Shape, str],
    hover: Tuple[float, float],
    color: str,
    image_box: Optional[Box],
    config: OverlayConfig,
) -> Optional[OverlayElement]:
    from .controller import next_number

    spec = get_shape_spec(tool)
    if spec is None or spec.shape == Shape.FREEHAND:
        return None
    box = place_centered(hover[0], hover[1], spec.default_width, spec.default_height)
    ghost = Callout(
        id=None,
        shape=spec.shape,
        x=box.x,
        y=box.y,
        width=box.width,
        height=box.height,
        color=color,
        number=next_number(callouts) if spec.shape == Shape.NUMBER else None,
        magnifier_data=MagnifierData(show_border=True) if spec.shape == Shape.MAGNIFIER else None,
    )
    plan = build_paint_plan(ghost, config)
    if plan is None:
        return None
    element = render_plan(plan, image_box, None, config)
    element.style["opacity"] = str(PREVIEW_OPACITY)
    element.style["pointerEvents"] = "none"
    element.attrs["data-preview"] = "true"
    return element


def _drawing_element(
    path: Sequence[Tuple[float, float]],
    color: str,
    image_box: Optional[Box],
    config: OverlayConfig,
) -> OverlayElement:
    if image_box is not None:
        path = [
            (
                image_box.x + x * image_box.width / 100.0,
                image_box.y + y * image_box.height / 100.0,
            )
            for x, y in path
        ]
    stroke = Stroke(
        points=tuple(path),
        color=Color.parse(color, fallback=config.default_color),
        stroke_width=config.freehand_stroke_width,
    )
    element = _svg(OverlayElement("path", attrs=_attrs(styles.stroke_attrs(stroke))))
    element.attrs["data-drawing"] = "true"
    return element


def _popup_element(
    callouts: Sequence[Callout],
    reveal: RevealState,
    container: Optional[ContainerRect],
    image_box: Optional[Box],
    config: OverlayConfig,
) -> Optional[OverlayElement]:
    callout = reveal.active_callout(callouts)
    if callout is None or not callout.is_revealable:
        return None

    css = {}
    anchor = reveal.popup_anchor(callouts, container) if container is not None else None
    if anchor is not None:
        css.update({"position": "fixed", "left": styles.px(anchor[0]), "top": styles.px(anchor[1])})
    else:
        center_x, center_y = map_into_image_box(callout.box, image_box).center
        css.update({"position": "absolute", "left": styles.pct(center_x), "top": styles.pct(center_y)})
    css.update(styles.popup_css(config))
    popup = OverlayElement(
        "div", style=_props(css), attrs={"role": "dialog", "data-reveal-popup": callout.id}
    )
    if callout.number is not None:
        popup.children.append(
            OverlayElement(
                "span",
                style=_props(styles.popup_number_css(config)),
                attrs={"data-reveal-number": str(callout.number)},
                text=str(callout.number),
            )
        )
    popup.children.append(
        OverlayElement("span", attrs={"data-reveal-body": callout.id}, text=callout.reveal_text)
    )
    popup.children.append(
        OverlayElement(
            "button",
            style=_props(styles.popup_close_css()),
            attrs={"type": "button", "aria-label": "Close", "data-reveal-close": callout.id},
            text=styles.POPUP_CLOSE_MARK,
        )
    )
    return popup


def render_live_overlay(
    callouts: Iterable[Callout],
    *,
    container: Optional[ContainerRect] = None,
    reveal: Optional[RevealState] = None,
    selected_id: Optional[str] = None,
    is_editing: bool = False,
    hover: Optional[Tuple[float, float]] = None,
    tool: Optional[Union[Shape, str]] = None,
    color: Optional[str] = None,
    drawing_path: Sequence[Tuple[float, float]] = (),
    image_box: Optional[Box] = None,
    image_src: Optional[str] = None,
    config: Optional[OverlayConfig] = None,
) -> OverlayElement:
    """Render the live overlay for a screenshot's callouts.

    Args:
        callouts: Callouts in z-order.
        container: Current container rect, used to anchor the reveal popup.
        reveal: Reveal state (revealed flags and the active popup).
        selected_id: Callout to draw the selection ring on (edit mode only).
        is_editing: Whether the editor is in edit mode.
        hover: Pointer position in percent for the placement preview.
        tool: Active placement tool for the preview.
        color: Color for the preview and the stroke being drawn.
        drawing_path: Vertices of the freehand stroke in progress.
        image_box: Image rect inside the overlay wrapper (default full box).
        image_src: Screenshot URL, needed by magnifier callouts.
        config: Overlay configuration.

    Returns:
        The overlay root element. Callouts that cannot be painted are
        skipped.
    """
    config = config or OverlayConfig()
    reveal = reveal or RevealState()
    callouts = list(callouts)
    color = color or config.default_color

    root_css = {"position": "absolute", "inset": "0", "pointer-events": "none"}
    if is_editing and tool is not None:
        root_css["cursor"] = "crosshair"
    root = OverlayElement("div", style=_props(root_css), attrs={"className": "callout-overlay"})

    for callout in callouts:
        plan = build_paint_plan(callout, config)
        if plan is None:
            continue
        root.children.append(
            render_plan(
                plan,
                image_box,
                image_src,
                config,
                revealed=reveal.is_revealed(callout.id),
                selected=is_editing and selected_id is not None and callout.id == selected_id,
            )
        )

    if is_editing and tool is not None and hover is not None:
        preview = _preview_element(callouts, tool, hover, color, image_box, config)
        if preview is not None:
            root.children.append(preview)

    if drawing_path:
        root.children.append(_drawing_element(drawing_path, color, image_box, config))

    popup = _popup_element(callouts, reveal, container, image_box, config)
    if popup is not None:
        root.children.append(popup)
    return root
