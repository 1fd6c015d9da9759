"""Tests for the live overlay element tree."""

import json
from dataclasses import replace

import pytest

from sopify.overlay.callout import Callout, FreehandData, MagnifierData, Screenshot, Shape
from sopify.overlay.controller import InteractionController, PointerEvent
from sopify.overlay.geometry import Box, ContainerRect
from sopify.overlay.live_renderer import OverlayElement, camel_case, render_live_overlay
from sopify.overlay.reveal import RevealState


CONTAINER = ContainerRect(left=0, top=0, width=400, height=300)


def circle(callout_id="c1", **kwargs):
    values = dict(id=callout_id, shape=Shape.CIRCLE, x=47.0, y=47.0, width=6, height=6, color="#FF6B6B")
    values.update(kwargs)
    return Callout(**values)


def badge(callout_id="n1", reveal_text="Click Save"):
    return Callout(
        id=callout_id,
        shape=Shape.NUMBER,
        x=20.0,
        y=20.0,
        width=6,
        height=6,
        color="#FF6B6B",
        number=1,
        reveal_text=reveal_text,
    )


@pytest.mark.parametrize(
    "name, expected",
    [
        ("min-width", "minWidth"),
        ("aspect-ratio", "aspectRatio"),
        ("-webkit-backdrop-filter", "WebkitBackdropFilter"),
        ("left", "left"),
    ],
)
def test_camel_case(name, expected):
    assert camel_case(name) == expected


def test_circle_frame_props():
    root = render_live_overlay([circle()])
    element = root.find_callout("c1")

    assert element.style["left"] == "47%"
    assert element.style["top"] == "47%"
    assert element.style["width"] == "6%"
    assert element.style["height"] == "auto"
    assert element.style["aspectRatio"] == "1 / 1"
    assert element.style["minWidth"] == "40px"
    assert element.style["minHeight"] == "40px"
    assert element.attrs["data-shape"] == "circle"
    assert element.attrs["className"] == "callout callout-circle"


def test_root_element():
    root = render_live_overlay([])
    assert root.tag == "div"
    assert root.attrs["className"] == "callout-overlay"
    assert root.style["pointerEvents"] == "none"
    assert root.children == []


def test_unpaintable_callouts_are_skipped():
    broken = circle("bad", shape="hexagram")
    root = render_live_overlay([broken, circle("ok")])
    assert root.find_callout("bad") is None
    assert root.find_callout("ok") is not None


def test_selection_ring_only_in_edit_mode():
    callouts = [circle()]
    viewing = render_live_overlay(callouts, selected_id="c1").find_callout("c1")
    editing = render_live_overlay(callouts, selected_id="c1", is_editing=True).find_callout("c1")

    assert "outline" not in viewing.style
    assert "data-selected" not in viewing.attrs
    assert editing.style["outline"] == "2px solid #FFFFFF"
    assert editing.attrs["data-selected"] == "true"


def test_reveal_indicator_hidden_then_revealed():
    reveal = RevealState()
    callout = badge()

    before = render_live_overlay([callout], reveal=reveal)
    indicator = before.find_all(lambda e: "data-reveal-indicator" in e.attrs)[0]
    assert indicator.text == "?"
    assert indicator.attrs["data-reveal-indicator"] == "hidden"
    assert before.find_callout("n1").attrs["data-revealed"] == "false"

    reveal.toggle(callout, CONTAINER)
    reveal.close()

    after = render_live_overlay([callout], reveal=reveal)
    indicator = after.find_all(lambda e: "data-reveal-indicator" in e.attrs)[0]
    assert indicator.text == "✓"
    element = after.find_callout("n1")
    assert element.attrs["data-revealed"] == "true"
    assert element.style["boxShadow"] == "0 0 0 3px #FACC15"


def test_popup_fixed_at_anchor_when_container_known():
    reveal = RevealState()
    callout = badge()
    reveal.toggle(callout, CONTAINER)

    root = render_live_overlay([callout], reveal=reveal, container=CONTAINER)
    popups = root.find_all(lambda e: "data-reveal-popup" in e.attrs)

    assert len(popups) == 1
    popup = popups[0]
    assert [child.tag for child in popup.children] == ["span", "span", "button"]
    assert popup.children[1].text == "Click Save"
    assert popup.attrs["role"] == "dialog"
    assert popup.style["position"] == "fixed"
    assert popup.style["left"] == "92px"
    assert popup.style["top"] == "69px"


def test_popup_falls_back_to_percent_without_container():
    reveal = RevealState()
    callout = badge()
    reveal.toggle(callout, CONTAINER)

    root = render_live_overlay([callout], reveal=reveal)
    popup = root.find_all(lambda e: "data-reveal-popup" in e.attrs)[0]
    assert popup.style["position"] == "absolute"
    assert popup.style["left"] == "23%"


def test_no_popup_after_callout_removed():
    reveal = RevealState()
    reveal.toggle(badge(), CONTAINER)
    root = render_live_overlay([circle()], reveal=reveal, container=CONTAINER)
    assert root.find_all(lambda e: "data-reveal-popup" in e.attrs) == []


def test_placement_preview_uses_next_number():
    existing = Callout("n1", Shape.NUMBER, 10.0, 10.0, 6, 6, "#FF6B6B", number=1)
    root = render_live_overlay(
        [existing], is_editing=True, tool=Shape.NUMBER, hover=(50.0, 50.0), color="#4ECDC4"
    )

    previews = root.find_all(lambda e: e.attrs.get("data-preview") == "true")
    assert len(previews) == 1
    preview = previews[0]
    assert preview.style["opacity"] == "0.5"
    assert preview.style["left"] == "47%"
    labels = [e.text for e in preview.walk() if e.tag == "span"]
    assert labels == ["2"]
    assert root.style["cursor"] == "crosshair"


def test_no_preview_in_view_mode():
    root = render_live_overlay([], tool=Shape.CIRCLE, hover=(50.0, 50.0))
    assert root.find_all(lambda e: "data-preview" in e.attrs) == []


def test_drawing_path_rendered_as_svg():
    root = render_live_overlay([], drawing_path=[(10.0, 10.0), (20.0, 20.0)], color="#000000")
    drawings = root.find_all(lambda e: e.attrs.get("data-drawing") == "true")

    assert len(drawings) == 1
    svg = drawings[0]
    assert svg.tag == "svg"
    assert svg.attrs["viewBox"] == "0 0 100 100"
    path = svg.children[0]
    assert path.attrs["d"] == "M 10 10 L 20 20"
    assert path.attrs["stroke"] == "#000000"
    assert path.attrs["vectorEffect"] == "non-scaling-stroke"


def test_freehand_callout_path_is_frame_local():
    callout = Callout(
        id="f1",
        shape=Shape.FREEHAND,
        x=10.0,
        y=10.0,
        width=20,
        height=10,
        color="#000000",
        freehand_data=FreehandData(path=((10.0, 10.0), (30.0, 20.0))),
    )
    element = render_live_overlay([callout]).find_callout("f1")
    path = next(e for e in element.walk() if e.tag == "path")
    assert path.attrs["d"] == "M 0 0 L 100 100"


def test_magnifier_gets_zoomed_image():
    callout = Callout(
        id="m1",
        shape=Shape.MAGNIFIER,
        x=40.0,
        y=40.0,
        width=12,
        height=12,
        color="#45B7D1",
        magnifier_data=MagnifierData(zoom_level=2),
    )
    element = render_live_overlay([callout], image_src="step.png").find_callout("m1")
    assert element.style["overflow"] == "hidden"
    images = [e for e in element.walk() if e.tag == "img"]
    assert len(images) == 1
    assert images[0].attrs["src"] == "step.png"


def test_image_box_maps_frame():
    root = render_live_overlay([circle(x=50.0, y=50.0)], image_box=Box(10, 0, 80, 100))
    element = root.find_callout("c1")
    assert element.style["left"] == "50%"
    assert element.style["width"] == "4.8%"


def test_to_dict_is_json_serializable():
    root = render_live_overlay([circle(), badge()])
    data = root.to_dict()

    json.dumps(data)
    assert data["tag"] == "div"
    assert len(data["children"]) == 2
    assert data["children"][0]["attrs"]["data-callout-id"] == "c1"


def test_overlay_element_walk_order():
    tree = OverlayElement("div", children=[OverlayElement("span", text="a"), OverlayElement("b")])
    assert [e.tag for e in tree.walk()] == ["div", "span", "b"]


def test_controller_render_shows_preview_while_placing():
    screenshot = Screenshot(image_ref="step.png")
    controller = InteractionController(screenshot, screenshot, is_editing=True)
    controller.begin_placement(Shape.CIRCLE)
    controller.pointer_move(PointerEvent(200, 150, buttons=0), CONTAINER)

    root = controller.render(CONTAINER)
    assert len(root.find_all(lambda e: "data-preview" in e.attrs)) == 1

    controller.click(PointerEvent(200, 150), CONTAINER)
    root = controller.render(CONTAINER)
    assert root.find_all(lambda e: "data-preview" in e.attrs) == []
    assert root.find_callout(screenshot.callouts[0].id) is not None


def test_zero_height_magnifier_renders_empty_lens():
    callout = Callout(
        id="m0",
        shape=Shape.MAGNIFIER,
        x=10.0,
        y=10.0,
        width=12,
        height=0,
        color="#45B7D1",
        magnifier_data=MagnifierData(),
    )
    element = render_live_overlay([callout], image_src="shot.png").find_callout("m0")

    assert element is not None
    assert [e for e in element.walk() if e.tag == "img"] == []
    assert element.find_all(lambda e: e.attrs.get("data-effect") == "magnifier")


def test_popup_shows_number_and_close_button():
    reveal = RevealState()
    callout = replace(badge(), number=3)
    reveal.toggle(callout, CONTAINER)

    popup = render_live_overlay([callout], reveal=reveal, container=CONTAINER).find_all(
        lambda e: "data-reveal-popup" in e.attrs
    )[0]

    number = popup.find_all(lambda e: "data-reveal-number" in e.attrs)[0]
    assert number.text == "3"
    assert number.style["borderRadius"] == "50%"
    body = popup.find_all(lambda e: "data-reveal-body" in e.attrs)[0]
    assert body.text == "Click Save"
    close = popup.find_all(lambda e: "data-reveal-close" in e.attrs)[0]
    assert close.tag == "button"
    assert close.attrs["data-reveal-close"] == "n1"
    assert close.attrs["aria-label"] == "Close"
    assert close.text == "×"


def test_close_button_click_dismisses_popup():
    screenshot = Screenshot(image_ref="step.png", callouts=[badge()])
    controller = InteractionController(screenshot, screenshot)
    assert controller.click(PointerEvent(92, 69), CONTAINER)
    assert controller.render(CONTAINER).find_all(lambda e: "data-reveal-close" in e.attrs)

    # The close button sits above the badge, outside its frame
    assert controller.click(PointerEvent(92, 40), CONTAINER)
    assert controller.reveal.active_reveal is None
    assert controller.render(CONTAINER).find_all(lambda e: "data-reveal-popup" in e.attrs) == []
