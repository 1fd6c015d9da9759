"""Tests for the static HTML export of callouts."""

from sopify.overlay.callout import Callout, MagnifierData, Screenshot, Shape
from sopify.overlay.export_renderer import (
    build_export_items,
    render_callouts_to_markup,
    render_screenshot_html,
    render_screenshot_page,
)
from sopify.overlay.overlay_config import OverlayConfig


def circle(callout_id="c1", **kwargs):
    values = dict(id=callout_id, shape=Shape.CIRCLE, x=47.0, y=47.0, width=6, height=6, color="#FF6B6B")
    values.update(kwargs)
    return Callout(**values)


def badge(callout_id="n1", reveal_text="Click <Save>"):
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


def test_empty_list_renders_nothing():
    assert render_callouts_to_markup([]) == ""


def test_only_unpaintable_callouts_render_nothing():
    assert render_callouts_to_markup([circle(shape="hexagram")]) == ""


def test_circle_markup_attributes_and_geometry():
    markup = render_callouts_to_markup([circle()])

    assert markup.startswith('<div class="callout-overlay"')
    assert 'data-callout-id="c1"' in markup
    assert 'data-shape="circle"' in markup
    assert "left: 47%; top: 47%; width: 6%" in markup
    assert "aspect-ratio: 1 / 1" in markup
    assert "min-width: 40px" in markup
    assert "border-radius: 50%" in markup


def test_fractional_percentages_use_shared_formatting():
    markup = render_callouts_to_markup([circle(x=12.3456789, y=0.1 + 0.2)])
    assert "left: 12.3457%" in markup
    assert "top: 0.3%" in markup


def test_rectangle_label_is_escaped():
    callout = Callout(
        id="r1",
        shape=Shape.RECTANGLE,
        x=10.0,
        y=10.0,
        width=15,
        height=10,
        color="#4ECDC4",
        text="<b>Save</b> & close",
    )
    markup = render_callouts_to_markup([callout])
    assert "&lt;b&gt;Save&lt;/b&gt; &amp; close" in markup
    assert "<b>" not in markup


def test_arrow_exports_svg_polygon():
    callout = Callout("a1", Shape.ARROW, 10.0, 10.0, 10, 8, "#FFA726")
    markup = render_callouts_to_markup([callout])
    assert '<svg style="' in markup
    assert 'viewBox="0 0 100 100"' in markup
    assert 'points="10,30 65,30 65,10 95,50 65,90 65,70 10,70"' in markup


def test_static_export_has_no_reveal_script():
    markup = render_callouts_to_markup([badge()])
    assert "<script>" not in markup
    assert "data-reveal-text" not in markup
    assert "data-reveal-indicator" not in markup
    # Badge still carries the gradient fill
    assert "linear-gradient(135deg, #3B82F6, #8B5CF6)" in markup


def test_interactive_export_carries_reveal_text_and_script():
    markup = render_callouts_to_markup([badge(), circle()], interactive=True)

    assert 'data-reveal-text="Click &lt;Save&gt;"' in markup
    assert 'data-revealed="false"' in markup
    assert 'data-reveal-indicator="hidden"' in markup
    assert markup.count("<script>") == 1
    assert "window.sopifyReveal" in markup


def test_interactive_without_revealable_callouts_skips_script():
    markup = render_callouts_to_markup([circle()], interactive=True)
    assert "<script>" not in markup


def test_accepts_persisted_dicts():
    records = [
        {"id": "d1", "shape": "oval", "x": 10, "y": 10, "width": 10, "height": 8, "color": "#AB47BC"},
        {"shape": "oval"},
    ]
    items = build_export_items(records)
    assert [item["id"] for item in items] == ["d1"]


def test_magnifier_uses_image_src():
    callout = Callout(
        "m1",
        Shape.MAGNIFIER,
        40.0,
        40.0,
        12,
        12,
        "#45B7D1",
        magnifier_data=MagnifierData(zoom_level=2),
    )
    markup = render_callouts_to_markup([callout], image_src="step-02.png")
    assert 'data-effect="magnifier"' in markup
    assert 'src="step-02.png"' in markup


def test_shape_styles_flow_into_export():
    config = OverlayConfig(shape_styles={"circle": {"border_width": 5}})
    markup = render_callouts_to_markup([circle()], config=config)
    assert "border: 5px solid #FF6B6B" in markup


def test_render_screenshot_html_wraps_image():
    screenshot = Screenshot(image_ref="step-01.png", callouts=[circle()])
    page = render_screenshot_html(screenshot, "images/step-01.png")

    assert page.startswith('<figure class="sop-screenshot"')
    assert 'src="images/step-01.png"' in page
    assert 'alt="step-01.png"' in page
    assert 'class="callout-overlay"' in page
    assert page.rstrip().endswith("</figure>")


def test_render_screenshot_html_without_callouts():
    page = render_screenshot_html(Screenshot(image_ref="x.png"), "x.png", alt="Empty step")
    assert 'alt="Empty step"' in page
    assert "callout-overlay" not in page


def test_zero_width_magnifier_renders_empty_lens():
    callout = Callout(
        "m0", Shape.MAGNIFIER, 10.0, 10.0, 0, 12, "#45B7D1", magnifier_data=MagnifierData()
    )
    callout.validate()

    markup = render_callouts_to_markup([callout], image_src="step-02.png")

    assert 'data-callout-id="m0"' in markup
    assert 'data-effect="magnifier"' in markup
    assert "<img" not in markup


def test_magnifier_without_image_src_has_no_image():
    callout = Callout(
        "m1", Shape.MAGNIFIER, 40.0, 40.0, 12, 12, "#45B7D1", magnifier_data=MagnifierData()
    )
    markup = render_callouts_to_markup([callout])
    assert 'data-effect="magnifier"' in markup
    assert "<img" not in markup


def test_render_screenshot_page_wraps_figure():
    screenshot = Screenshot(image_ref="shots/step-01.png", callouts=[circle()])
    page = render_screenshot_page(screenshot, "step-01.png")

    assert page.startswith("<!DOCTYPE html>")
    assert "<title>step-01.png</title>" in page
    assert '<figure class="sop-screenshot"' in page
    assert 'data-callout-id="c1"' in page
    assert page.rstrip().endswith("</html>")


def test_render_screenshot_page_escapes_title():
    page = render_screenshot_page(Screenshot(image_ref=""), "x.png", title="Tips & <Tricks>")
    assert "<title>Tips &amp; &lt;Tricks&gt;</title>" in page
    assert "<title>Screenshot</title>" in render_screenshot_page(Screenshot(image_ref=""), "x.png")


def test_interactive_popup_gets_number_and_close_button():
    markup = render_callouts_to_markup([badge()], interactive=True)

    assert 'data-reveal-number="1"' in markup
    assert "data-reveal-close" in markup
    assert "'aria-label', 'Close'" in markup


def test_static_export_has_no_reveal_number():
    assert "data-reveal-number" not in render_callouts_to_markup([badge()])
