"""Tests for the render_callouts.py export script."""

import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from sopify.scripts.render_callouts import (
    encode_image_base64,
    load_config,
    load_screenshot,
    main,
    resolve_image,
)


CALLOUTS = [
    {"id": "c1", "shape": "circle", "x": 47, "y": 47, "width": 6, "height": 6, "color": "#FF0000"},
    {
        "id": "n1",
        "shape": "number",
        "x": 10,
        "y": 10,
        "width": 6,
        "height": 6,
        "color": "#FF6B6B",
        "number": 1,
        "revealText": "Click Save",
    },
]


class CliTestCase(unittest.TestCase):
    """Runs main() against files in a temporary directory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        Image.new("RGB", (200, 100), "white").save(self.tmp / "step-01.png")
        self.json_path = self.tmp / "step-01.json"
        self.json_path.write_text(json.dumps({"imageRef": "step-01.png", "callouts": CALLOUTS}))

    def tearDown(self):
        self._tmp.cleanup()

    def run_main(self, *args):
        stdout, stderr = io.StringIO(), io.StringIO()
        code = 0
        with patch("sys.argv", ["render_callouts.py", *map(str, args)]):
            with redirect_stdout(stdout), redirect_stderr(stderr):
                try:
                    main()
                except SystemExit as e:
                    code = e.code
        return code, stdout.getvalue(), stderr.getvalue()


class TestRenderCalloutsMain(CliTestCase):

    def test_html_page(self):
        output = self.tmp / "out" / "step-01.html"
        code, stdout, _ = self.run_main(self.json_path, output)

        self.assertEqual(code, 0)
        self.assertIn("Screenshot page saved", stdout)
        page = output.read_text(encoding="utf-8")
        self.assertTrue(page.startswith("<!DOCTYPE html>"))
        self.assertIn("<title>step-01.png</title>", page)
        self.assertIn('src="step-01.png"', page)
        self.assertIn('data-callout-id="c1"', page)
        self.assertNotIn("<script>", page)

    def test_html_interactive_embedded(self):
        output = self.tmp / "page.html"
        code, _, _ = self.run_main(self.json_path, output, "--interactive", "--embed-image")

        self.assertEqual(code, 0)
        page = output.read_text(encoding="utf-8")
        self.assertIn('src="data:image/png;base64,', page)
        self.assertIn('data-reveal-text="Click Save"', page)
        self.assertIn("<script>", page)

    def test_fragment(self):
        output = self.tmp / "fragment.html"
        code, stdout, _ = self.run_main(self.json_path, output, "--format", "fragment")

        self.assertEqual(code, 0)
        self.assertIn("(2 callout(s))", stdout)
        markup = output.read_text(encoding="utf-8")
        self.assertTrue(markup.startswith('<div class="callout-overlay"'))
        self.assertNotIn("<img", markup)

    def test_fragment_magnifier_shows_image(self):
        lens = {
            "id": "m1",
            "shape": "magnifier",
            "x": 40,
            "y": 40,
            "width": 12,
            "height": 12,
            "color": "#45B7D1",
            "magnifierData": {"zoomLevel": 2},
        }
        self.json_path.write_text(json.dumps({"imageRef": "step-01.png", "callouts": [lens]}))
        output = self.tmp / "fragment.html"

        code, _, _ = self.run_main(self.json_path, output, "--format", "fragment")

        self.assertEqual(code, 0)
        markup = output.read_text(encoding="utf-8")
        self.assertIn('data-effect="magnifier"', markup)
        self.assertIn('src="step-01.png"', markup)

    def test_html_page_title_is_escaped(self):
        self.json_path.write_text(json.dumps({"imageRef": "a&b<1>.png", "callouts": CALLOUTS}))
        output = self.tmp / "page.html"

        code, _, _ = self.run_main(self.json_path, output)

        self.assertEqual(code, 0)
        page = output.read_text(encoding="utf-8")
        self.assertIn("<title>a&amp;b&lt;1&gt;.png</title>", page)
        self.assertTrue(page.rstrip().endswith("</html>"))

    def test_png(self):
        output = self.tmp / "annotated.png"
        code, stdout, _ = self.run_main(self.json_path, output, "--format", "png")

        self.assertEqual(code, 0)
        self.assertIn("Annotated image saved", stdout)
        with Image.open(output) as result:
            self.assertEqual(result.size, (200, 100))

    def test_style_file_applies(self):
        style = self.tmp / "style.json"
        style.write_text(json.dumps({"shape_styles": {"circle": {"border_width": 6}}}))
        output = self.tmp / "fragment.html"

        code, _, _ = self.run_main(
            self.json_path, output, "--format", "fragment", "--style", style
        )

        self.assertEqual(code, 0)
        self.assertIn("border: 6px solid #FF0000", output.read_text(encoding="utf-8"))

    def test_missing_json_exits_2(self):
        code, _, stderr = self.run_main(self.tmp / "missing.json", self.tmp / "out.html")
        self.assertEqual(code, 2)
        self.assertIn("Screenshot JSON not found", stderr)

    def test_missing_style_exits_2(self):
        code, _, stderr = self.run_main(
            self.json_path, self.tmp / "out.html", "--style", self.tmp / "nope.json"
        )
        self.assertEqual(code, 2)
        self.assertIn("Style file not found", stderr)

    def test_invalid_json_shape_exits_2(self):
        self.json_path.write_text(json.dumps([1, 2, 3]))
        code, _, stderr = self.run_main(self.json_path, self.tmp / "out.html")
        self.assertEqual(code, 2)
        self.assertIn("Invalid input", stderr)

    def test_png_without_image_exits_2(self):
        (self.tmp / "step-01.png").unlink()
        code, _, stderr = self.run_main(self.json_path, self.tmp / "out.png", "--format", "png")
        self.assertEqual(code, 2)
        self.assertIn("Screenshot image not found", stderr)


class TestHelpers(CliTestCase):

    def test_load_screenshot_skips_bad_records(self):
        data = {"imageRef": "a.png", "callouts": CALLOUTS + [{"shape": "oval"}]}
        self.json_path.write_text(json.dumps(data))

        screenshot = load_screenshot(self.json_path)

        self.assertEqual(screenshot.image_ref, "a.png")
        self.assertEqual([c.id for c in screenshot.callouts], ["c1", "n1"])

    def test_load_screenshot_rejects_non_list_callouts(self):
        self.json_path.write_text(json.dumps({"callouts": {"id": "x"}}))
        with self.assertRaises(ValueError):
            load_screenshot(self.json_path)

    def test_resolve_image_prefers_argument(self):
        screenshot = load_screenshot(self.json_path)
        explicit = Path("/elsewhere/shot.png")

        self.assertEqual(resolve_image(screenshot, self.json_path, explicit), explicit)
        self.assertEqual(resolve_image(screenshot, self.json_path, None), self.tmp / "step-01.png")

    def test_load_config_without_style(self):
        with patch.dict("os.environ", {"SOPIFY_BORDER_WIDTH": "4"}):
            config = load_config(None)
        self.assertEqual(config.border_width, 4)

    def test_encode_image_base64(self):
        uri = encode_image_base64(self.tmp / "step-01.png")
        self.assertTrue(uri.startswith("data:image/png;base64,"))


if __name__ == "__main__":
    unittest.main()
