#!/usr/bin/env python3
"""
render_callouts.py - Export a screenshot's callouts for SOPify documents

Reads a screenshot record ({"imageRef": ..., "callouts": [...]}) and writes
one of:
- An HTML fragment with the positioned callout overlay
- A standalone HTML page with the screenshot and its callouts
- An annotated PNG with the callouts drawn into the pixels

Usage:
    python render_callouts.py <screenshot.json> <output> [options]

Options:
    --format FORMAT     html (default), fragment or png
    --image PATH        Screenshot image (default: imageRef next to the JSON)
    --embed-image       Inline the image as a base64 data URI (html/fragment)
    --interactive       Add click-to-reveal for numbered callouts (html/fragment)
    --style FILE        JSON file with OverlayConfig overrides
    --scale FACTOR      DPI scale factor for png output (e.g., 2.0 for Retina)

Dependencies:
    - Jinja2 (html, fragment)
    - PIL/Pillow (png)
"""

import argparse
import base64
import json
import sys
from pathlib import Path
from typing import Optional

from sopify.overlay import (
    OverlayConfig,
    Screenshot,
    load_callouts,
    render_callouts_to_markup,
    render_callouts_to_png,
    render_screenshot_page,
)

FORMATS = ('html', 'fragment', 'png')


def encode_image_base64(image_path: Path) -> str:
    """
    Encode an image file as a base64 data URI for embedding.

    Args:
        image_path: Path to image file

    Returns:
        Base64 data URI string (e.g., "data:image/png;base64,...")
    """
    suffix = image_path.suffix.lower()
    mime_types = {
        '.png': 'image/png',
        '.jpg': 'image/jpeg',
        '.jpeg': 'image/jpeg',
        '.gif': 'image/gif',
        '.webp': 'image/webp',
    }
    mime_type = mime_types.get(suffix, 'image/png')

    with open(image_path, 'rb') as f:
        encoded = base64.b64encode(f.read()).decode('utf-8')

    return f"data:{mime_type};base64,{encoded}"


def load_config(style_path: Optional[Path]) -> OverlayConfig:
    """Load overlay configuration from environment, then a JSON style file."""
    config = OverlayConfig.from_env()
    if style_path is None:
        return config
    with open(style_path) as f:
        overrides = json.load(f)
    merged = {**config.__dict__, **overrides}
    return OverlayConfig.from_dict(merged)


def load_screenshot(path: Path) -> Screenshot:
    """Load a screenshot record from JSON."""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError('Screenshot JSON must be an object with "imageRef" and "callouts"')
    callouts = data.get('callouts') or []
    if not isinstance(callouts, list):
        raise ValueError('"callouts" must be a list')
    return Screenshot(image_ref=data.get('imageRef', ''), callouts=load_callouts(callouts))


def resolve_image(screenshot: Screenshot, json_path: Path, image_arg: Optional[Path]) -> Optional[Path]:
    """Find the screenshot image: --image wins, else imageRef next to the JSON."""
    if image_arg is not None:
        return image_arg
    if not screenshot.image_ref:
        return None
    ref = Path(screenshot.image_ref)
    return ref if ref.is_absolute() else json_path.parent / ref


def main():
    parser = argparse.ArgumentParser(
        description='Render SOPify callouts as HTML or an annotated PNG'
    )
    parser.add_argument('input', type=Path, help='Screenshot JSON path')
    parser.add_argument('output', type=Path, help='Output file path')
    parser.add_argument(
        '--format',
        choices=FORMATS,
        default='html',
        help='Output format (default: html)'
    )
    parser.add_argument('--image', type=Path, help='Screenshot image path')
    parser.add_argument(
        '--embed-image',
        action='store_true',
        help='Embed the screenshot as a base64 data URI (html/fragment)'
    )
    parser.add_argument(
        '--interactive',
        action='store_true',
        help='Enable click-to-reveal for numbered callouts'
    )
    parser.add_argument('--style', type=Path, help='Custom style JSON file')
    parser.add_argument(
        '--scale',
        type=float,
        default=1.0,
        help='DPI scale factor for png output (default: 1.0)'
    )

    args = parser.parse_args()

    if not args.input.exists():
        print(f"Error: Screenshot JSON not found: {args.input}", file=sys.stderr)
        sys.exit(2)

    if args.style is not None and not args.style.exists():
        print(f"Error: Style file not found: {args.style}", file=sys.stderr)
        sys.exit(2)

    try:
        screenshot = load_screenshot(args.input)
        config = load_config(args.style)
    except (ValueError, TypeError, KeyError) as e:
        print(f"Error: Invalid input: {e}", file=sys.stderr)
        sys.exit(2)

    image_path = resolve_image(screenshot, args.input, args.image)
    args.output.parent.mkdir(parents=True, exist_ok=True)

    if args.format == 'png':
        if image_path is None or not image_path.exists():
            print(f"Error: Screenshot image not found: {image_path}", file=sys.stderr)
            sys.exit(2)
        png = render_callouts_to_png(
            image_path.read_bytes(), screenshot.callouts, config, dpi_scale=args.scale
        )
        args.output.write_bytes(png)
        print(f"Annotated image saved: {args.output}")
        return

    if args.embed_image:
        if image_path is None or not image_path.exists():
            print(f"Error: Screenshot image not found: {image_path}", file=sys.stderr)
            sys.exit(2)
        image_src = encode_image_base64(image_path)
    else:
        image_src = screenshot.image_ref or (str(image_path) if image_path else '')

    if args.format == 'fragment':
        markup = render_callouts_to_markup(
            screenshot.callouts,
            interactive=args.interactive,
            image_src=image_src or None,
            config=config,
        )
        args.output.write_text(markup + '\n', encoding='utf-8')
        print(f"Callout markup saved: {args.output} ({len(screenshot.callouts)} callout(s))")
        return

    page = render_screenshot_page(
        screenshot,
        image_src,
        title=Path(screenshot.image_ref or args.input.stem).name,
        interactive=args.interactive,
        config=config,
    )
    args.output.write_text(page + '\n', encoding='utf-8')
    print(f"Screenshot page saved: {args.output}")


if __name__ == '__main__':
    main()

