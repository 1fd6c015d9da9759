"""Centralized configuration for callout painting and interaction.

Defines the default colors, stroke widths, fonts and paint-time floors shared
by every renderer, plus interaction defaults for the controller. Supports
shape-specific style overrides the same way for all renderers, so a change
here can never make the live overlay and the export disagree.
"""

import os
from dataclasses import dataclass, field


DEFAULT_PALETTE = (
    "#FF6B6B",  # Red
    "#4ECDC4",  # Teal
    "#45B7D1",  # Blue
    "#FFA726",  # Orange
    "#66BB6A",  # Green
    "#AB47BC",  # Purple
)


@dataclass
class OverlayConfig:
    """Configuration for callout rendering and placement.

    Attributes:
        default_color: Color for new callouts and for malformed colors.
        palette: Colors offered by the recolor controls.
        border_width: Default outline width in pixels.
        fill_opacity: Default translucent fill opacity (0x40 alpha).
        label_font_size: Font size for rectangle/arrow labels in pixels.
        font_family: Label font stack.
        font_color: Label text color.
        enforce_min_pixels: Apply the per-shape minimum pixel floor.
        freehand_stroke_width: Default freehand stroke width in pixels.
        min_freehand_points: Strokes with fewer distinct vertices are dropped.
        min_freehand_extent: Smallest freehand box side in percentages.
        reveal_gradient: Gradient colors for click-to-reveal badges.
        reveal_indicator_color: Indicator dot color before reveal.
        revealed_indicator_color: Indicator dot color after reveal.
        selection_color: Ring color for the selected callout.
        blur_frame_color: Dashed frame color for blur regions.
        shape_styles: Shape-specific overrides {shape: {key: value}}.
    """

    # Colors
    default_color: str = "#FF6B6B"
    palette: tuple = DEFAULT_PALETTE
    font_color: str = "#FFFFFF"
    reveal_gradient: tuple = ("#3B82F6", "#8B5CF6")
    reveal_indicator_color: str = "#60A5FA"
    revealed_indicator_color: str = "#FACC15"
    selection_color: str = "#FFFFFF"
    blur_frame_color: str = "#EF4444"

    # Dimensions
    border_width: float = 2
    fill_opacity: float = 0.25
    label_font_size: float = 12
    font_family: str = "Inter, Arial, sans-serif"

    # Behavior
    enforce_min_pixels: bool = True
    freehand_stroke_width: float = 3
    min_freehand_points: int = 2
    min_freehand_extent: float = 0.5

    # Shape-specific overrides
    # Example: {"rectangle": {"border_width": 3, "fill_opacity": 0.1}}
    shape_styles: dict[str, dict] = field(default_factory=dict)

    def get_style_for_shape(self, shape: str) -> dict:
        """Get effective default style for a shape.

        Merges shape-specific overrides with default values.

        Args:
            shape: Shape name (circle, rectangle, ...).

        Returns:
            Dict with effective style values for this shape.
        """
        default_style = {
            "border_width": self.border_width,
            "fill_opacity": self.fill_opacity,
            "font_size": self.label_font_size,
            "font_family": self.font_family,
            "font_color": self.font_color,
        }
        shape_override = self.shape_styles.get(str(getattr(shape, "value", shape)), {})
        return {**default_style, **shape_override}

    @classmethod
    def from_dict(cls, data: dict) -> "OverlayConfig":
        """Build a config from a JSON style file's contents (unknown keys ignored)."""
        known = {name for name in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        for key in ("palette", "reveal_gradient"):
            if key in values:
                values[key] = tuple(values[key])
        return cls(**values)

    @classmethod
    def from_env(cls) -> "OverlayConfig":
        """Load configuration from environment variables with defaults."""
        return cls(
            default_color=os.getenv("SOPIFY_DEFAULT_COLOR", "#FF6B6B"),
            border_width=float(os.getenv("SOPIFY_BORDER_WIDTH", "2")),
            fill_opacity=float(os.getenv("SOPIFY_FILL_OPACITY", "0.25")),
            label_font_size=float(os.getenv("SOPIFY_LABEL_FONT_SIZE", "12")),
            font_family=os.getenv("SOPIFY_FONT_FAMILY", "Inter, Arial, sans-serif"),
            enforce_min_pixels=os.getenv("SOPIFY_MIN_PIXELS", "true").lower() == "true",
            freehand_stroke_width=float(os.getenv("SOPIFY_FREEHAND_STROKE", "3")),
        )
