"""Pointer and keyboard interaction for the callout overlay.

Turns raw pointer/keyboard events into callout mutations. The controller
never edits the screenshot's callout list itself: every committed change
goes through the host callbacks, which own persistence.

Interaction modes:

1. **Click-to-place**: begin_placement(tool), then click() on the image
   centers the tool's default box on the click point. Numbered callouts
   get the next free number and an optional reveal text before commit.

2. **Drag-to-draw**: with the freehand tool, pointer_down/move/up trace a
   stroke that is committed as one freehand callout on release.

3. **Select and edit**: in edit mode, clicking an existing callout selects
   it; Delete/Backspace removes it and recolor/update edit it.

4. **View**: outside edit mode, clicks go to the reveal state machine.

Usage:
    controller = InteractionController(screenshot, host=screenshot, is_editing=True)
    controller.begin_placement("circle", color="#4ECDC4")
    controller.click(PointerEvent(210, 170), container)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Tuple, Union

from .callout import (
    BlurData,
    Callout,
    CalloutStyle,
    FreehandData,
    MagnifierData,
    PolygonData,
    Screenshot,
    Shape,
)
from .geometry import Box, ContainerRect, clamp_box, path_bounds, place_centered, pointer_to_percent
from .overlay_config import OverlayConfig
from .reveal import RevealState
from .shapes import get_shape_spec, hit_test_topmost

logger = logging.getLogger(__name__)

ESCAPE_KEY = "Escape"
DELETE_KEYS = ("Delete", "Backspace")


class ControllerState(Enum):
    """Interaction states (selection is tracked separately)."""

    IDLE = "idle"
    PLACING = "placing"
    DRAWING_FREEHAND = "drawing_freehand"


@dataclass(frozen=True)
class PointerEvent:
    """A pointer event in screen (client) pixels.

    Attributes:
        client_x: Pointer X; None for malformed events.
        client_y: Pointer Y; None for malformed events.
        buttons: Pressed-button bitmask (0 = no button held).
    """

    client_x: Optional[float]
    client_y: Optional[float]
    buttons: int = 1


class OverlayHost(Protocol):
    """Callbacks the host implements to persist callout changes."""

    def on_callout_add(self, draft: Callout) -> None: ...

    def on_callout_update(self, callout: Callout) -> None: ...

    def on_callout_delete(self, callout_id: str) -> None: ...


@dataclass
class ToolOptions:
    """Payload defaults applied to newly placed callouts.

    Attributes:
        blur_intensity: Blur strength 1-10.
        blur_type: "blur" or "pixelate".
        zoom_level: Magnifier zoom 1.5-5.
        show_border: Draw the magnifier border.
        polygon_sides: Polygon side count 3-12.
        stroke_width: Freehand stroke width in pixels (None = config default).
        text: Label for rectangle and arrow callouts.
        style: Style overrides for new callouts.
    """

    blur_intensity: float = 5
    blur_type: str = "blur"
    zoom_level: float = 2.0
    show_border: bool = True
    polygon_sides: int = 6
    stroke_width: Optional[float] = None
    text: Optional[str] = None
    style: Optional[CalloutStyle] = None


def next_number(callouts: Iterable[Callout]) -> int:
    """Smallest positive integer not used by any numbered callout.

    Example:
        >>> used = [Callout("a", Shape.NUMBER, 0, 0, 6, 6, "#000", number=n) for n in (1, 3)]
        >>> next_number(used)
        2
    """
    used = {
        c.number
        for c in callouts
        if c.shape == Shape.NUMBER and isinstance(c.number, int)
    }
    number = 1
    while number in used:
        number += 1
    return number


def _normalize_reveal_text(text: Optional[str]) -> Optional[str]:
    if text is None or not str(text).strip():
        return None
    return str(text)


def _coerce_tool(tool: Union[Shape, str]) -> Shape:
    try:
        return Shape(tool)
    except ValueError:
        raise ValueError(f"Unknown callout tool: {tool!r}") from None


class InteractionController:
    """State machine for placing, drawing, selecting and editing callouts.

    Reads the screenshot's live callout list (for numbering and hit-tests)
    and reports every change through the host. A draft is validated before
    the host sees it, and each committed callout is emitted exactly once.
    """

    def __init__(
        self,
        screenshot: Screenshot,
        host: OverlayHost,
        is_editing: bool = False,
        config: Optional[OverlayConfig] = None,
        prompt_reveal_text: Optional[Callable[[Callout], Optional[str]]] = None,
        reveal: Optional[RevealState] = None,
    ):
        """Initialize the controller.

        Args:
            screenshot: Screenshot whose callouts are displayed.
            host: Receiver of add/update/delete callbacks.
            is_editing: Start in edit mode.
            config: Overlay configuration (defaults if omitted).
            prompt_reveal_text: Synchronous prompt for a numbered callout's
                reveal text. Without it, numbered drafts wait in
                pending_callout for submit_reveal_text().
            reveal: Shared reveal state (a new one if omitted).
        """
        self._screenshot = screenshot
        self._host = host
        self._is_editing = is_editing
        self._config = config or OverlayConfig()
        self._prompt_reveal_text = prompt_reveal_text
        self.reveal = reveal or RevealState()

        self._state = ControllerState.IDLE
        self._tool = Shape.CIRCLE
        self._color = self._config.default_color
        self._options = ToolOptions()
        self._selected_id: Optional[str] = None
        self._pending: Optional[Callout] = None
        self._stroke: list[Tuple[float, float]] = []
        self._hover: Optional[Tuple[float, float]] = None

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_editing(self) -> bool:
        return self._is_editing

    @property
    def tool(self) -> Shape:
        return self._tool

    @property
    def color(self) -> str:
        return self._color

    @property
    def options(self) -> ToolOptions:
        return self._options

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def pending_callout(self) -> Optional[Callout]:
        """Numbered draft waiting for its reveal text, if any."""
        return self._pending

    @property
    def hover_position(self) -> Optional[Tuple[float, float]]:
        """Last pointer position (percent) while placing, for previews."""
        return self._hover

    @property
    def drawing_path(self) -> Tuple[Tuple[float, float], ...]:
        """Vertices of the stroke being drawn."""
        return tuple(self._stroke)

    @property
    def callouts(self) -> list[Callout]:
        return self._screenshot.callouts

    # Tool selection

    def begin_placement(self, tool: Union[Shape, str], color: Optional[str] = None) -> bool:
        """Enter placement mode for a tool.

        Returns:
            True if placement started, False outside edit mode.

        Raises:
            ValueError: If tool is not a known shape.
        """
        shape = _coerce_tool(tool)
        if not self._is_editing:
            logger.debug("Ignoring placement request outside edit mode")
            return False
        self._reset_operation()
        self._tool = shape
        if color:
            self._color = color
        self._selected_id = None
        self._state = ControllerState.PLACING
        logger.debug("Placing %s callouts", shape.value)
        return True

    def set_tool(self, tool: Union[Shape, str]) -> None:
        """Switch tools; an in-progress stroke is discarded."""
        shape = _coerce_tool(tool)
        if self._state == ControllerState.DRAWING_FREEHAND:
            self._stroke = []
            self._state = ControllerState.PLACING
        self._tool = shape

    def set_color(self, color: str) -> None:
        self._color = color

    def set_tool_options(self, **options) -> ToolOptions:
        """Update payload defaults for new callouts.

        Raises:
            ValueError: If an option name is unknown.
        """
        known = {f.name for f in fields(ToolOptions)}
        unknown = set(options) - known
        if unknown:
            raise ValueError(f"Unknown tool options: {sorted(unknown)}")
        self._options = replace(self._options, **options)
        return self._options

    # Mode changes

    def set_editing(self, flag: bool) -> None:
        """Enter or leave edit mode; leaving cancels everything in progress."""
        if not flag:
            self._reset_operation()
            self._state = ControllerState.IDLE
            self._selected_id = None
        self._is_editing = flag

    def cancel(self) -> bool:
        """Drop placement, drawing and any staged numbered callout.

        Returns:
            True if something was cancelled.
        """
        busy = self._state != ControllerState.IDLE or self._pending is not None
        self._reset_operation()
        self._state = ControllerState.IDLE
        if busy:
            logger.debug("Cancelled callout operation")
        return busy

    def _reset_operation(self) -> None:
        self._pending = None
        self._stroke = []
        self._hover = None

    def _abort(self, reason: str) -> bool:
        logger.debug("Aborting callout operation: %s", reason)
        self._reset_operation()
        self._state = ControllerState.IDLE
        return False

    # Pointer input

    def click(self, event: PointerEvent, container: ContainerRect) -> bool:
        """Handle a click on the image container.

        Returns:
            True if the click placed, staged, selected, revealed or dismissed
            something.
        """
        if self._state == ControllerState.PLACING:
            if self._tool == Shape.FREEHAND:
                return False
            return self._place(event, container)
        if self._state == ControllerState.DRAWING_FREEHAND or self._pending is not None:
            return False

        if not self._is_editing:
            revealable = [c for c in self.callouts if c.is_revealable]
            target = hit_test_topmost(
                revealable, event.client_x, event.client_y, container, self._config
            )
            if target is None:
                # Clicking outside any badge dismisses the open popup
                if self.reveal.active_reveal is None:
                    return False
                self.reveal.close()
                return True
            return self.reveal.toggle(target, container)

        target = hit_test_topmost(
            self.callouts, event.client_x, event.client_y, container, self._config
        )
        if target is None:
            self._selected_id = None
            return False
        self._selected_id = None if self._selected_id == target.id else target.id
        return True

    def _place(self, event: PointerEvent, container: ContainerRect) -> bool:
        point = pointer_to_percent(event.client_x, event.client_y, container)
        if point is None:
            return self._abort("invalid pointer position or unmeasured container")

        draft = self.build_draft(self._tool, point)
        if self._tool != Shape.NUMBER:
            self._state = ControllerState.IDLE
            return self._commit(draft) is not None

        self._state = ControllerState.IDLE
        if self._prompt_reveal_text is None:
            self._pending = draft
            logger.debug("Staged numbered callout %d", draft.number)
            return True
        answer = self._prompt_reveal_text(draft)
        return self._commit(replace(draft, reveal_text=_normalize_reveal_text(answer))) is not None

    def build_draft(self, tool: Union[Shape, str], center: Tuple[float, float]) -> Callout:
        """Draft callout for a point tool centered on a percent position."""
        shape = _coerce_tool(tool)
        spec = get_shape_spec(shape)
        box = place_centered(center[0], center[1], spec.default_width, spec.default_height)
        options = self._options
        payload: dict = {}
        if shape == Shape.NUMBER:
            payload["number"] = next_number(self.callouts)
        elif shape in (Shape.RECTANGLE, Shape.ARROW) and options.text:
            payload["text"] = options.text
        elif shape == Shape.BLUR:
            payload["blur_data"] = BlurData(
                intensity=options.blur_intensity, type=options.blur_type
            )
        elif shape == Shape.MAGNIFIER:
            payload["magnifier_data"] = MagnifierData(
                zoom_level=options.zoom_level, show_border=options.show_border
            )
        elif shape == Shape.POLYGON:
            payload["polygon_data"] = PolygonData(sides=options.polygon_sides)
        return Callout(
            id=None,
            shape=shape,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            color=self._color,
            style=options.style,
            **payload,
        )

    def submit_reveal_text(self, text: Optional[str]) -> Optional[Callout]:
        """Commit the staged numbered callout with the given reveal text.

        A None or blank answer commits without reveal text.
        """
        if self._pending is None:
            return None
        draft = replace(self._pending, reveal_text=_normalize_reveal_text(text))
        self._pending = None
        return self._commit(draft)

    def pointer_down(self, event: PointerEvent, container: ContainerRect) -> bool:
        """Start a freehand stroke while placing with the freehand tool."""
        if self._state != ControllerState.PLACING or self._tool != Shape.FREEHAND:
            return False
        point = pointer_to_percent(event.client_x, event.client_y, container)
        if point is None:
            return self._abort("invalid pointer position or unmeasured container")
        self._stroke = [point]
        self._state = ControllerState.DRAWING_FREEHAND
        return True

    def pointer_move(self, event: PointerEvent, container: ContainerRect) -> bool:
        """Extend the stroke, or track the hover position while placing."""
        if self._state == ControllerState.PLACING:
            self._hover = pointer_to_percent(event.client_x, event.client_y, container)
            return False
        if self._state != ControllerState.DRAWING_FREEHAND or not event.buttons:
            return False
        point = pointer_to_percent(event.client_x, event.client_y, container)
        if point is None:
            return self._abort("invalid pointer position during stroke")
        self._stroke.append(point)
        return True

    def pointer_up(self, event: PointerEvent, container: ContainerRect) -> bool:
        """Finish the stroke and commit it as a freehand callout."""
        if self._state != ControllerState.DRAWING_FREEHAND:
            return False
        point = pointer_to_percent(event.client_x, event.client_y, container)
        if point is None:
            return self._abort("invalid pointer position at end of stroke")
        if point != self._stroke[-1]:
            self._stroke.append(point)

        path = self._stroke
        self._stroke = []
        self._state = ControllerState.PLACING

        distinct = [p for i, p in enumerate(path) if i == 0 or p != path[i - 1]]
        if len(set(distinct)) < max(2, self._config.min_freehand_points):
            logger.debug("Discarding freehand stroke with %d distinct points", len(set(distinct)))
            return False
        return self._commit(self._freehand_draft(tuple(distinct))) is not None

    def _freehand_draft(self, path: Tuple[Tuple[float, float], ...]) -> Callout:
        bounds = path_bounds(path)
        extent = self._config.min_freehand_extent
        width = max(bounds.width, extent)
        height = max(bounds.height, extent)
        center_x, center_y = bounds.center
        box = clamp_box(center_x - width / 2, center_y - height / 2, width, height)
        stroke_width = self._options.stroke_width or self._config.freehand_stroke_width
        return Callout(
            id=None,
            shape=Shape.FREEHAND,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            color=self._color,
            style=self._options.style,
            freehand_data=FreehandData(path=path, stroke_width=stroke_width),
        )

    def _commit(self, draft: Callout) -> Optional[Callout]:
        try:
            draft.validate()
        except ValueError as e:
            logger.warning("Discarding invalid %s draft: %s", draft.shape, e)
            return None
        self._host.on_callout_add(draft)
        logger.debug("Committed %s callout", getattr(draft.shape, "value", draft.shape))
        return draft

    # Keyboard input

    def key_down(self, key: str) -> bool:
        """Handle a key press; unknown keys are ignored.

        Escape cancels the current operation first; with nothing in
        progress it closes an open reveal popup.
        """
        if key == ESCAPE_KEY:
            if self.cancel():
                return True
            if self.reveal.active_reveal is not None:
                self.reveal.close()
                return True
            return False
        if key in DELETE_KEYS and self._is_editing and self._state == ControllerState.IDLE:
            return self.delete_selected()
        return False

    # Selection editing

    def _selected_callout(self) -> Optional[Callout]:
        if self._selected_id is None:
            return None
        callout = self._screenshot.get_callout(self._selected_id)
        if callout is None:
            self._selected_id = None
        return callout

    def delete_selected(self) -> bool:
        callout = self._selected_callout()
        if callout is None:
            return False
        self._host.on_callout_delete(callout.id)
        self._selected_id = None
        self.reveal.prune(c for c in self.callouts if c.id != callout.id)
        return True

    def recolor_selected(self, color: str) -> Optional[Callout]:
        return self.update_selected(color=color)

    def update_selected(self, **changes) -> Optional[Callout]:
        """Apply field changes to the selected callout and report them.

        Returns:
            The updated callout, or None when nothing is selected.

        Raises:
            ValueError: If a field is unknown or the result is invalid.
        """
        callout = self._selected_callout()
        if callout is None:
            return None
        if "id" in changes or "shape" in changes:
            raise ValueError("Callout id and shape cannot be edited")
        known = {f.name for f in fields(Callout)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown callout fields: {sorted(unknown)}")
        if "reveal_text" in changes:
            changes["reveal_text"] = _normalize_reveal_text(changes["reveal_text"])
        if {"x", "y", "width", "height"} & set(changes):
            merged = replace(callout, **changes)
            box = clamp_box(merged.x, merged.y, merged.width, merged.height)
            changes.update(x=box.x, y=box.y, width=box.width, height=box.height)

        updated = replace(callout, **changes)
        updated.validate()
        self._host.on_callout_update(updated)
        return updated

    # Rendering

    def render(
        self,
        container: Optional[ContainerRect] = None,
        image_box: Optional[Box] = None,
        image_src: Optional[str] = None,
    ):
        """Live overlay element tree for the current state."""
        from .live_renderer import render_live_overlay

        placing = self._state == ControllerState.PLACING
        return render_live_overlay(
            self.callouts,
            container=container,
            reveal=self.reveal,
            selected_id=self._selected_id,
            is_editing=self._is_editing,
            hover=self._hover if placing else None,
            tool=self._tool if placing else None,
            color=self._color,
            drawing_path=self.drawing_path,
            image_box=image_box,
            image_src=image_src,
            config=self._config,
        )
