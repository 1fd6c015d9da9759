"""Callout records and the screenshot that owns them.

A Callout is one persisted annotation: a shape, a percentage bounding box,
a color, optional style overrides and at most one shape-specific payload.
Records are immutable; edits produce a new record with dataclasses.replace
and are handed back to the host, which owns persistence.

Examples:
    Create a numbered callout and serialize it:
        >>> callout = Callout(
        ...     id="c1", shape=Shape.NUMBER, x=47.0, y=47.0,
        ...     width=6, height=6, color="#FF6B6B", number=1,
        ...     reveal_text="Check the voltage",
        ... )
        >>> callout.to_dict()["revealText"]
        'Check the voltage'

    Records with an unknown shape are kept as-is:
        >>> Callout.from_dict({"id": "x", "shape": "hexagram", "x": 1,
        ...     "y": 1, "width": 5, "height": 5, "color": "#000"}).shape
        'hexagram'
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

from .geometry import Box, is_finite_number

logger = logging.getLogger(__name__)

_SVG_NUMBER_RE = re.compile(r"-?\d*\.?\d+(?:[eE][-+]?\d+)?")
_EPSILON = 1e-9


class Shape(str, Enum):
    """Closed set of callout shapes."""

    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    ARROW = "arrow"
    NUMBER = "number"
    OVAL = "oval"
    POLYGON = "polygon"
    BLUR = "blur"
    MAGNIFIER = "magnifier"
    FREEHAND = "freehand"

    @classmethod
    def coerce(cls, value: Union[str, Shape]) -> Union[Shape, str]:
        """Return the Shape member for value, or the raw string if unknown."""
        try:
            return cls(value)
        except ValueError:
            return value


def new_callout_id() -> str:
    """Generate an opaque callout id."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class CalloutStyle:
    """Optional style overrides; None means "use the configured default"."""

    border_width: Optional[float] = None
    fill_opacity: Optional[float] = None
    fill_color: Optional[str] = None
    border_color: Optional[str] = None
    opacity: Optional[float] = None
    font_size: Optional[float] = None
    font_family: Optional[str] = None
    font_color: Optional[str] = None

    _KEYS = (
        ("border_width", "borderWidth"),
        ("fill_opacity", "fillOpacity"),
        ("fill_color", "fillColor"),
        ("border_color", "borderColor"),
        ("opacity", "opacity"),
        ("font_size", "fontSize"),
        ("font_family", "fontFamily"),
        ("font_color", "fontColor"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            wire: getattr(self, attr)
            for attr, wire in self._KEYS
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional[CalloutStyle]:
        if not data:
            return None
        return cls(**{attr: data.get(wire) for attr, wire in cls._KEYS})


@dataclass(frozen=True)
class BlurData:
    intensity: float = 5
    type: str = "blur"  # 'blur' or 'pixelate'

    def to_dict(self) -> dict[str, Any]:
        return {"intensity": self.intensity, "type": self.type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlurData:
        return cls(intensity=data.get("intensity", 5), type=data.get("type", "blur"))


@dataclass(frozen=True)
class MagnifierData:
    zoom_level: float = 2.0
    show_border: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"zoomLevel": self.zoom_level, "showBorder": self.show_border}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MagnifierData:
        return cls(
            zoom_level=data.get("zoomLevel", 2.0),
            show_border=data.get("showBorder", True) is not False,
        )


@dataclass(frozen=True)
class PolygonData:
    sides: int = 6

    def to_dict(self) -> dict[str, Any]:
        return {"sides": self.sides}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolygonData:
        return cls(sides=data.get("sides", 6))


@dataclass(frozen=True)
class FreehandData:
    """Freehand stroke; path vertices are image percentages like the box."""

    path: Tuple[Tuple[float, float], ...] = ()
    stroke_width: float = 3

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": [[px, py] for px, py in self.path],
            "strokeWidth": self.stroke_width,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FreehandData:
        raw = data.get("path") or ()
        if isinstance(raw, str):
            path = parse_svg_path(raw)
        else:
            path = tuple((float(p[0]), float(p[1])) for p in raw)
        return cls(path=path, stroke_width=data.get("strokeWidth", 3))


def parse_svg_path(path: str) -> Tuple[Tuple[float, float], ...]:
    """Read the vertices of an "M x y L x y ..." polyline path string.

    Only absolute move/line commands are meaningful for freehand strokes;
    the numbers are paired up in order.
    """
    numbers = [float(n) for n in _SVG_NUMBER_RE.findall(path)]
    if len(numbers) % 2:
        logger.warning("Odd coordinate count in path data, dropping last value")
        numbers = numbers[:-1]
    return tuple(zip(numbers[0::2], numbers[1::2]))


_PAYLOADS = (
    ("blur_data", "blurData", BlurData, Shape.BLUR),
    ("magnifier_data", "magnifierData", MagnifierData, Shape.MAGNIFIER),
    ("polygon_data", "polygonData", PolygonData, Shape.POLYGON),
    ("freehand_data", "freehandData", FreehandData, Shape.FREEHAND),
)


@dataclass(frozen=True)
class Callout:
    """One annotation record.

    Attributes:
        id: Opaque id assigned by the host; None on an uncommitted draft.
        shape: Shape member, or the raw string for unknown shapes.
        x: Left edge in image percentages.
        y: Top edge in image percentages.
        width: Width in image percentages.
        height: Height in image percentages.
        color: Base stroke/fill hex color.
        style: Optional style overrides.
        number: Badge number (number shape, optional on circle).
        reveal_text: Hidden click-to-reveal text (number shape).
        text: Label for rectangle and arrow shapes.
        blur_data: Blur payload.
        magnifier_data: Magnifier payload.
        polygon_data: Polygon payload.
        freehand_data: Freehand payload.
    """

    id: Optional[str]
    shape: Union[Shape, str]
    x: float
    y: float
    width: float
    height: float
    color: str
    style: Optional[CalloutStyle] = None
    number: Optional[int] = None
    reveal_text: Optional[str] = None
    text: Optional[str] = None
    blur_data: Optional[BlurData] = None
    magnifier_data: Optional[MagnifierData] = None
    polygon_data: Optional[PolygonData] = None
    freehand_data: Optional[FreehandData] = None

    @property
    def box(self) -> Box:
        return Box(x=self.x, y=self.y, width=self.width, height=self.height)

    @property
    def is_revealable(self) -> bool:
        """True for number callouts carrying non-blank reveal text."""
        return (
            self.shape == Shape.NUMBER
            and bool(self.reveal_text)
            and bool(self.reveal_text.strip())
        )

    def payloads(self) -> list[str]:
        """Names of the populated shape payload fields."""
        return [attr for attr, _, _, _ in _PAYLOADS if getattr(self, attr) is not None]

    def validate(self) -> None:
        """Validate geometry and shape-specific fields.

        Raises:
            ValueError: If the record breaks a geometry or payload rule.
        """
        from .shapes import get_shape_spec

        spec = get_shape_spec(self.shape)
        if spec is None:
            raise ValueError(f"Unknown callout shape: {self.shape!r}")

        for name in ("x", "y", "width", "height"):
            if not is_finite_number(getattr(self, name)):
                raise ValueError(f"Callout {name} must be a finite number")
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Callout size must be >= 0, got {self.width}x{self.height}"
            )
        if (
            self.x < 0
            or self.y < 0
            or self.right > 100 + _EPSILON
            or self.bottom > 100 + _EPSILON
        ):
            raise ValueError(f"Callout box outside [0, 100]: {self.box}")

        if spec.number_mode == "required":
            if not isinstance(self.number, int) or self.number < 1:
                raise ValueError("Numbered callout requires a positive number")
        elif self.number is not None:
            if spec.number_mode == "none":
                raise ValueError(f"Shape {spec.shape.value} does not accept a number")
            if not isinstance(self.number, int) or self.number < 1:
                raise ValueError("Callout number must be a positive integer")

        if self.text and not spec.accepts_text:
            raise ValueError(f"Shape {spec.shape.value} does not accept text")
        if self.reveal_text is not None and spec.shape != Shape.NUMBER:
            raise ValueError("Only numbered callouts accept reveal text")

        payloads = self.payloads()
        if len(payloads) > 1:
            raise ValueError(f"Only one shape payload allowed, got {payloads}")
        for attr, _, _, owner in _PAYLOADS:
            if getattr(self, attr) is not None and owner != self.shape:
                raise ValueError(f"{attr} does not belong to shape {spec.shape.value}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted camelCase dict (None fields omitted)."""
        shape = self.shape.value if isinstance(self.shape, Shape) else self.shape
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        data.update(
            {
                "shape": shape,
                "color": self.color,
                "x": self.x,
                "y": self.y,
                "width": self.width,
                "height": self.height,
            }
        )
        if self.number is not None:
            data["number"] = self.number
        if self.text is not None:
            data["text"] = self.text
        if self.reveal_text is not None:
            data["revealText"] = self.reveal_text
        if self.style is not None:
            data["style"] = self.style.to_dict()
        for attr, wire, _, _ in _PAYLOADS:
            payload = getattr(self, attr)
            if payload is not None:
                data[wire] = payload.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Callout:
        """Reconstruct a Callout from its persisted dict.

        Raises:
            KeyError: If a required field is missing.
        """
        payloads = {
            attr: payload_cls.from_dict(data[wire])
            for attr, wire, payload_cls, _ in _PAYLOADS
            if data.get(wire)
        }
        return cls(
            id=data.get("id"),
            shape=Shape.coerce(data["shape"]),
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"],
            color=data.get("color", "#FF6B6B"),
            style=CalloutStyle.from_dict(data.get("style")),
            number=data.get("number"),
            reveal_text=data.get("revealText"),
            text=data.get("text"),
            **payloads,
        )


@dataclass
class Screenshot:
    """A screenshot and its ordered callouts (list order is z-order).

    Screenshot also satisfies the overlay host protocol, so a controller
    can mutate it directly in tests and in the command line tools.
    """

    image_ref: str
    callouts: list[Callout] = field(default_factory=list)

    def get_callout(self, callout_id: str) -> Optional[Callout]:
        for callout in self.callouts:
            if callout.id == callout_id:
                return callout
        return None

    def numbered_callouts(self) -> list[Callout]:
        return [c for c in self.callouts if c.shape == Shape.NUMBER]

    def add_callout(self, draft: Callout) -> Callout:
        """Assign an id to a draft, validate it and append it."""
        callout = replace(draft, id=new_callout_id())
        callout.validate()
        self.callouts.append(callout)
        logger.debug("Added %s callout %s", callout.shape, callout.id)
        return callout

    def update_callout(self, callout: Callout) -> None:
        """Replace the record with the same id.

        Raises:
            KeyError: If no callout has that id.
        """
        for index, existing in enumerate(self.callouts):
            if existing.id == callout.id:
                callout.validate()
                self.callouts[index] = callout
                return
        raise KeyError(f"No callout with id {callout.id!r}")

    def delete_callout(self, callout_id: str) -> bool:
        before = len(self.callouts)
        self.callouts = [c for c in self.callouts if c.id != callout_id]
        return len(self.callouts) != before

    # OverlayHost protocol
    def on_callout_add(self, draft: Callout) -> None:
        self.add_callout(draft)

    def on_callout_update(self, callout: Callout) -> None:
        self.update_callout(callout)

    def on_callout_delete(self, callout_id: str) -> None:
        self.delete_callout(callout_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "imageRef": self.image_ref,
            "callouts": [c.to_dict() for c in self.callouts],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Screenshot:
        return cls(
            image_ref=data.get("imageRef", ""),
            callouts=[Callout.from_dict(c) for c in data.get("callouts", [])],
        )


def load_callouts(records: Iterable[Union[Callout, dict[str, Any]]]) -> list[Callout]:
    """Read callout records, skipping (and logging) unreadable ones."""
    callouts = []
    for record in records:
        if isinstance(record, Callout):
            callouts.append(record)
            continue
        try:
            callouts.append(Callout.from_dict(record))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Skipping unreadable callout record: %s", e)
    return callouts
