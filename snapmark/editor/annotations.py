"""
Annotation model for SnapMark.

This module holds the data for every annotation that can be drawn over a
selection, and the Annotations container that manages their lifecycle.

Annotation Types:
- Stroke: Freehand path
- Arrow: Straight line with an arrowhead at the end point
- Shape: Rectangle or ellipse, outlined or filled
- Polyline: Connected segments, optionally closed
- Highlighter: Semi-transparent rectangle
- SequenceMarker: Numbered circle badge

Creation is two-phase: a start_* call opens the single in-progress entity,
update_preview() moves its live endpoint, and finish() either commits it to
the matching completed list or discards it when it is too small. All
coordinates are logical pixels.
"""

import math
import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple, Union

from PySide6.QtCore import QPointF, QRectF

from snapmark.core.geometry import normalized_rect
from snapmark.services.logging_service import get_logger

_logger = get_logger(__name__)

# Minimum sizes (logical px) for an entity to be committed
MIN_ARROW_LENGTH = 5.0
MIN_SHAPE_SIZE = 5.0
MIN_HIGHLIGHTER_SIZE = 2.0
MIN_PATH_POINTS = 2

_HEX_COLOR_RE = re.compile(r"[0-9A-Fa-f]{6}([0-9A-Fa-f]{2})?")


# ─── Color & Stroke Settings ──────────────────────────────────────────────


@dataclass(frozen=True)
class Color:
    """An RGBA8 color."""
    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def from_hex(cls, value: str) -> "Color":
        """
        Parse a #RRGGBB or #RRGGBBAA string.

        Args:
            value: The hex string, with or without the leading '#'.

        Returns:
            The parsed Color.

        Raises:
            ValueError: If the string is not a valid hex color.
        """
        text = value.strip().lstrip("#")
        if not _HEX_COLOR_RE.fullmatch(text):
            raise ValueError(f"Invalid color: {value!r}")
        channels = [int(text[i:i + 2], 16) for i in range(0, len(text), 2)]
        return cls(*channels)

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b, self.a):
            if not 0 <= channel <= 255:
                raise ValueError(f"Color channel out of range: {channel}")

    def to_hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}{self.a:02X}"

    def to_tuple(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)


RED = Color(255, 0, 0)
WHITE = Color(255, 255, 255)

DEFAULT_HIGHLIGHTER_COLOR = Color(255, 255, 0, 100)
DEFAULT_MARKER_RADIUS = 16.0
DEFAULT_MARKER_COLOR = Color(211, 78, 78)


class StrokeStyle(Enum):
    """Line pattern used by the rasterizer."""
    SOLID = auto()
    DASHED = auto()
    DOTTED = auto()


@dataclass
class StrokeSettings:
    """Pen settings shared by strokes, arrows, shapes and polylines."""
    width: float = 4.0
    style: StrokeStyle = StrokeStyle.SOLID
    color: Color = RED

    def clone(self) -> "StrokeSettings":
        return StrokeSettings(width=self.width, style=self.style, color=self.color)


class ShapeType(Enum):
    RECTANGLE = auto()
    ELLIPSE = auto()


class FillMode(Enum):
    OUTLINE = auto()
    FILLED = auto()


class LabelStyle(Enum):
    """How a sequence marker renders its number."""
    NUMBER = auto()
    LETTER = auto()
    ROMAN = auto()


_ROMAN_TABLE = (
    (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"),
    (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
    (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
)


def to_roman(number: int) -> str:
    """Classic subtractive Roman numeral for a positive integer."""
    result = []
    remaining = number
    for value, numeral in _ROMAN_TABLE:
        while remaining >= value:
            result.append(numeral)
            remaining -= value
    return "".join(result)


# ─── Annotation Entities ──────────────────────────────────────────────────


@dataclass
class Stroke:
    """A freehand path."""
    points: List[QPointF] = field(default_factory=list)
    settings: StrokeSettings = field(default_factory=StrokeSettings)

    def add_point(self, pos: QPointF) -> None:
        self.points.append(QPointF(pos))

    def is_valid(self) -> bool:
        return len(self.points) >= MIN_PATH_POINTS

    def clone(self) -> "Stroke":
        return Stroke([QPointF(p) for p in self.points], self.settings.clone())


@dataclass
class Arrow:
    """A straight arrow from start to end; the head is drawn at end."""
    start: QPointF
    end: QPointF
    settings: StrokeSettings = field(default_factory=StrokeSettings)

    def length(self) -> float:
        dx = self.end.x() - self.start.x()
        dy = self.end.y() - self.start.y()
        return math.hypot(dx, dy)

    def direction(self) -> QPointF:
        """Unit vector from start to end, or (0, 0) for a zero-length arrow."""
        length = self.length()
        if length == 0:
            return QPointF(0.0, 0.0)
        return QPointF(
            (self.end.x() - self.start.x()) / length,
            (self.end.y() - self.start.y()) / length,
        )

    def snap_angle(self) -> None:
        """Rotate the end point to the nearest 45° increment, keeping length."""
        length = self.length()
        if length == 0:
            return
        angle = math.atan2(self.end.y() - self.start.y(), self.end.x() - self.start.x())
        snapped = round(angle / (math.pi / 4)) * (math.pi / 4)
        self.end = QPointF(
            self.start.x() + length * math.cos(snapped),
            self.start.y() + length * math.sin(snapped),
        )

    def is_valid(self) -> bool:
        return self.length() > MIN_ARROW_LENGTH

    def clone(self) -> "Arrow":
        return Arrow(QPointF(self.start), QPointF(self.end), self.settings.clone())


@dataclass
class Shape:
    """A rectangle or ellipse inscribed in rect."""
    anchor: QPointF
    rect: QRectF
    shape_type: ShapeType = ShapeType.RECTANGLE
    fill_mode: FillMode = FillMode.OUTLINE
    settings: StrokeSettings = field(default_factory=StrokeSettings)

    def update_to(self, pos: QPointF) -> None:
        self.rect = normalized_rect(self.anchor, pos)

    def is_valid(self) -> bool:
        return self.rect.width() > MIN_SHAPE_SIZE and self.rect.height() > MIN_SHAPE_SIZE

    def clone(self) -> "Shape":
        return Shape(
            QPointF(self.anchor),
            QRectF(self.rect),
            self.shape_type,
            self.fill_mode,
            self.settings.clone(),
        )


@dataclass
class Polyline:
    """
    Connected line segments.

    While being drawn, the last point is a preview vertex that follows the
    cursor; add_vertex() pins it and opens a new preview vertex.
    """
    points: List[QPointF] = field(default_factory=list)
    settings: StrokeSettings = field(default_factory=StrokeSettings)
    closed: bool = False

    def add_vertex(self, pos: QPointF) -> None:
        if self.points:
            self.points[-1] = QPointF(pos)
        else:
            self.points.append(QPointF(pos))
        self.points.append(QPointF(pos))

    def move_preview(self, pos: QPointF) -> None:
        if len(self.points) < 2:
            self.points.append(QPointF(pos))
        else:
            self.points[-1] = QPointF(pos)

    def drop_preview(self) -> None:
        """Remove a trailing preview vertex that duplicates the last pinned one."""
        if len(self.points) >= 2 and self.points[-1] == self.points[-2]:
            self.points.pop()

    def is_valid(self) -> bool:
        return len(self.points) >= MIN_PATH_POINTS

    def clone(self) -> "Polyline":
        return Polyline([QPointF(p) for p in self.points], self.settings.clone(), self.closed)


@dataclass
class Highlighter:
    """A semi-transparent rectangle."""
    anchor: QPointF
    rect: QRectF
    color: Color = DEFAULT_HIGHLIGHTER_COLOR

    def update_to(self, pos: QPointF) -> None:
        self.rect = normalized_rect(self.anchor, pos)

    def is_valid(self) -> bool:
        return (
            self.rect.width() > MIN_HIGHLIGHTER_SIZE
            and self.rect.height() > MIN_HIGHLIGHTER_SIZE
        )

    def clone(self) -> "Highlighter":
        return Highlighter(QPointF(self.anchor), QRectF(self.rect), self.color)


@dataclass
class SequenceMarker:
    """A numbered circle badge."""
    center: QPointF
    number: int
    radius: float = DEFAULT_MARKER_RADIUS
    color: Color = DEFAULT_MARKER_COLOR
    label_style: LabelStyle = LabelStyle.NUMBER

    def label(self) -> str:
        """
        The text shown inside the marker.

        Letters cycle A..Z without multi-letter wrap-around, so 27 is "A".
        """
        if self.label_style == LabelStyle.LETTER:
            return chr(ord("A") + (self.number - 1) % 26)
        if self.label_style == LabelStyle.ROMAN:
            return to_roman(self.number)
        return str(self.number)

    def clone(self) -> "SequenceMarker":
        return SequenceMarker(
            QPointF(self.center), self.number, self.radius, self.color, self.label_style
        )


ActiveTool = Union[Stroke, Arrow, Shape, Polyline, Highlighter]


@dataclass(frozen=True)
class AnnotationsSnapshot:
    """Immutable copy of the committed annotations."""
    strokes: Tuple[Stroke, ...] = ()
    arrows: Tuple[Arrow, ...] = ()
    shapes: Tuple[Shape, ...] = ()
    polylines: Tuple[Polyline, ...] = ()
    highlighters: Tuple[Highlighter, ...] = ()
    markers: Tuple[SequenceMarker, ...] = ()
    next_sequence: int = 1
    label_style: LabelStyle = LabelStyle.NUMBER


# ─── Annotations Container ────────────────────────────────────────────────


class Annotations:
    """
    All annotations of one capture session.

    Holds the committed entities per type, a single in-progress entity and
    the sequence marker counter.
    """

    def __init__(self) -> None:
        self.strokes: List[Stroke] = []
        self.arrows: List[Arrow] = []
        self.shapes: List[Shape] = []
        self.polylines: List[Polyline] = []
        self.highlighters: List[Highlighter] = []
        self.markers: List[SequenceMarker] = []
        self.next_sequence: int = 1
        self.label_style: LabelStyle = LabelStyle.NUMBER
        self._current: Optional[ActiveTool] = None

    # ─── In-progress Entity ───────────────────────────────────────────────

    @property
    def current(self) -> Optional[ActiveTool]:
        """The entity being drawn, if any."""
        return self._current

    def is_any_drawing(self) -> bool:
        return self._current is not None

    def start_stroke(self, pos: QPointF, settings: StrokeSettings) -> None:
        stroke = Stroke(settings=settings.clone())
        stroke.add_point(pos)
        self._current = stroke

    def start_arrow(self, pos: QPointF, settings: StrokeSettings) -> None:
        self._current = Arrow(QPointF(pos), QPointF(pos), settings.clone())

    def start_shape(
        self,
        pos: QPointF,
        shape_type: ShapeType,
        fill_mode: FillMode,
        settings: StrokeSettings,
    ) -> None:
        self._current = Shape(
            anchor=QPointF(pos),
            rect=QRectF(pos, pos),
            shape_type=shape_type,
            fill_mode=fill_mode,
            settings=settings.clone(),
        )

    def start_polyline(self, pos: QPointF, settings: StrokeSettings) -> None:
        polyline = Polyline(settings=settings.clone())
        polyline.add_vertex(pos)
        self._current = polyline

    def start_highlighter(
        self, pos: QPointF, color: Color = DEFAULT_HIGHLIGHTER_COLOR
    ) -> None:
        self._current = Highlighter(anchor=QPointF(pos), rect=QRectF(pos, pos), color=color)

    def update_preview(self, pos: QPointF, snap: bool = False) -> None:
        """
        Move the live endpoint of the in-progress entity.

        Args:
            pos: Cursor position in logical pixels.
            snap: Snap arrows to the nearest 45° angle.
        """
        current = self._current
        if current is None:
            return
        if isinstance(current, Stroke):
            current.add_point(pos)
        elif isinstance(current, Arrow):
            current.end = QPointF(pos)
            if snap:
                current.snap_angle()
        elif isinstance(current, (Shape, Highlighter)):
            current.update_to(pos)
        elif isinstance(current, Polyline):
            current.move_preview(pos)

    def add_polyline_vertex(self, pos: QPointF) -> None:
        """Pin a vertex of the in-progress polyline."""
        if isinstance(self._current, Polyline):
            self._current.add_vertex(pos)

    def finish(self, closed: bool = False) -> bool:
        """
        Commit the in-progress entity if it is large enough.

        Entities below the minimum size are dropped without error.

        Args:
            closed: For polylines, join the last point back to the first.

        Returns:
            True if an entity was committed.
        """
        current = self._current
        self._current = None
        if current is None:
            return False

        if isinstance(current, Polyline):
            current.drop_preview()
            current.closed = closed

        if not current.is_valid():
            _logger.debug(f"Discarded {type(current).__name__} below minimum size")
            return False

        if isinstance(current, Stroke):
            self.strokes.append(current)
        elif isinstance(current, Arrow):
            self.arrows.append(current)
        elif isinstance(current, Shape):
            self.shapes.append(current)
        elif isinstance(current, Polyline):
            self.polylines.append(current)
        elif isinstance(current, Highlighter):
            self.highlighters.append(current)

        _logger.debug(f"Committed {type(current).__name__}")
        return True

    def cancel_current(self) -> None:
        self._current = None

    # ─── Sequence Markers ─────────────────────────────────────────────────

    def add_marker(
        self,
        pos: QPointF,
        color: Color = DEFAULT_MARKER_COLOR,
        radius: Optional[float] = None,
    ) -> SequenceMarker:
        """
        Place a marker with the next sequence number.

        Returns:
            The committed marker.
        """
        marker = SequenceMarker(
            center=QPointF(pos),
            number=self.next_sequence,
            radius=DEFAULT_MARKER_RADIUS if radius is None else radius,
            color=color,
            label_style=self.label_style,
        )
        self.markers.append(marker)
        self.next_sequence += 1
        _logger.debug(f"Committed marker {marker.label()}")
        return marker

    def decrement_sequence(self) -> None:
        if self.next_sequence > 1:
            self.next_sequence -= 1

    def remove_last_marker(self) -> Optional[SequenceMarker]:
        if not self.markers:
            return None
        marker = self.markers.pop()
        self.decrement_sequence()
        return marker

    def set_label_style(self, style: LabelStyle) -> None:
        self.label_style = style

    # ─── Snapshots ────────────────────────────────────────────────────────

    def snapshot(self) -> AnnotationsSnapshot:
        """Copy the committed state. The in-progress entity is not included."""
        return AnnotationsSnapshot(
            strokes=tuple(s.clone() for s in self.strokes),
            arrows=tuple(a.clone() for a in self.arrows),
            shapes=tuple(s.clone() for s in self.shapes),
            polylines=tuple(p.clone() for p in self.polylines),
            highlighters=tuple(h.clone() for h in self.highlighters),
            markers=tuple(m.clone() for m in self.markers),
            next_sequence=self.next_sequence,
            label_style=self.label_style,
        )

    def restore(self, snapshot: AnnotationsSnapshot) -> None:
        """Replace the committed state and drop any in-progress entity."""
        self.strokes = [s.clone() for s in snapshot.strokes]
        self.arrows = [a.clone() for a in snapshot.arrows]
        self.shapes = [s.clone() for s in snapshot.shapes]
        self.polylines = [p.clone() for p in snapshot.polylines]
        self.highlighters = [h.clone() for h in snapshot.highlighters]
        self.markers = [m.clone() for m in snapshot.markers]
        self.next_sequence = snapshot.next_sequence
        self.label_style = snapshot.label_style
        self._current = None

    def clone(self) -> "Annotations":
        """Deep copy, safe to hand to another thread."""
        other = Annotations()
        other.restore(self.snapshot())
        if self._current is not None:
            other._current = self._current.clone()
        return other

    def clear(self) -> None:
        self.strokes.clear()
        self.arrows.clear()
        self.shapes.clear()
        self.polylines.clear()
        self.highlighters.clear()
        self.markers.clear()
        self.next_sequence = 1
        self._current = None

    def is_empty(self) -> bool:
        return not (
            self.strokes
            or self.arrows
            or self.shapes
            or self.polylines
            or self.highlighters
            or self.markers
        )
