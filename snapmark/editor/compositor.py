"""
Compositor for SnapMark.

Renders committed annotations onto a crop of the captured screen, producing
the final exported image. Annotation coordinates are logical pixels; they
are mapped into the crop's physical pixel space with CoordinateMapper.

Layers are painted in a fixed order, bottom to top:
highlighters, shapes, polylines, strokes, arrows, markers.

Every write is clipped to the crop, so annotations that extend past the
selection are cut off rather than raising. Fills and disc rows are blended
as numpy slices.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np
from PySide6.QtCore import QPointF

from snapmark.core.geometry import CoordinateMapper, PhysicalRect
from snapmark.core.image_buffer import Rgba, ScreenCaptureBuffer
from snapmark.editor.annotations import (
    WHITE,
    Annotations,
    Arrow,
    FillMode,
    Highlighter,
    Polyline,
    SequenceMarker,
    Shape,
    ShapeType,
    Stroke,
    StrokeStyle,
)

Point = Tuple[int, int]

# Arrowhead length never exceeds this many physical pixels
MAX_ARROW_HEAD_LENGTH = 20.0
MIN_ARROW_LENGTH_PX = 10.0
ARROW_HEAD_RATIO = 0.25
ARROW_HEAD_WIDTH_RATIO = 0.6

DASH_PERIOD = 8
DOT_PERIOD = 4


def composite_annotations(
    source: ScreenCaptureBuffer,
    annotations: Annotations,
    selection_physical: PhysicalRect,
    selection_logical_min: QPointF,
    scale_factor: float,
) -> ScreenCaptureBuffer:
    """
    Crop the selection out of source and paint annotations over it.

    Args:
        source: The full captured screen. Not modified.
        annotations: Committed annotations in logical pixels.
        selection_physical: Crop window in physical pixels.
        selection_logical_min: Top-left of the selection in logical pixels.
        scale_factor: Physical / logical ratio.

    Returns:
        A new buffer the size of the crop window. Empty (0x0) when the
        window has no area.
    """
    result = source.crop(
        selection_physical.x1,
        selection_physical.y1,
        selection_physical.width,
        selection_physical.height,
    )
    if result.is_empty:
        return ScreenCaptureBuffer(0, 0)

    mapper = CoordinateMapper(selection_logical_min, scale_factor)

    for highlighter in annotations.highlighters:
        draw_highlighter(result, highlighter, mapper)
    for shape in annotations.shapes:
        draw_shape(result, shape, mapper)
    for polyline in annotations.polylines:
        draw_polyline(result, polyline, mapper)
    for stroke in annotations.strokes:
        draw_stroke(result, stroke, mapper)
    for arrow in annotations.arrows:
        draw_arrow(result, arrow, mapper)
    for marker in annotations.markers:
        draw_sequence_marker(result, marker, mapper)

    return result


# ─── Primitives ───────────────────────────────────────────────────────────


def blend_region(
    image: ScreenCaptureBuffer, x1: int, y1: int, x2: int, y2: int, color: Rgba
) -> None:
    """
    Alpha-blend color over the inclusive box (x1, y1)-(x2, y2).

    The box is clipped to the image. Opaque colors overwrite, fully
    transparent colors are skipped, anything in between is mixed per
    channel (truncated) and leaves the pixels opaque.
    """
    min_x = max(x1, 0)
    max_x = min(x2, image.width - 1)
    min_y = max(y1, 0)
    max_y = min(y2, image.height - 1)
    if min_x > max_x or min_y > max_y:
        return

    alpha = color[3] / 255.0
    if alpha <= 0.0:
        return

    region = image.pixels[min_y:max_y + 1, min_x:max_x + 1]
    if alpha >= 1.0:
        region[:] = color
        return

    inv_alpha = 1.0 - alpha
    source = np.array(color[:3], dtype=np.float64) * alpha
    region[..., :3] = (source + region[..., :3] * inv_alpha).astype(np.uint8)
    region[..., 3] = 255


def _disc_spans(radius: float) -> List[Tuple[int, int]]:
    """Row offset and half-width of every row of a filled disc."""
    radius_i = math.ceil(radius)
    radius_sq = radius * radius
    spans = []
    for dy_off in range(-radius_i, radius_i + 1):
        half = -1
        for dx_off in range(radius_i + 1):
            if dx_off * dx_off + dy_off * dy_off <= radius_sq:
                half = dx_off
        if half >= 0:
            spans.append((dy_off, half))
    return spans


def draw_thick_line(
    image: ScreenCaptureBuffer,
    x1: int,
    y1: int,
    x2: int,
    y2: int,
    thickness: float,
    color: Rgba,
    style: StrokeStyle = StrokeStyle.SOLID,
) -> None:
    """
    Bresenham line with a filled disc stamped at every step.

    Args:
        image: Target buffer.
        x1, y1: Start pixel.
        x2, y2: End pixel (inclusive).
        thickness: Line width in physical pixels.
        color: RGBA color.
        style: Dashed paints steps where (step // 8) is even, Dotted where
            (step // 4) is even.
    """
    # Disc rows are the same at every step
    disc = _disc_spans(max(thickness / 2.0, 0.5))

    dx = abs(x2 - x1)
    dy = abs(y2 - y1)
    sx = 1 if x1 < x2 else -1
    sy = 1 if y1 < y2 else -1
    err = dx - dy

    x, y = x1, y1
    step = 0

    while True:
        if style == StrokeStyle.DASHED:
            should_draw = (step // DASH_PERIOD) % 2 == 0
        elif style == StrokeStyle.DOTTED:
            should_draw = (step // DOT_PERIOD) % 2 == 0
        else:
            should_draw = True

        if should_draw:
            for dy_off, half in disc:
                blend_region(image, x - half, y + dy_off, x + half, y + dy_off, color)

        if x == x2 and y == y2:
            break

        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x += sx
        if e2 < dx:
            err += dx
            y += sy
        step += 1


def draw_filled_rect(
    image: ScreenCaptureBuffer, x1: int, y1: int, x2: int, y2: int, color: Rgba
) -> None:
    """Fill the inclusive box between two corners, clipped to the image."""
    blend_region(image, min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2), color)


def draw_rect_outline(
    image: ScreenCaptureBuffer,
    x1: int,
    y1: int,
    x2: int,
    y2: int,
    thickness: float,
    color: Rgba,
) -> None:
    draw_thick_line(image, x1, y1, x2, y1, thickness, color)  # Top
    draw_thick_line(image, x2, y1, x2, y2, thickness, color)  # Right
    draw_thick_line(image, x2, y2, x1, y2, thickness, color)  # Bottom
    draw_thick_line(image, x1, y2, x1, y1, thickness, color)  # Left


def draw_filled_ellipse(
    image: ScreenCaptureBuffer, cx: int, cy: int, rx: int, ry: int, color: Rgba
) -> None:
    """Scanline-fill an axis-aligned ellipse. Degenerate radii draw nothing."""
    if rx <= 0 or ry <= 0:
        return

    rx2 = rx * rx
    ry2 = ry * ry

    for y in range(-ry, ry + 1):
        x_range_sq = rx2 - (rx2 * y * y) // ry2
        if x_range_sq < 0:
            continue
        x_range = int(math.sqrt(x_range_sq))

        py = cy + y
        blend_region(image, cx - x_range, py, cx + x_range, py, color)


def draw_ellipse_outline(
    image: ScreenCaptureBuffer,
    cx: int,
    cy: int,
    rx: int,
    ry: int,
    thickness: float,
    color: Rgba,
) -> None:
    """Approximate an ellipse outline with straight segments."""
    if rx <= 0 or ry <= 0:
        return

    steps = max((rx + ry) * 2, 32)
    prev = None
    for i in range(steps + 1):
        t = (i / steps) * math.tau
        x = cx + int(rx * math.cos(t))
        y = cy + int(ry * math.sin(t))
        if prev is not None:
            draw_thick_line(image, prev[0], prev[1], x, y, thickness, color)
        prev = (x, y)


def draw_filled_triangle(
    image: ScreenCaptureBuffer, p1: Point, p2: Point, p3: Point, color: Rgba
) -> None:
    """Scanline-fill a triangle between the first two edge crossings of each row."""
    min_y = max(min(p1[1], p2[1], p3[1]), 0)
    max_y = min(max(p1[1], p2[1], p3[1]), image.height - 1)

    for y in range(min_y, max_y + 1):
        intersections = []
        for a, b in ((p1, p2), (p2, p3), (p3, p1)):
            if (a[1] <= y < b[1]) or (b[1] <= y < a[1]):
                t = (y - a[1]) / (b[1] - a[1])
                intersections.append(int(a[0] + t * (b[0] - a[0])))

        intersections.sort()
        if len(intersections) >= 2:
            blend_region(image, intersections[0], y, intersections[1], y, color)


def _draw_path(
    image: ScreenCaptureBuffer,
    points: Sequence[QPointF],
    closed: bool,
    width: float,
    color: Rgba,
    style: StrokeStyle,
    mapper: CoordinateMapper,
) -> None:
    if len(points) < 2:
        return

    thickness = mapper.scale(width)
    physical = [mapper.to_physical(p) for p in points]
    for (x1, y1), (x2, y2) in zip(physical, physical[1:]):
        draw_thick_line(image, x1, y1, x2, y2, thickness, color, style)

    if closed and len(physical) >= 3:
        (x1, y1), (x2, y2) = physical[-1], physical[0]
        draw_thick_line(image, x1, y1, x2, y2, thickness, color, style)


# ─── Annotation Painters ──────────────────────────────────────────────────


def draw_stroke(image: ScreenCaptureBuffer, stroke: Stroke, mapper: CoordinateMapper) -> None:
    settings = stroke.settings
    _draw_path(
        image, stroke.points, False, settings.width,
        settings.color.to_tuple(), settings.style, mapper,
    )


def draw_polyline(
    image: ScreenCaptureBuffer, polyline: Polyline, mapper: CoordinateMapper
) -> None:
    settings = polyline.settings
    _draw_path(
        image, polyline.points, polyline.closed, settings.width,
        settings.color.to_tuple(), settings.style, mapper,
    )


def draw_arrow(image: ScreenCaptureBuffer, arrow: Arrow, mapper: CoordinateMapper) -> None:
    """
    Draw the arrow shaft followed by a filled triangular head at its end.

    The head is a quarter of the arrow's physical length (at least 10 px
    of arrow), capped at MAX_ARROW_HEAD_LENGTH, and 0.6 times as wide on
    each side.
    """
    color = arrow.settings.color.to_tuple()
    thickness = mapper.scale(arrow.settings.width)

    x1, y1 = mapper.to_physical(arrow.start)
    x2, y2 = mapper.to_physical(arrow.end)
    draw_thick_line(image, x1, y1, x2, y2, thickness, color, arrow.settings.style)

    arrow_length = max(arrow.length() * mapper.scale_factor, MIN_ARROW_LENGTH_PX)
    head_length = min(arrow_length * ARROW_HEAD_RATIO, MAX_ARROW_HEAD_LENGTH)
    head_width = head_length * ARROW_HEAD_WIDTH_RATIO

    direction = arrow.direction()
    dir_x, dir_y = direction.x(), direction.y()
    perp_x, perp_y = -dir_y, dir_x

    tip_x, tip_y = float(x2), float(y2)
    back_x = tip_x - dir_x * head_length
    back_y = tip_y - dir_y * head_length
    left = (int(back_x + perp_x * head_width), int(back_y + perp_y * head_width))
    right = (int(back_x - perp_x * head_width), int(back_y - perp_y * head_width))

    draw_filled_triangle(image, (int(tip_x), int(tip_y)), left, right, color)


def draw_shape(image: ScreenCaptureBuffer, shape: Shape, mapper: CoordinateMapper) -> None:
    color = shape.settings.color.to_tuple()
    thickness = mapper.scale(shape.settings.width)

    min_x, min_y = mapper.to_physical(shape.rect.topLeft())
    max_x, max_y = mapper.to_physical(shape.rect.bottomRight())

    if shape.shape_type == ShapeType.RECTANGLE:
        if shape.fill_mode == FillMode.FILLED:
            draw_filled_rect(image, min_x, min_y, max_x, max_y, color)
        else:
            draw_rect_outline(image, min_x, min_y, max_x, max_y, thickness, color)
        return

    # Center truncates toward zero like the radii
    cx = int((min_x + max_x) / 2)
    cy = int((min_y + max_y) / 2)
    rx = abs(max_x - min_x) // 2
    ry = abs(max_y - min_y) // 2
    if shape.fill_mode == FillMode.FILLED:
        draw_filled_ellipse(image, cx, cy, rx, ry, color)
    else:
        draw_ellipse_outline(image, cx, cy, rx, ry, thickness, color)


def draw_highlighter(
    image: ScreenCaptureBuffer, highlighter: Highlighter, mapper: CoordinateMapper
) -> None:
    min_x, min_y = mapper.to_physical(highlighter.rect.topLeft())
    max_x, max_y = mapper.to_physical(highlighter.rect.bottomRight())
    draw_filled_rect(image, min_x, min_y, max_x, max_y, highlighter.color.to_tuple())


def draw_sequence_marker(
    image: ScreenCaptureBuffer, marker: SequenceMarker, mapper: CoordinateMapper
) -> None:
    """
    Draw a marker as a filled disc with a white dot in the middle.

    The dot stands in for the label text; no font rasterizer is involved.
    """
    cx, cy = mapper.to_physical(marker.center)
    radius = int(mapper.scale(marker.radius))

    draw_filled_ellipse(image, cx, cy, radius, radius, marker.color.to_tuple())

    dot_radius = max(radius // 3, 1)
    draw_filled_ellipse(image, cx, cy, dot_radius, dot_radius, WHITE.to_tuple())
