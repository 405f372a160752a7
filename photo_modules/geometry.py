# photo_modules/geometry.py
"""
Geometry helpers for face-crop normalized coordinates.

Every point lives in [0, 1] x [0, 1] with the origin at the top-left of the
face crop.
"""

import math
from typing import List, Sequence, Tuple

import numpy as np


# ==========================
# CONSTANTS
# ==========================

CLAMP_EPSILON = 1e-4
POINT_EPSILON = 1e-6
ORIENTATION_EPSILON = 1e-9

# Boxes are rounded so that re-normalizing a normalized box is byte-stable.
COORD_DECIMALS = 6

Point = Tuple[float, float]
Box = Tuple[float, float, float, float]


# ==========================
# CLAMPING
# ==========================

def clamp01(value) -> float:
    """Clamp into [0, 1]; non-numeric and non-finite input becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number <= 0:
        return 0.0
    if number >= 1:
        return 1.0
    return number


def clamp_values01(values: Sequence[float]) -> List[float]:
    """Vectorized clamp01 for heatmap and mask value arrays."""
    arr = np.asarray(values, dtype=np.float64)
    arr = np.nan_to_num(arr, nan=0.0, posinf=0.0, neginf=0.0)
    return np.clip(arr, 0.0, 1.0).tolist()


def normalize_bbox(x: float, y: float, w: float, h: float) -> Box:
    """
    Clamp both corners independently and recompute the size from them.

    A box hanging off the crop keeps only its visible part; a box entirely
    outside collapses to zero width or height.
    """
    x0 = round(clamp01(x), COORD_DECIMALS)
    y0 = round(clamp01(y), COORD_DECIMALS)
    x1 = round(clamp01(_safe_sum(x, w)), COORD_DECIMALS)
    y1 = round(clamp01(_safe_sum(y, h)), COORD_DECIMALS)
    return (
        x0,
        y0,
        round(max(0.0, x1 - x0), COORD_DECIMALS),
        round(max(0.0, y1 - y0), COORD_DECIMALS),
    )


def _safe_sum(a: float, b: float) -> float:
    total = float(a) + float(b)
    return total if math.isfinite(total) else 0.0


def is_empty_box(box: Box) -> bool:
    return box[2] <= CLAMP_EPSILON or box[3] <= CLAMP_EPSILON


# ==========================
# POLYGONS
# ==========================

def points_equal(a: Point, b: Point) -> bool:
    return abs(a[0] - b[0]) <= POINT_EPSILON and abs(a[1] - b[1]) <= POINT_EPSILON


def normalize_polygon_points(points: Sequence[Point]) -> List[Point]:
    """Clamp points, collapse consecutive duplicates, drop an explicit closing point."""
    out: List[Point] = []
    for raw_x, raw_y in points:
        point = (clamp01(raw_x), clamp01(raw_y))
        if not out or not points_equal(out[-1], point):
            out.append(point)
    if len(out) >= 2 and points_equal(out[0], out[-1]):
        out.pop()
    return out


def polygon_area(points: Sequence[Point]) -> float:
    """Absolute shoelace area."""
    if len(points) < 3:
        return 0.0
    area = 0.0
    for index, current in enumerate(points):
        nxt = points[(index + 1) % len(points)]
        area += current[0] * nxt[1] - nxt[0] * current[1]
    return abs(area) * 0.5


def orientation(a: Point, b: Point, c: Point) -> int:
    """0 collinear, 1 clockwise, 2 counter-clockwise."""
    value = (b[1] - a[1]) * (c[0] - b[0]) - (b[0] - a[0]) * (c[1] - b[1])
    if abs(value) <= ORIENTATION_EPSILON:
        return 0
    return 1 if value > 0 else 2


def points_collinear(points: Sequence[Point]) -> bool:
    """Whether every point lies on the line through the first two distinct points."""
    if not points:
        return True
    anchor = points[0]
    direction = next((p for p in points[1:] if not points_equal(anchor, p)), None)
    if direction is None:
        return True
    return all(orientation(anchor, direction, p) == 0 for p in points)


def on_segment(a: Point, b: Point, c: Point) -> bool:
    """Whether collinear point b lies on segment a-c."""
    return (
        b[0] <= max(a[0], c[0]) + ORIENTATION_EPSILON
        and b[0] + ORIENTATION_EPSILON >= min(a[0], c[0])
        and b[1] <= max(a[1], c[1]) + ORIENTATION_EPSILON
        and b[1] + ORIENTATION_EPSILON >= min(a[1], c[1])
    )


def segments_intersect(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    o1 = orientation(a1, a2, b1)
    o2 = orientation(a1, a2, b2)
    o3 = orientation(b1, b2, a1)
    o4 = orientation(b1, b2, a2)

    if o1 != o2 and o3 != o4:
        return True
    if o1 == 0 and on_segment(a1, b1, a2):
        return True
    if o2 == 0 and on_segment(a1, b2, a2):
        return True
    if o3 == 0 and on_segment(b1, a1, b2):
        return True
    if o4 == 0 and on_segment(b1, a2, b2):
        return True
    return False


def polygon_self_intersects(points: Sequence[Point]) -> bool:
    """Test every pair of non-adjacent edges, including the closing edge."""
    length = len(points)
    if length < 4:
        return False
    for a in range(length):
        a1 = points[a]
        a2 = points[(a + 1) % length]
        for b in range(a + 2, length):
            # first and last edges share the closing vertex
            if a == 0 and b == length - 1:
                continue
            b1 = points[b]
            b2 = points[(b + 1) % length]
            if segments_intersect(a1, a2, b1, b2):
                return True
    return False


def bbox_from_points(points: Sequence[Point]) -> Box:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    min_x, min_y = min(xs), min(ys)
    return normalize_bbox(min_x, min_y, max(xs) - min_x, max(ys) - min_y)


def rectangle_from_bbox(box: Box) -> List[Point]:
    """Canonical clockwise rectangle starting at the top-left corner."""
    x, y, w, h = box
    x1 = round(clamp01(x + w), COORD_DECIMALS)
    y1 = round(clamp01(y + h), COORD_DECIMALS)
    return [(x, y), (x1, y), (x1, y1), (x, y1)]
