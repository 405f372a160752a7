# photo_modules/sanitizer.py
"""
Per-region geometry validation and repair.

Each region either comes back sanitized or is replaced by a SanitizerDrop
naming why it was discarded. Nothing here raises on bad geometry.
"""

from typing import List, Optional, Tuple

from .geometry import (
    bbox_from_points,
    clamp01,
    clamp_values01,
    is_empty_box,
    normalize_bbox,
    normalize_polygon_points,
    points_collinear,
    polygon_area,
    polygon_self_intersects,
    rectangle_from_bbox,
    CLAMP_EPSILON,
)
from .models import (
    FACE_CROP_NORM_COORD_SPACE,
    Bbox,
    Grid,
    Heatmap,
    Point,
    Polygon,
    RawRegion,
    Region,
    RegionStyle,
    SanitizerDrop,
    ValueRange,
)
from .utils import as_list, as_text, unique_list


HEATMAP_GRID_W = 64
HEATMAP_GRID_H = 64
LABEL_MAX_LENGTH = 64
MAX_REGION_NOTES = 6

SELF_INTERSECTION_NOTE = "self_intersection_replaced_with_bbox"

SanitizeOutcome = Tuple[Optional[Region], Optional[SanitizerDrop]]


def _drop(region: RawRegion, reason: str) -> SanitizeOutcome:
    return None, SanitizerDrop(reason=reason, region_type=region.type, region_id=region.region_id)


def _build_region(region: RawRegion, notes: Optional[List[str]] = None, **shape) -> Region:
    fields = dict(
        region_id=region.region_id,
        type=region.type,
        issue_type=region.issue_type,
        coord_space=FACE_CROP_NORM_COORD_SPACE,
        style=RegionStyle(
            intensity=clamp01(region.style.intensity),
            priority=clamp01(region.style.priority),
            label_hint=region.style.label_hint.strip()[:LABEL_MAX_LENGTH],
        ),
        quality_flags=list(region.quality_flags or []),
    )
    fields.update(shape)
    incoming = [as_text(note) for note in as_list(region.notes)]
    merged_notes = unique_list(incoming + list(notes or []), MAX_REGION_NOTES)
    if merged_notes:
        fields["notes"] = merged_notes
    return Region(**fields)


def sanitize_bbox_region(region: RawRegion) -> SanitizeOutcome:
    if region.bbox is None:
        return _drop(region, "bbox_invalid")
    box = normalize_bbox(region.bbox.x, region.bbox.y, region.bbox.w, region.bbox.h)
    if is_empty_box(box):
        return _drop(region, "bbox_empty")
    x, y, w, h = box
    return _build_region(region, bbox=Bbox(x=x, y=y, w=w, h=h)), None


def sanitize_polygon_region(region: RawRegion) -> SanitizeOutcome:
    """
    Clean up polygon points and make sure the outline is simple.

    A self-intersecting outline is replaced by the rectangle of its bounding
    box and tagged with a note, so the finding stays visible. The area check
    runs on the final outline: a bow-tie has zero signed area but a perfectly
    usable bounding box. Points that all lie on one line enclose nothing and
    are dropped, even when the path doubles back over itself.
    """
    if region.polygon is None:
        return _drop(region, "polygon_invalid")

    points = normalize_polygon_points([(p.x, p.y) for p in region.polygon.points])
    if len(points) < 3 or points_collinear(points):
        return _drop(region, "polygon_empty")

    notes: List[str] = []
    if polygon_self_intersects(points):
        box = bbox_from_points(points)
        if is_empty_box(box):
            return _drop(region, "polygon_empty")
        points = rectangle_from_bbox(box)
        notes.append(SELF_INTERSECTION_NOTE)

    if polygon_area(points) <= CLAMP_EPSILON:
        return _drop(region, "polygon_empty")

    polygon = Polygon(points=[Point(x=x, y=y) for x, y in points], closed=True)
    return _build_region(region, notes=notes, polygon=polygon), None


def sanitize_heatmap_region(region: RawRegion) -> SanitizeOutcome:
    """Only the fixed 64x64 grid is accepted; the renderer never resamples."""
    heatmap = region.heatmap
    if heatmap is None:
        return _drop(region, "heatmap_invalid")
    if heatmap.grid.w != HEATMAP_GRID_W or heatmap.grid.h != HEATMAP_GRID_H:
        return _drop(region, "heatmap_grid_invalid")
    if len(heatmap.values) != heatmap.grid.w * heatmap.grid.h:
        return _drop(region, "heatmap_length_mismatch")

    normalized = Heatmap(
        coord_space=FACE_CROP_NORM_COORD_SPACE,
        grid=Grid(w=HEATMAP_GRID_W, h=HEATMAP_GRID_H),
        values=clamp_values01(heatmap.values),
        value_range=ValueRange(min=0.0, max=1.0),
        smoothing_hint=heatmap.smoothing_hint or "bilinear",
    )
    return _build_region(region, heatmap=normalized), None


SANITIZERS = {
    "bbox": sanitize_bbox_region,
    "polygon": sanitize_polygon_region,
    "heatmap": sanitize_heatmap_region,
}


def sanitize_region(region: RawRegion) -> SanitizeOutcome:
    return SANITIZERS[region.type](region)


def sanitize_regions(regions: List[RawRegion]) -> Tuple[List[Region], List[SanitizerDrop]]:
    """
    Sanitize every region in payload order.

    Returns:
        (surviving regions, drop records) as two parallel-built lists
    """
    kept: List[Region] = []
    drops: List[SanitizerDrop] = []
    for raw in regions:
        region, drop = sanitize_region(raw)
        if region is not None:
            kept.append(region)
        if drop is not None:
            drops.append(drop)
    return kept, drops
