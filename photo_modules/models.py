# photo_modules/models.py
"""
Pydantic models for the photo modules payload.

Raw* models describe what the upstream analysis service is allowed to send.
They accept unknown extra fields so nothing is rejected for carrying more
than we read. The remaining models are the normalized, render-safe output:
frozen, closed to extra fields and built only by the normalizer.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    StrictBool,
    StrictFloat,
    StringConstraints,
)


# ==========================
# CONSTANTS
# ==========================

FACE_CROP_NORM_COORD_SPACE = "face_crop_norm_v1"
ORIG_PX_COORD_SPACE = "orig_px_v1"

ModuleId = Literal[
    "forehead",
    "left_cheek",
    "right_cheek",
    "nose",
    "chin",
    "under_eye_left",
    "under_eye_right",
]
IssueType = Literal["redness", "shine", "texture", "tone", "acne"]
QualityFlag = Literal["glare_confounded", "shadow_confounded", "filter_suspected", "blurred"]
RegionType = Literal["bbox", "polygon", "heatmap"]
QualityGrade = Literal["pass", "degraded", "fail"]
SmoothingHint = Literal["bilinear", "nearest"]
UsageTime = Literal["AM", "PM", "AM_PM"]
UsageFrequency = Literal["daily", "2-3x_week", "weekly"]
DropReason = Literal[
    "bbox_invalid",
    "bbox_empty",
    "polygon_invalid",
    "polygon_empty",
    "heatmap_grid_invalid",
    "heatmap_length_mismatch",
    "heatmap_invalid",
]

TrimmedStr = Annotated[str, StringConstraints(strip_whitespace=True)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Label = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
Explanation = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=220)]
Rationale = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=300)]
UsageNotes = Annotated[str, StringConstraints(strip_whitespace=True, max_length=300)]
Caution = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
ProductCaution = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=180)]
MixWarning = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=140)]
Timeline = Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]
CareTrigger = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=180)]


# ==========================
# RAW (UPSTREAM) PAYLOAD
# ==========================

class RawModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class RawPoint(RawModel):
    x: StrictFloat
    y: StrictFloat


class RawBbox(RawModel):
    x: StrictFloat
    y: StrictFloat
    w: StrictFloat
    h: StrictFloat


class RawGrid(RawModel):
    w: NonNegativeInt
    h: NonNegativeInt


class RawValueRange(RawModel):
    min: StrictFloat
    max: StrictFloat


class RawHeatmap(RawModel):
    coord_space: Literal["face_crop_norm_v1"]
    grid: RawGrid
    values: List[StrictFloat]
    value_range: RawValueRange
    smoothing_hint: Optional[SmoothingHint] = None


class RawPolygon(RawModel):
    # Point count is checked by the sanitizer so short polygons become drops.
    points: List[RawPoint]
    closed: Optional[Literal[True]] = None


class RawRegionStyle(RawModel):
    intensity: StrictFloat
    priority: StrictFloat
    label_hint: Label


class RawRegion(RawModel):
    region_id: NonEmptyStr
    type: RegionType
    issue_type: Optional[IssueType] = None
    coord_space: Literal["face_crop_norm_v1"]
    bbox: Optional[RawBbox] = None
    polygon: Optional[RawPolygon] = None
    heatmap: Optional[RawHeatmap] = None
    style: RawRegionStyle
    quality_flags: Optional[List[QualityFlag]] = None
    notes: Optional[Any] = None


class RawIssue(RawModel):
    issue_type: IssueType
    severity_0_4: StrictFloat
    confidence_0_1: StrictFloat
    evidence_region_ids: List[NonEmptyStr] = Field(default_factory=list)
    explanation_short: Explanation


class RawHowToUse(RawModel):
    time: UsageTime = "AM_PM"
    frequency: UsageFrequency = "2-3x_week"
    notes: UsageNotes = ""


class RawAction(RawModel):
    action_type: Literal["ingredient"]
    ingredient_id: NonEmptyStr
    ingredient_name: NonEmptyStr
    why: Rationale
    how_to_use: RawHowToUse = Field(default_factory=RawHowToUse)
    cautions: List[Caution] = Field(default_factory=list)
    evidence_issue_types: List[IssueType] = Field(default_factory=list)
    timeline: Optional[Timeline] = None
    do_not_mix: Optional[List[MixWarning]] = None


class RawMaskRle(RawModel):
    grid: Optional[RawGrid] = None
    counts: Optional[Union[List[NonNegativeInt], NonEmptyStr]] = None
    values: Optional[List[StrictFloat]] = None
    starts_with: Optional[Literal[0, 1]] = None


class RawProduct(RawModel):
    product_id: Optional[TrimmedStr] = None
    merchant_id: Optional[TrimmedStr] = None
    title: Optional[TrimmedStr] = None
    name: Optional[TrimmedStr] = None
    brand: Optional[TrimmedStr] = None
    image_url: Optional[TrimmedStr] = None
    why_match: Optional[TrimmedStr] = None
    how_to_use: Optional[TrimmedStr] = None
    price: Optional[StrictFloat] = None
    currency: Optional[TrimmedStr] = None
    price_tier: Optional[TrimmedStr] = None
    source_block: Optional[TrimmedStr] = None
    cautions: Optional[List[ProductCaution]] = None


class RawModule(RawModel):
    module_id: ModuleId
    issues: List[RawIssue] = Field(default_factory=list)
    actions: List[RawAction] = Field(default_factory=list)
    products: Optional[List[RawProduct]] = None
    mask_rle_norm: Optional[Union[RawMaskRle, NonEmptyStr]] = None
    mask_grid: Optional[Union[NonNegativeInt, RawGrid]] = None
    module_pixels: Optional[List[StrictFloat]] = None
    box: Optional[RawBbox] = None
    degraded_reason: Optional[TrimmedStr] = None
    evidence_region_ids: Optional[List[NonEmptyStr]] = None


class RawPixelBox(RawModel):
    x: NonNegativeInt
    y: NonNegativeInt
    w: NonNegativeInt
    h: NonNegativeInt


class RawFaceCrop(RawModel):
    crop_id: NonEmptyStr
    coord_space: Literal["orig_px_v1"]
    bbox_px: RawPixelBox
    orig_size_px: RawGrid
    render_size_px_hint: RawGrid
    crop_image_url: Optional[TrimmedStr] = None
    original_image_url: Optional[TrimmedStr] = None
    image_url: Optional[TrimmedStr] = None
    source_image_url: Optional[TrimmedStr] = None
    face_crop_url: Optional[TrimmedStr] = None
    src: Optional[TrimmedStr] = None
    slot_id: Optional[Any] = None
    photo_id: Optional[Any] = None


class RawDisclaimers(RawModel):
    non_medical: Optional[StrictBool] = None
    seek_care_triggers: Optional[List[CareTrigger]] = None


class RawPayload(RawModel):
    used_photos: StrictBool
    quality_grade: QualityGrade
    photo_notice: Optional[TrimmedStr] = None
    face_crop: RawFaceCrop
    regions: List[RawRegion]
    modules: List[RawModule]
    disclaimers: RawDisclaimers = Field(
        default_factory=lambda: RawDisclaimers(non_medical=True, seek_care_triggers=[])
    )


# ==========================
# NORMALIZED OUTPUT
# ==========================

class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Point(FrozenModel):
    x: float
    y: float


class Bbox(FrozenModel):
    x: float
    y: float
    w: float
    h: float


class Grid(FrozenModel):
    w: int
    h: int


class ValueRange(FrozenModel):
    min: float
    max: float


class Polygon(FrozenModel):
    points: Tuple[Point, ...]
    closed: Literal[True]


class Heatmap(FrozenModel):
    coord_space: Literal["face_crop_norm_v1"]
    grid: Grid
    values: Tuple[float, ...]
    value_range: ValueRange
    smoothing_hint: SmoothingHint


class RegionStyle(FrozenModel):
    intensity: float
    priority: float
    label_hint: str


class Region(FrozenModel):
    region_id: str
    type: RegionType
    issue_type: Optional[IssueType]
    coord_space: Literal["face_crop_norm_v1"]
    bbox: Optional[Bbox] = None
    polygon: Optional[Polygon] = None
    heatmap: Optional[Heatmap] = None
    style: RegionStyle
    quality_flags: Tuple[QualityFlag, ...]
    notes: Optional[Tuple[str, ...]] = None


class SanitizerDrop(FrozenModel):
    reason: DropReason
    region_type: RegionType
    region_id: str


class Issue(FrozenModel):
    issue_type: IssueType
    severity_0_4: int
    confidence_0_1: float
    evidence_region_ids: Tuple[str, ...]
    explanation_short: str


class HowToUse(FrozenModel):
    time: UsageTime
    frequency: UsageFrequency
    notes: str


class Product(FrozenModel):
    product_id: str
    merchant_id: str
    title: str
    brand: str
    image_url: str
    why_match: str
    how_to_use: str
    price: Optional[float] = None
    currency: Optional[str] = None
    price_tier: Optional[str] = None
    source_block: Optional[str] = None
    cautions: Tuple[str, ...]
    product_url: str
    retrieval_source: str
    retrieval_reason: str
    suitability_score: Optional[float]


class ExternalSearchCta(FrozenModel):
    title: str
    url: str
    source: str
    reason: str


class Action(FrozenModel):
    action_type: Literal["ingredient"]
    ingredient_id: str
    ingredient_name: str
    why: str
    how_to_use: HowToUse
    cautions: Tuple[str, ...]
    evidence_issue_types: Tuple[IssueType, ...]
    timeline: str
    do_not_mix: Tuple[str, ...]
    products: Tuple[Product, ...]
    products_empty_reason: Optional[str]
    external_search_ctas: Tuple[ExternalSearchCta, ...]


class MaskRle(FrozenModel):
    grid: Optional[Grid]
    counts: Optional[Union[Tuple[int, ...], str]]
    values: Optional[Tuple[float, ...]]
    starts_with: Literal[0, 1]


class Module(FrozenModel):
    module_id: ModuleId
    issues: Tuple[Issue, ...]
    actions: Tuple[Action, ...]
    products: Tuple[Product, ...]
    mask_rle_norm: Optional[MaskRle] = None
    mask_grid: Optional[Grid] = None
    module_pixels: Optional[Tuple[int, ...]] = None
    box: Optional[Bbox] = None
    degraded_reason: Optional[str] = None
    evidence_region_ids: Optional[Tuple[str, ...]] = None


class PixelBox(FrozenModel):
    x: int
    y: int
    w: int
    h: int


class FaceCrop(FrozenModel):
    crop_id: str
    coord_space: Literal["orig_px_v1"]
    bbox_px: PixelBox
    orig_size_px: Grid
    render_size_px_hint: Grid
    crop_image_url: Optional[str]
    original_image_url: Optional[str]
    slot_id: Optional[str]
    photo_id: Optional[str]


class OverlayDebug(FrozenModel):
    module_box_mode: str
    module_box_dynamic_applied: bool
    skinmask_reliable: Optional[bool]
    degraded_reasons: Tuple[str, ...]


class Disclaimers(FrozenModel):
    non_medical: bool
    seek_care_triggers: Tuple[str, ...]


class PhotoModules(FrozenModel):
    used_photos: bool
    quality_grade: QualityGrade
    photo_notice: str
    face_crop: FaceCrop
    regions: Tuple[Region, ...]
    modules: Tuple[Module, ...]
    module_overlay_debug: Optional[OverlayDebug] = None
    disclaimers: Disclaimers


class NormalizeResult(FrozenModel):
    model: Optional[PhotoModules]
    errors: Tuple[str, ...]
    sanitizer_drops: Tuple[SanitizerDrop, ...]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict. Optional fields that were never set are omitted."""
        return self.model_dump(mode="json", exclude_unset=True)
