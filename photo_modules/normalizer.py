# photo_modules/normalizer.py
"""
Photo modules normalization pipeline.

validate -> sanitize regions -> resolve evidence references -> normalize
issues, actions, products and masks -> resolve face crop and debug info.

normalize_photo_modules() never raises on malformed input: structural
problems come back as "path:code" errors, dropped regions as sanitizer
drops, everything else is repaired, filtered or truncated.
"""

from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple

from pydantic import ValidationError

from .errors import PayloadRejected
from .face_crop import resolve_face_crop, resolve_overlay_debug
from .geometry import clamp01, normalize_bbox
from .mask_codec import normalize_mask_grid, normalize_mask_rle, normalize_module_pixels
from .models import (
    Action,
    Bbox,
    Disclaimers,
    ExternalSearchCta,
    HowToUse,
    Issue,
    Module,
    NormalizeResult,
    PhotoModules,
    Product,
    RawAction,
    RawIssue,
    RawModule,
    RawPayload,
)
from .policies import default_do_not_mix, default_timeline
from .sanitizer import sanitize_regions
from .utils import as_float, as_list, as_mapping, as_str, first_non_empty, round_half_up, unique_list


# ==========================
# LIST LIMITS
# ==========================

MAX_EVIDENCE_IDS = 12
MAX_CAUTIONS = 6
MAX_DO_NOT_MIX = 6
MAX_PRODUCTS = 3
MAX_SEARCH_CTAS = 6
MAX_CARE_TRIGGERS = 8

PRODUCT_URL_KEYS = ("pdp_url", "url", "product_url", "purchase_path")
PRODUCT_OPTIONAL_TEXT_KEYS = ("currency", "price_tier", "source_block")
SEARCH_CTA_TITLE_KEYS = ("title", "name", "query")


# ==========================
# SCHEMA VALIDATION
# ==========================

def format_error_path(loc: Sequence[Any]) -> str:
    if not loc:
        return "root"
    return ".".join(str(part) for part in loc)


def validate_payload(value: Any) -> Tuple[Optional[RawPayload], List[str]]:
    """
    Validate the payload's structure, collecting every violation.

    Returns:
        (payload, []) on success, (None, ["path:code", ...]) otherwise
    """
    try:
        return RawPayload.model_validate(value), []
    except ValidationError as exc:
        return None, [f"{format_error_path(err['loc'])}:{err['type']}" for err in exc.errors()]


# ==========================
# REFERENCES
# ==========================

def filter_evidence(region_ids: Iterable[str], valid_ids: Set[str]) -> List[str]:
    """Keep ids that still name a surviving region; ids are case-sensitive."""
    resolvable = [region_id for region_id in region_ids if as_str(region_id) in valid_ids]
    return unique_list(resolvable, MAX_EVIDENCE_IDS, casefold=False)


# ==========================
# ISSUES / ACTIONS / PRODUCTS
# ==========================

def clamp_severity(value: float) -> int:
    number = as_float(value)
    if number is None:
        return 0
    return max(0, min(4, round_half_up(number)))


def normalize_issue(issue: RawIssue, valid_ids: Set[str]) -> Issue:
    return Issue(
        issue_type=issue.issue_type,
        severity_0_4=clamp_severity(issue.severity_0_4),
        confidence_0_1=clamp01(issue.confidence_0_1),
        evidence_region_ids=filter_evidence(issue.evidence_region_ids, valid_ids),
        explanation_short=issue.explanation_short.strip(),
    )


def normalize_product(raw: Any) -> Optional[Product]:
    """
    Product from a raw dict, or None when it has no usable title.

    Price and the other optional commercial fields are left out entirely when
    missing rather than defaulted.
    """
    product = as_mapping(raw)
    if product is None:
        return None
    title = first_non_empty(product.get("title"), product.get("name"))
    if title is None:
        return None

    fields = dict(
        product_id=as_str(product.get("product_id")),
        merchant_id=as_str(product.get("merchant_id")),
        title=title,
        brand=as_str(product.get("brand")),
        image_url=as_str(product.get("image_url")),
        why_match=as_str(product.get("why_match")),
        how_to_use=as_str(product.get("how_to_use")),
        cautions=unique_list(as_list(product.get("cautions")), MAX_CAUTIONS),
        product_url=first_non_empty(*(product.get(key) for key in PRODUCT_URL_KEYS)) or "",
        retrieval_source=as_str(product.get("retrieval_source")),
        retrieval_reason=as_str(product.get("retrieval_reason")),
        suitability_score=as_float(product.get("suitability_score")),
    )
    price = as_float(product.get("price"))
    if price is not None:
        fields["price"] = price
    for key in PRODUCT_OPTIONAL_TEXT_KEYS:
        text = as_str(product.get(key))
        if text:
            fields[key] = text
    return Product(**fields)


def normalize_products(raws: Iterable[Any]) -> List[Product]:
    """Titled products, deduplicated by id (or title), at most MAX_PRODUCTS."""
    out: List[Product] = []
    seen = set()
    for raw in raws:
        product = normalize_product(raw)
        if product is None:
            continue
        key = (product.product_id or product.title).casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(product)
        if len(out) >= MAX_PRODUCTS:
            break
    return out


def normalize_search_ctas(raws: Iterable[Any]) -> List[ExternalSearchCta]:
    out: List[ExternalSearchCta] = []
    seen = set()
    for raw in raws:
        cta = as_mapping(raw)
        if cta is None:
            continue
        title = first_non_empty(*(cta.get(key) for key in SEARCH_CTA_TITLE_KEYS)) or ""
        url = as_str(cta.get("url"))
        if not title and not url:
            continue
        key = (url or title).casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(
            ExternalSearchCta(
                title=title,
                url=url,
                source=as_str(cta.get("source")),
                reason=as_str(cta.get("reason")),
            )
        )
        if len(out) >= MAX_SEARCH_CTAS:
            break
    return out


def normalize_action(action: RawAction) -> Action:
    extras = action.model_extra or {}
    usage = action.how_to_use
    do_not_mix = unique_list(action.do_not_mix or [], MAX_DO_NOT_MIX)
    return Action(
        action_type="ingredient",
        ingredient_id=action.ingredient_id,
        ingredient_name=action.ingredient_name,
        why=action.why,
        how_to_use=HowToUse(time=usage.time, frequency=usage.frequency, notes=usage.notes),
        cautions=unique_list(action.cautions, MAX_CAUTIONS),
        evidence_issue_types=list(dict.fromkeys(action.evidence_issue_types)),
        timeline=(action.timeline or "").strip() or default_timeline(usage.time, usage.frequency),
        do_not_mix=do_not_mix or default_do_not_mix(action.evidence_issue_types),
        products=normalize_products(as_list(extras.get("products"))),
        products_empty_reason=as_str(extras.get("products_empty_reason")) or None,
        external_search_ctas=normalize_search_ctas(as_list(extras.get("external_search_ctas"))),
    )


# ==========================
# MODULES
# ==========================

def normalize_module(module: RawModule, valid_ids: Set[str]) -> Module:
    issues = [normalize_issue(issue, valid_ids) for issue in module.issues]
    if module.evidence_region_ids is not None:
        declared_evidence: List[str] = list(module.evidence_region_ids)
    else:
        declared_evidence = [region_id for issue in issues for region_id in issue.evidence_region_ids]
    evidence = filter_evidence(declared_evidence, valid_ids)

    mask_grid = normalize_mask_grid(module.mask_grid)
    mask_rle = normalize_mask_rle(module.mask_rle_norm, mask_grid)

    fields = dict(
        module_id=module.module_id,
        issues=issues,
        actions=[normalize_action(action) for action in module.actions],
        products=normalize_products(product.model_dump() for product in module.products or []),
    )
    if mask_rle is not None:
        fields["mask_rle_norm"] = mask_rle
    if mask_grid is not None:
        fields["mask_grid"] = mask_grid
    if module.module_pixels is not None:
        fields["module_pixels"] = normalize_module_pixels(module.module_pixels)
    if module.box is not None:
        x, y, w, h = normalize_bbox(module.box.x, module.box.y, module.box.w, module.box.h)
        fields["box"] = Bbox(x=x, y=y, w=w, h=h)
    if module.degraded_reason:
        fields["degraded_reason"] = module.degraded_reason
    if evidence:
        fields["evidence_region_ids"] = evidence
    return Module(**fields)


# ==========================
# ENTRY POINTS
# ==========================

def normalize_photo_modules(value: Any) -> NormalizeResult:
    """
    Turn an untrusted photo modules payload into a render-safe model.

    Args:
        value: decoded JSON payload, any shape

    Returns:
        NormalizeResult with either the model and sanitizer drops, or no
        model and the full list of structural errors

    Pure: no logging, no metrics. Callers that want either record the
    returned result themselves.
    """
    payload, errors = validate_payload(value)
    if payload is None:
        return NormalizeResult(model=None, errors=errors, sanitizer_drops=[])

    regions, drops = sanitize_regions(payload.regions)
    valid_ids = {region.region_id for region in regions}
    overlay_debug = resolve_overlay_debug(payload.model_extra or {})

    fields = dict(
        used_photos=payload.used_photos,
        quality_grade=payload.quality_grade,
        photo_notice=(payload.photo_notice or "").strip(),
        face_crop=resolve_face_crop(payload),
        regions=regions,
        modules=[normalize_module(module, valid_ids) for module in payload.modules],
        disclaimers=Disclaimers(
            non_medical=payload.disclaimers.non_medical is not False,
            seek_care_triggers=unique_list(payload.disclaimers.seek_care_triggers or [], MAX_CARE_TRIGGERS),
        ),
    )
    if overlay_debug is not None:
        fields["module_overlay_debug"] = overlay_debug
    return NormalizeResult(model=PhotoModules(**fields), errors=[], sanitizer_drops=drops)


def normalize_or_raise(value: Any) -> PhotoModules:
    """Like normalize_photo_modules but raises PayloadRejected instead of returning no model."""
    result = normalize_photo_modules(value)
    if result.model is None:
        raise PayloadRejected(result.errors)
    return result.model
