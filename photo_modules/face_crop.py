# photo_modules/face_crop.py
"""
Face crop and overlay-debug resolution.

The upstream service has renamed its image and debug fields several times.
Each concept is resolved from an ordered alias table: (source, key) pairs
tried in order, first non-empty value wins. "face_crop" reads the face crop
object, "payload" reads the top level of the payload.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import FaceCrop, Grid, OverlayDebug, PixelBox, RawPayload
from .utils import as_list, as_mapping, as_str, as_text, first_non_empty, first_non_empty_text, unique_list


AliasTable = Tuple[Tuple[str, str], ...]

CROP_IMAGE_URL_ALIASES: AliasTable = (
    ("face_crop", "crop_image_url"),
    ("face_crop", "face_crop_url"),
    ("face_crop", "image_url"),
    ("face_crop", "src"),
    ("payload", "face_crop_url"),
)

ORIGINAL_IMAGE_URL_ALIASES: AliasTable = (
    ("face_crop", "original_image_url"),
    ("face_crop", "source_image_url"),
    ("payload", "original_image_url"),
    ("payload", "photo_url"),
    ("payload", "image_url"),
)

SLOT_ID_ALIASES: AliasTable = (
    ("face_crop", "slot_id"),
    ("payload", "slot_id"),
)

PHOTO_ID_ALIASES: AliasTable = (
    ("face_crop", "photo_id"),
    ("payload", "photo_id"),
)

# Debug blocks, in priority order
DEBUG_SOURCES: Tuple[str, ...] = ("module_overlay_debug", "internal_debug")

# Any of these on the face crop means there is already something to draw
RENDERABLE_IMAGE_KEYS: Tuple[str, ...] = (
    "crop_image_url",
    "original_image_url",
    "face_crop_url",
    "source_image_url",
    "image_url",
    "src",
)

SLOT_PRIORITY: Tuple[str, ...] = ("daylight", "indoor_white")

RENDER_HINT_MIN_PX = 64
RENDER_HINT_MAX_PX = 2048
MAX_DEBUG_REASONS = 8


def resolve_alias(table: AliasTable, sources: Mapping[str, Mapping[str, Any]]) -> Optional[str]:
    """First non-empty string found by walking `table` over `sources`."""
    return first_non_empty(*(sources.get(source, {}).get(key) for source, key in table))


def resolve_id_alias(table: AliasTable, sources: Mapping[str, Mapping[str, Any]]) -> Optional[str]:
    """resolve_alias for identifiers: numeric ids are kept as text, other non-strings skipped."""
    return first_non_empty_text(*(sources.get(source, {}).get(key) for source, key in table))


def _alias_sources(payload: RawPayload) -> Dict[str, Mapping[str, Any]]:
    return {
        "face_crop": payload.face_crop.model_dump(),
        "payload": payload.model_extra or {},
    }


def _render_hint_side(value: int) -> int:
    return max(RENDER_HINT_MIN_PX, min(value, RENDER_HINT_MAX_PX))


def resolve_face_crop(payload: RawPayload) -> FaceCrop:
    crop = payload.face_crop
    sources = _alias_sources(payload)
    return FaceCrop(
        crop_id=crop.crop_id,
        coord_space=crop.coord_space,
        bbox_px=PixelBox(x=crop.bbox_px.x, y=crop.bbox_px.y, w=crop.bbox_px.w, h=crop.bbox_px.h),
        orig_size_px=Grid(w=crop.orig_size_px.w, h=crop.orig_size_px.h),
        render_size_px_hint=Grid(
            w=_render_hint_side(crop.render_size_px_hint.w),
            h=_render_hint_side(crop.render_size_px_hint.h),
        ),
        crop_image_url=resolve_alias(CROP_IMAGE_URL_ALIASES, sources),
        original_image_url=resolve_alias(ORIGINAL_IMAGE_URL_ALIASES, sources),
        slot_id=resolve_id_alias(SLOT_ID_ALIASES, sources),
        photo_id=resolve_id_alias(PHOTO_ID_ALIASES, sources),
    )


def _first_declared(blocks: Sequence[Mapping[str, Any]], key: str) -> Any:
    for block in blocks:
        value = block.get(key)
        if value is not None:
            return value
    return None


def resolve_overlay_debug(extras: Mapping[str, Any]) -> Optional[OverlayDebug]:
    """
    Merge the debug blocks into one, or None when neither says anything.

    A block only counts when it is an object. Booleans come from the first
    block that declares the key; degraded reasons are merged from both.
    """
    blocks = [block for block in (as_mapping(extras.get(name)) for name in DEBUG_SOURCES) if block is not None]
    if not blocks:
        return None

    box_mode = first_non_empty(*(block.get("module_box_mode") for block in blocks))
    dynamic_applied = _first_declared(blocks, "module_box_dynamic_applied")
    skinmask_reliable = _first_declared(blocks, "skinmask_reliable")
    reasons: List[Any] = []
    for block in blocks:
        reasons.extend(as_list(block.get("degraded_reasons")))
    degraded_reasons = unique_list(reasons, MAX_DEBUG_REASONS)

    has_any = (
        box_mode is not None
        or isinstance(dynamic_applied, bool)
        or isinstance(skinmask_reliable, bool)
        or bool(degraded_reasons)
    )
    if not has_any:
        return None

    return OverlayDebug(
        module_box_mode=box_mode or "unknown",
        module_box_dynamic_applied=dynamic_applied is True,
        skinmask_reliable=skinmask_reliable if isinstance(skinmask_reliable, bool) else None,
        degraded_reasons=degraded_reasons,
    )


# ==========================
# SESSION PREVIEW FALLBACK
# ==========================

def _slot_entry(bucket: Mapping[str, Any], slot: str) -> Optional[Mapping[str, Any]]:
    direct = as_mapping(bucket.get(slot))
    if direct is not None:
        return direct
    nested = as_mapping(bucket.get("photos"))
    if nested is None:
        return None
    return as_mapping(nested.get(slot))


def _preview_for_slot(session_photos: Any, slot: str) -> str:
    if slot not in SLOT_PRIORITY:
        return ""
    bucket = as_mapping(session_photos)
    if bucket is None:
        return ""
    entry = _slot_entry(bucket, slot)
    if entry is None:
        return ""
    return as_str(entry.get("preview"))


def _any_preview(session_photos: Any) -> str:
    bucket = as_mapping(session_photos)
    if bucket is None:
        return ""
    for slot in SLOT_PRIORITY:
        preview = _preview_for_slot(session_photos, slot)
        if preview:
            return preview

    containers = [bucket]
    nested = as_mapping(bucket.get("photos"))
    if nested is not None:
        containers.append(nested)
    for container in containers:
        for value in container.values():
            entry = as_mapping(value)
            if entry is None:
                continue
            preview = as_str(entry.get("preview"))
            if preview:
                return preview
    return ""


def _slot_for_photo_id(photo_id: str, photo_refs: Any) -> str:
    if not photo_id:
        return ""
    for ref in as_list(photo_refs):
        ref_obj = as_mapping(ref)
        if ref_obj is not None and as_text(ref_obj.get("photo_id")) == photo_id:
            return as_text(ref_obj.get("slot_id"))
    return ""


def enrich_with_session_preview(payload: Any, photo_refs: Any = None, session_photos: Any = None) -> Any:
    """
    Fill in a face crop image from the session's own photo previews.

    Runs before validation on the raw payload. When the face crop has no
    renderable image, the preview for the best matching capture slot is set
    as `face_crop.original_image_url`. Slot candidates, in order: the face
    crop's slot hint, the payload's slot hint, the slot of the analysis photo
    whose id matches, then daylight and indoor_white; failing all of those,
    any preview at all.

    Returns:
        a new payload dict when a preview was applied, otherwise `payload`
        itself, untouched
    """
    payload_obj = as_mapping(payload)
    if payload_obj is None:
        return payload
    face_crop = as_mapping(payload_obj.get("face_crop"))
    if face_crop is None:
        return payload
    if any(as_str(face_crop.get(key)) for key in RENDERABLE_IMAGE_KEYS):
        return payload

    payload_slot = as_text(payload_obj.get("slot_id"))
    photo_id = as_text(face_crop.get("photo_id")) or as_text(payload_obj.get("photo_id"))
    slot_hint = as_text(face_crop.get("slot_id")) or payload_slot
    candidates = [slot_hint, payload_slot, _slot_for_photo_id(photo_id, photo_refs)] + list(SLOT_PRIORITY)

    preview = ""
    seen = set()
    for slot in candidates:
        if not slot or slot in seen:
            continue
        seen.add(slot)
        preview = _preview_for_slot(session_photos, slot)
        if preview:
            break

    if not preview:
        preview = _any_preview(session_photos)
    if not preview:
        return payload

    enriched = dict(payload_obj)
    enriched["face_crop"] = dict(face_crop, original_image_url=preview)
    return enriched
