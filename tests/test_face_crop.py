from photo_modules.face_crop import (
    CROP_IMAGE_URL_ALIASES,
    ORIGINAL_IMAGE_URL_ALIASES,
    enrich_with_session_preview,
    resolve_alias,
    resolve_face_crop,
    resolve_overlay_debug,
)
from photo_modules.models import RawPayload


def _payload(base_payload, **face_crop):
    crop = base_payload["face_crop"]
    for key in ("crop_image_url", "original_image_url"):
        crop.pop(key)
    crop.update(face_crop)
    return base_payload


def test_alias_tables_walk_in_priority_order():
    sources = {
        "face_crop": {"crop_image_url": "  ", "face_crop_url": None, "image_url": "https://img", "src": "https://src"},
        "payload": {"face_crop_url": "https://top"},
    }
    assert resolve_alias(CROP_IMAGE_URL_ALIASES, sources) == "https://img"
    assert resolve_alias(ORIGINAL_IMAGE_URL_ALIASES, sources) is None


def test_crop_url_falls_back_to_top_level_alias(base_payload):
    payload = _payload(base_payload)
    payload["face_crop_url"] = " https://top/crop.jpg "
    payload["photo_url"] = "https://top/photo.jpg"
    payload["image_url"] = "https://top/image.jpg"
    crop = resolve_face_crop(RawPayload.model_validate(payload))
    assert crop.crop_image_url == "https://top/crop.jpg"
    assert crop.original_image_url == "https://top/photo.jpg"


def test_face_crop_keys_beat_top_level_keys(base_payload):
    payload = _payload(base_payload, src="https://crop/src", source_image_url="https://crop/source", slot_id="daylight")
    payload["original_image_url"] = "https://top/original"
    payload["slot_id"] = "indoor_white"
    payload["photo_id"] = "photo_9"
    crop = resolve_face_crop(RawPayload.model_validate(payload))
    assert crop.crop_image_url == "https://crop/src"
    assert crop.original_image_url == "https://crop/source"
    assert crop.slot_id == "daylight"
    assert crop.photo_id == "photo_9"


def test_missing_urls_resolve_to_none(base_payload):
    crop = resolve_face_crop(RawPayload.model_validate(_payload(base_payload)))
    assert crop.crop_image_url is None
    assert crop.original_image_url is None


def test_render_hint_is_clamped(base_payload):
    base_payload["face_crop"]["render_size_px_hint"] = {"w": 10, "h": 9000}
    crop = resolve_face_crop(RawPayload.model_validate(base_payload))
    assert (crop.render_size_px_hint.w, crop.render_size_px_hint.h) == (64, 2048)


def test_no_debug_block_when_nothing_relevant():
    assert resolve_overlay_debug({}) is None
    assert resolve_overlay_debug({"module_overlay_debug": {}}) is None
    assert resolve_overlay_debug({"module_overlay_debug": ["not", "an", "object"]}) is None
    assert resolve_overlay_debug({"internal_debug": {"unrelated": 1}}) is None


def test_debug_blocks_merge_in_priority_order():
    debug = resolve_overlay_debug(
        {
            "module_overlay_debug": {"module_box_mode": "", "degraded_reasons": ["glare", "Glare"]},
            "internal_debug": {
                "module_box_mode": "dynamic_skinmask",
                "module_box_dynamic_applied": True,
                "skinmask_reliable": False,
                "degraded_reasons": ["low_light"],
            },
        }
    )
    assert debug.module_box_mode == "dynamic_skinmask"
    assert debug.module_box_dynamic_applied is True
    assert debug.skinmask_reliable is False
    assert debug.degraded_reasons == ("glare", "low_light")


def test_debug_defaults_when_only_reasons_present():
    debug = resolve_overlay_debug({"internal_debug": {"degraded_reasons": ["blur"]}})
    assert debug.module_box_mode == "unknown"
    assert debug.module_box_dynamic_applied is False
    assert debug.skinmask_reliable is None


def test_session_preview_fills_missing_crop_image():
    payload = {"face_crop": {"crop_id": "c", "photo_id": "p2"}, "regions": []}
    refs = [{"photo_id": "p1", "slot_id": "daylight"}, {"photo_id": "p2", "slot_id": "indoor_white"}]
    session = {"daylight": {"preview": "blob:day"}, "photos": {"indoor_white": {"preview": "blob:indoor"}}}

    enriched = enrich_with_session_preview(payload, refs, session)
    assert enriched["face_crop"]["original_image_url"] == "blob:indoor"
    assert "original_image_url" not in payload["face_crop"]


def test_session_preview_uses_slot_priority_then_any_preview():
    payload = {"face_crop": {"crop_id": "c"}}
    assert enrich_with_session_preview(payload, None, {"daylight": {"preview": "blob:day"}})["face_crop"][
        "original_image_url"
    ] == "blob:day"
    assert enrich_with_session_preview(payload, None, {"other": {"preview": "blob:other"}})["face_crop"][
        "original_image_url"
    ] == "blob:other"


def test_session_preview_leaves_renderable_or_unusable_payloads_alone():
    renderable = {"face_crop": {"src": "https://img"}}
    assert enrich_with_session_preview(renderable, None, {"daylight": {"preview": "blob:day"}}) is renderable
    no_preview = {"face_crop": {"crop_id": "c"}}
    assert enrich_with_session_preview(no_preview, None, {}) is no_preview
    assert enrich_with_session_preview("garbage", None, None) == "garbage"


def test_numeric_ids_are_kept_as_text(base_payload):
    base_payload["face_crop"]["photo_id"] = 42
    base_payload["face_crop"]["slot_id"] = {"nested": "ignored"}
    base_payload["slot_id"] = "daylight"
    crop = resolve_face_crop(RawPayload.model_validate(base_payload))
    assert crop.photo_id == "42"
    assert crop.slot_id == "daylight"


def test_session_preview_matches_numeric_photo_id():
    payload = {"face_crop": {"crop_id": "c", "photo_id": 7}}
    refs = [{"photo_id": 7, "slot_id": "indoor_white"}]
    session = {"daylight": {"preview": "blob:day"}, "indoor_white": {"preview": "blob:indoor"}}
    assert enrich_with_session_preview(payload, refs, session)["face_crop"]["original_image_url"] == "blob:indoor"
