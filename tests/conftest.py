import copy

import numpy as np
import pytest

from photo_modules.mask_codec import encode_rle_binary_mask


def heatmap_values(value=0.5, length=64 * 64):
    return [value] * length


def build_mask(grid, x0, y0, x1, y1):
    mask = np.zeros((grid, grid), dtype=np.uint8)
    mask[y0:y1, x0:x1] = 1
    return mask.reshape(-1)


def region(region_id, region_type, **shape):
    out = {
        "region_id": region_id,
        "type": region_type,
        "coord_space": "face_crop_norm_v1",
        "style": {"intensity": 0.8, "priority": 0.5, "label_hint": region_id},
    }
    out.update(shape)
    return out


BASE_PAYLOAD = {
    "used_photos": True,
    "quality_grade": "pass",
    "photo_notice": "ok",
    "face_crop": {
        "crop_id": "crop_1",
        "coord_space": "orig_px_v1",
        "bbox_px": {"x": 20, "y": 40, "w": 300, "h": 300},
        "orig_size_px": {"w": 1080, "h": 1920},
        "render_size_px_hint": {"w": 512, "h": 512},
        "crop_image_url": "https://example.com/crop.jpg",
        "original_image_url": "https://example.com/original.jpg",
    },
    "regions": [
        {
            "region_id": "bbox_1",
            "type": "bbox",
            "issue_type": "redness",
            "coord_space": "face_crop_norm_v1",
            "bbox": {"x": -0.1, "y": 0.2, "w": 1.3, "h": 0.9},
            "style": {"intensity": 1.2, "priority": -0.2, "label_hint": "redness"},
        },
        {
            "region_id": "poly_1",
            "type": "polygon",
            "issue_type": "texture",
            "coord_space": "face_crop_norm_v1",
            "polygon": {
                "points": [
                    {"x": 0.2, "y": 0.2},
                    {"x": 0.8, "y": 0.2},
                    {"x": 0.2, "y": 0.8},
                    {"x": 0.8, "y": 0.8},
                ],
            },
            "style": {"intensity": 0.8, "priority": 0.7, "label_hint": "texture"},
        },
        {
            "region_id": "hm_1",
            "type": "heatmap",
            "issue_type": "shine",
            "coord_space": "face_crop_norm_v1",
            "heatmap": {
                "coord_space": "face_crop_norm_v1",
                "grid": {"w": 64, "h": 64},
                "values": heatmap_values(1.4),
                "value_range": {"min": 0, "max": 1},
                "smoothing_hint": "bilinear",
            },
            "style": {"intensity": 0.9, "priority": 0.9, "label_hint": "shine"},
        },
    ],
    "modules": [
        {
            "module_id": "left_cheek",
            "mask_grid": 64,
            "mask_rle_norm": encode_rle_binary_mask(build_mask(64, 6, 20, 28, 42)),
            "box": {"x": 0.08, "y": 0.34, "w": 0.34, "h": 0.3},
            "degraded_reason": "MODULE_TOO_THIN",
            "issues": [
                {
                    "issue_type": "redness",
                    "severity_0_4": 4.4,
                    "confidence_0_1": 1.7,
                    "evidence_region_ids": ["bbox_1", "missing_region"],
                    "explanation_short": "Based on highlighted redness area.",
                },
            ],
            "actions": [
                {
                    "action_type": "ingredient",
                    "ingredient_id": "niacinamide",
                    "ingredient_name": "Niacinamide",
                    "why": "Supports redness balance in highlighted areas.",
                    "how_to_use": {"time": "AM_PM", "frequency": "2-3x_week", "notes": ""},
                    "cautions": ["Patch test first"],
                    "evidence_issue_types": ["redness"],
                    "products": [
                        {
                            "product_id": "prod_1",
                            "merchant_id": "merchant_1",
                            "name": "Niacinamide Serum",
                            "brand": "Brand A",
                            "why_match": "Matches redness support.",
                            "retrieval_source": "catalog",
                            "retrieval_reason": "catalog_evidence_match",
                            "suitability_score": 0.91,
                            "pdp_url": "https://example.com/p/niacinamide-serum",
                        },
                    ],
                    "external_search_ctas": [
                        {
                            "title": "Niacinamide products",
                            "url": "https://www.google.com/search?q=niacinamide",
                            "source": "fallback",
                            "reason": "strict_filter_all_dropped_fallback",
                        },
                    ],
                    "products_empty_reason": None,
                },
            ],
            "products": [
                {
                    "product_id": "prod_1",
                    "merchant_id": "merchant_1",
                    "name": "Niacinamide Serum 10%",
                    "brand": "Brand A",
                    "price": 18.5,
                    "currency": "USD",
                    "price_tier": "low",
                    "source_block": "dupe",
                    "why_match": "Budget-friendly niacinamide option.",
                },
            ],
        },
    ],
    "disclaimers": {
        "non_medical": True,
        "seek_care_triggers": ["If persistent irritation occurs, seek professional care."],
    },
}


@pytest.fixture
def base_payload():
    return copy.deepcopy(BASE_PAYLOAD)
