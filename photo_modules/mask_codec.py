# photo_modules/mask_codec.py
"""
Run-length codec for per-module binary masks.

A mask is a flat row-major buffer of 0/1 pixels over the module grid. The
encoded form lists alternating run lengths, starting with a run of the
`starts_with` bit (0 unless declared otherwise): "3,2" over 5 pixels is
[0, 0, 0, 1, 1].

Decoding is total: whatever the run list looks like, the result is a
uint8 buffer of exactly the expected length.
"""

import math
from typing import Any, List, NamedTuple, Optional, Sequence, Union

import numpy as np

from .geometry import clamp_values01
from .models import Bbox, Grid, MaskRle, Module, RawGrid, RawMaskRle
from .utils import as_float, as_mapping, round_half_up


MAX_MASK_GRID = 1024
MAX_MASK_VALUES = 1024 * 1024
MAX_MODULE_PIXELS = 200000
MASK_VALUE_THRESHOLD = 0.5

RunList = Union[str, Sequence[Any], None]


class ModuleMask(NamedTuple):
    module_id: str
    grid: Grid
    mask: np.ndarray
    box: Optional[Bbox]
    degraded_reason: Optional[str]


# ==========================
# RLE CODEC
# ==========================

def _parse_runs(rle: RunList) -> List[int]:
    """Missing, non-numeric and negative runs all become 0-length runs."""
    if isinstance(rle, str):
        parts: Sequence[Any] = rle.split(",")
    elif isinstance(rle, (list, tuple, np.ndarray)):
        parts = rle
    else:
        return []

    runs: List[int] = []
    for part in parts:
        if isinstance(part, str):
            count = as_float(part.strip())
        else:
            count = as_float(part)
        runs.append(int(count) if count is not None and count > 0 else 0)
    return runs


def _expected_length(value: Any) -> int:
    length = as_float(value)
    if length is None or length <= 0:
        return 0
    return int(length)


def decode_rle_binary_mask(rle: RunList, expected_length: Any, starts_with: int = 0) -> np.ndarray:
    """
    Decode alternating run lengths into a flat 0/1 buffer.

    Args:
        rle: comma-separated run lengths ("3,2") or a sequence of numbers
        expected_length: number of pixels in the output buffer
        starts_with: bit value of the first run (0 or 1)

    Returns:
        np.ndarray of dtype uint8 and exactly `expected_length` entries.
        Runs past the end are clipped; pixels not covered stay 0. A 0-length
        run writes nothing but still flips the current bit.
    """
    length = _expected_length(expected_length)
    out = np.zeros(length, dtype=np.uint8)
    value = 1 if starts_with == 1 else 0
    offset = 0

    for run in _parse_runs(rle):
        if offset >= length:
            break
        if run > 0:
            end = min(length, offset + run)
            if value:
                out[offset:end] = 1
            offset = end
        value ^= 1

    return out


def encode_rle_binary_mask(mask: Any) -> str:
    """
    Encode a binary mask as run lengths starting with a run of 0s.

    A mask that starts with a set pixel gets a leading 0-length run.
    """
    flat = np.asarray(mask).reshape(-1) != 0
    if flat.size == 0:
        return ""
    changes = np.flatnonzero(flat[1:] != flat[:-1]) + 1
    bounds = np.concatenate(([0], changes, [flat.size]))
    runs = np.diff(bounds).tolist()
    if flat[0]:
        runs.insert(0, 0)
    return ",".join(str(int(run)) for run in runs)


# ==========================
# MODULE MASK NORMALIZATION
# ==========================

def _grid_side(value: Any) -> int:
    side = as_float(value) or 0.0
    return max(1, min(MAX_MASK_GRID, round_half_up(side)))


def normalize_mask_grid(value: Any) -> Optional[Grid]:
    """
    Square grid from a bare size (64 -> 64x64) or a {w, h} object.

    Each side is clamped to 1..1024.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value) or value <= 0:
            return None
        side = _grid_side(value)
        return Grid(w=side, h=side)
    if isinstance(value, (RawGrid, Grid)):
        return Grid(w=_grid_side(value.w), h=_grid_side(value.h))
    mapping = as_mapping(value)
    if mapping is None:
        return None
    return Grid(w=_grid_side(mapping.get("w")), h=_grid_side(mapping.get("h")))


def normalize_mask_rle(value: Union[RawMaskRle, str, None], fallback_grid: Optional[Grid]) -> Optional[MaskRle]:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return MaskRle(grid=fallback_grid, counts=text, values=None, starts_with=0)

    grid = normalize_mask_grid(value.grid) or fallback_grid

    counts: Union[List[int], str, None] = None
    if isinstance(value.counts, list) and value.counts:
        counts = [max(0, round_half_up(n)) for n in value.counts]
    elif isinstance(value.counts, str) and value.counts.strip():
        counts = value.counts.strip()

    values = None
    if value.values:
        values = clamp_values01(value.values[:MAX_MASK_VALUES])

    if grid is None and counts is None and values is None:
        return None
    return MaskRle(grid=grid, counts=counts, values=values, starts_with=1 if value.starts_with == 1 else 0)


def normalize_module_pixels(values: Sequence[Any]) -> List[int]:
    out: List[int] = []
    for raw in values:
        number = as_float(raw)
        if number is None:
            continue
        pixel = round_half_up(number)
        if pixel < 0:
            continue
        out.append(pixel)
        if len(out) >= MAX_MODULE_PIXELS:
            break
    return out


def decode_module_mask(module: Module) -> Optional[ModuleMask]:
    """
    Overlay-ready mask for a normalized module, or None if nothing to draw.

    RLE counts win over dense values; dense values are thresholded at 0.5
    and only used when they cover the grid exactly.
    """
    rle = module.mask_rle_norm
    grid = module.mask_grid or (rle.grid if rle is not None else None)
    if rle is None or grid is None:
        return None

    expected = grid.w * grid.h
    if rle.counts is not None:
        mask = decode_rle_binary_mask(rle.counts, expected, rle.starts_with)
    elif rle.values is not None and len(rle.values) == expected:
        mask = (np.asarray(rle.values, dtype=np.float64) >= MASK_VALUE_THRESHOLD).astype(np.uint8)
    else:
        return None

    if not mask.any():
        return None
    return ModuleMask(
        module_id=module.module_id,
        grid=grid,
        mask=mask,
        box=module.box,
        degraded_reason=module.degraded_reason,
    )
