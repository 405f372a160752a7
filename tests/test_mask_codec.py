import numpy as np

from conftest import build_mask

from photo_modules.mask_codec import (
    decode_module_mask,
    decode_rle_binary_mask,
    encode_rle_binary_mask,
    normalize_mask_grid,
    normalize_mask_rle,
    normalize_module_pixels,
)
from photo_modules.models import Grid, Module, RawMaskRle


def test_decode_simple_runs():
    decoded = decode_rle_binary_mask("3,2", 5)
    assert decoded.dtype == np.uint8
    assert decoded.tolist() == [0, 0, 0, 1, 1]


def test_decode_respects_starts_with():
    assert decode_rle_binary_mask([3, 2], 5, starts_with=1).tolist() == [1, 1, 1, 0, 0]


def test_negative_run_toggles_without_writing():
    decoded = decode_rle_binary_mask("2,-1,2,1", 5)
    assert len(decoded) == 5
    # 2 zeros, -1 flips to 0 again, 2 more zeros, then 1 one
    assert decoded.tolist() == [0, 0, 0, 0, 1]


def test_missing_and_garbage_runs_toggle():
    assert decode_rle_binary_mask("1,,2", 4).tolist() == [0, 0, 0, 0]
    assert decode_rle_binary_mask("1,x,2", 4).tolist() == [0, 0, 0, 0]
    assert decode_rle_binary_mask([1, None, 2], 4).tolist() == [0, 0, 0, 0]


def test_runs_past_the_end_are_clipped():
    decoded = decode_rle_binary_mask("2,100,5", 6)
    assert decoded.tolist() == [0, 0, 1, 1, 1, 1]


def test_short_run_list_pads_with_zeros():
    assert decode_rle_binary_mask("1,1", 6).tolist() == [0, 1, 0, 0, 0, 0]


def test_decode_never_returns_wrong_length():
    for rle in ("", None, "abc", "-3,-4", "5,5,5,5,5", {"bad": 1}):
        assert len(decode_rle_binary_mask(rle, 10)) == 10
    assert len(decode_rle_binary_mask("3,2", -4)) == 0
    assert len(decode_rle_binary_mask("3,2", "nope")) == 0


def test_encode_decode_module_mask():
    mask = build_mask(8, 2, 2, 6, 6)
    encoded = encode_rle_binary_mask(mask)
    decoded = decode_rle_binary_mask(encoded, 64)
    assert int(decoded.sum()) == 16
    assert np.array_equal(decoded, mask)


def test_encode_mask_starting_with_one():
    assert encode_rle_binary_mask([1, 1, 0]) == "0,2,1"
    assert encode_rle_binary_mask([]) == ""


def test_normalize_mask_grid_forms():
    assert normalize_mask_grid(64) == Grid(w=64, h=64)
    assert normalize_mask_grid({"w": 5000, "h": 0}) == Grid(w=1024, h=1)
    assert normalize_mask_grid(0) is None
    assert normalize_mask_grid("64") is None
    assert normalize_mask_grid(None) is None


def test_normalize_mask_rle_from_string_uses_module_grid():
    rle = normalize_mask_rle("3,2", Grid(w=64, h=64))
    assert rle.counts == "3,2"
    assert rle.grid == Grid(w=64, h=64)
    assert rle.starts_with == 0
    assert rle.values is None


def test_normalize_mask_rle_object():
    raw = RawMaskRle.model_validate({"grid": {"w": 4, "h": 4}, "values": [-1, 0.4, 2], "starts_with": 1})
    rle = normalize_mask_rle(raw, None)
    assert rle.grid == Grid(w=4, h=4)
    assert rle.values == (0.0, 0.4, 1.0)
    assert rle.starts_with == 1
    assert normalize_mask_rle(RawMaskRle.model_validate({}), None) is None


def test_normalize_module_pixels():
    assert normalize_module_pixels([1.4, -2, 3.6, float("nan")]) == [1, 4]


def _module(**fields):
    return Module(module_id="nose", issues=[], actions=[], products=[], **fields)


def test_decode_module_mask_from_counts():
    grid = Grid(w=8, h=8)
    encoded = encode_rle_binary_mask(build_mask(8, 2, 2, 6, 6))
    module = _module(mask_grid=grid, mask_rle_norm=normalize_mask_rle(encoded, grid))
    overlay = decode_module_mask(module)
    assert overlay.module_id == "nose"
    assert overlay.mask.shape == (64,)
    assert int(overlay.mask.sum()) == 16


def test_decode_module_mask_from_dense_values():
    grid = Grid(w=2, h=2)
    raw = RawMaskRle.model_validate({"grid": {"w": 2, "h": 2}, "values": [0.1, 0.9, 0.5, 0.0]})
    overlay = decode_module_mask(_module(mask_rle_norm=normalize_mask_rle(raw, None)))
    assert overlay.grid == grid
    assert overlay.mask.tolist() == [0, 1, 1, 0]


def test_decode_module_mask_without_active_pixels():
    grid = Grid(w=2, h=2)
    assert decode_module_mask(_module(mask_grid=grid, mask_rle_norm=normalize_mask_rle("4", grid))) is None
    assert decode_module_mask(_module()) is None
