# photo_modules/utils.py
import math
from typing import Any, Iterable, List, Mapping, Optional


def as_str(value: Any) -> str:
    """Trimmed string for str input, '' for anything else."""
    if not isinstance(value, str):
        return ""
    return value.strip()


def as_text(value: Any) -> str:
    """Like as_str, but finite numbers are kept as their decimal text (42 -> '42')."""
    if isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else ""
    return as_str(value)


def as_float(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def round_half_up(value: float) -> int:
    """Round to the nearest int, .5 going up (2.5 -> 3), unlike round()."""
    return int(math.floor(value + 0.5))


def as_mapping(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, Mapping):
        return value
    return None


def as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def first_non_empty(*values: Any) -> Optional[str]:
    """First value that is a non-blank string, trimmed; None otherwise."""
    for value in values:
        text = as_str(value)
        if text:
            return text
    return None


def first_non_empty_text(*values: Any) -> Optional[str]:
    """first_non_empty, but numbers count too (see as_text)."""
    for value in values:
        text = as_text(value)
        if text:
            return text
    return None


def unique_list(values: Iterable[Any], limit: int = 12, casefold: bool = True) -> List[str]:
    """
    Trim, drop blanks and duplicates, keep order, stop at `limit` entries.

    With casefold=True "Retinol" and "retinol" count as the same entry and
    the first spelling is kept.
    """
    out: List[str] = []
    seen = set()
    for raw in values:
        text = as_str(raw)
        if not text:
            continue
        key = text.casefold() if casefold else text
        if key in seen:
            continue
        seen.add(key)
        out.append(text)
        if len(out) >= limit:
            break
    return out
