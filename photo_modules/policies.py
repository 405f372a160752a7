# photo_modules/policies.py
"""
Fallback copy used when the upstream payload leaves a field out.

Kept as plain lookup tables keyed by the payload's enum values so each
default can be checked on its own.
"""

from typing import Dict, Iterable, List, Tuple


TIME_LABELS: Dict[str, str] = {
    "AM": "AM",
    "PM": "PM",
    "AM_PM": "AM/PM",
}

FREQUENCY_LABELS: Dict[str, str] = {
    "daily": "daily",
    "2-3x_week": "2-3x/week",
    "weekly": "weekly",
}

# First matching issue type wins.
DO_NOT_MIX_BY_ISSUE: Tuple[Tuple[str, str], ...] = (
    ("redness", "Avoid stacking strong acids and retinoids on the same night."),
    ("acne", "Avoid combining multiple exfoliants in one routine."),
)

DEFAULT_DO_NOT_MIX = "Patch test before introducing new actives together."


def default_timeline(time: str, frequency: str) -> str:
    """e.g. ("AM_PM", "2-3x_week") -> "AM/PM, 2-3x/week"."""
    time_label = TIME_LABELS.get(time, TIME_LABELS["AM_PM"])
    frequency_label = FREQUENCY_LABELS.get(frequency, FREQUENCY_LABELS["2-3x_week"])
    return f"{time_label}, {frequency_label}"


def default_do_not_mix(issue_types: Iterable[str]) -> List[str]:
    present = set(issue_types)
    for issue_type, caption in DO_NOT_MIX_BY_ISSUE:
        if issue_type in present:
            return [caption]
    return [DEFAULT_DO_NOT_MIX]
