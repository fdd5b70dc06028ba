"""Step-function helpers shared by the scoring variants."""

import operator
from collections.abc import Callable, Sequence

from dilution_radar.models import round_half_up, safe_float

Comparator = Callable[[float, float], bool]


def step_score(
    value: float | None,
    steps: Sequence[tuple[float, int]],
    comparator: Comparator = operator.lt,
    otherwise: int = 0,
    missing: int | None = None,
) -> int:
    """
    Map a continuous input to points with an ordered list of thresholds.

    Steps are checked in order, most distressed first; the first threshold
    for which `comparator(value, threshold)` holds wins. A missing or
    non-numeric value scores `missing` (defaults to `otherwise`, the
    least-distressed bucket).

    Args:
        value: Input to bucket (may be None)
        steps: (threshold, points) pairs, most distressed first
        comparator: operator.lt / le for "lower is worse", gt / ge for "higher is worse"
        otherwise: Points when no step matches
        missing: Points when value is missing

    Returns:
        Points for the matching bucket
    """
    number = safe_float(value)
    if number is None:
        return otherwise if missing is None else missing
    for threshold, points in steps:
        if comparator(number, threshold):
            return points
    return otherwise
