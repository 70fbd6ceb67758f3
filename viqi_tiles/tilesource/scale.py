import math
from collections.abc import Sequence
from typing import Optional


def argmin(values: Sequence[float]) -> int:
    """
    Return the index of the smallest value.  Ties go to the first occurrence.
    """
    best = 0
    for idx in range(1, len(values)):
        if values[idx] < values[best]:
            best = idx
    return best


def getScale(
        resolutions: Sequence[float], scales: Sequence[float],
        resolution: Optional[float] = None) -> float:
    """
    Get the scale factor of the pyramid level whose resolution is closest to a
    requested resolution.

    :param resolutions: the resolution of each level.
    :param scales: the scale factor of each level.
    :param resolution: the requested resolution.  If None or 0, 1.0 is
        returned.
    :returns: a scale factor.
    """
    if not resolution or not len(resolutions):
        return 1.0
    return scales[argmin([abs(res - resolution) for res in resolutions])]


def getScaleReal(resolution: float) -> float:
    """
    Get the unquantized scale for a resolution.

    :param resolution: the view resolution.
    :returns: 1 / resolution, or infinity for a resolution of 0.
    """
    if not resolution:
        return math.inf
    return 1.0 / resolution
