"""Longitudinal tiling helpers.

The mesh builder slices a curve of a given length into loops, and maps
a texture onto it in whole tiles.  Both counts are floors of a ratio,
which are sensitive to floating point noise on lengths that should be
exact multiples (a 20 m straight road baked from a Bezier curve may come
out as 19.999999999999996 m).  The helpers here absorb that noise.
"""

import math
from typing import List, Tuple

_FLOOR_EPSILON = 1e-6


def whole_count(length: float, size: float) -> int:
    """Return ``floor(length / size)`` tolerant to rounding noise."""
    if size <= 0:
        raise ValueError(f"size must be positive, got {size}")
    return max(int(math.floor(length / size + _FLOOR_EPSILON)), 0)


def loop_count(length: float, density: float, reduction: int = 1) -> int:
    """Number of loops for a curve of `length` sampled every `density` metres.

    Parameters
    ----------
    length : float
        Baked length of the curve in metres.
    density : float
        Sample spacing in metres.
    reduction : int
        Divisor applied to the loop count (low-poly mode).

    Returns
    -------
    int
        Loop count, always at least 1.
    """
    return max(whole_count(length, density * reduction), 1)


def loop_fractions(loops: int) -> List[Tuple[float, float]]:
    """Return the (start, end) arc-length fractions of each loop."""
    return [(i / loops, (i + 1) / loops) for i in range(loops)]
