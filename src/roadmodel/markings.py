"""Texture atlas coordinates for lane markings.

The road texture is an atlas of eight equally wide vertical strips, one
per marking style.  A lane quad samples the strip of its lane kind; the
U coordinates of its left and right edges are the strip's bounds.
Reverse lanes mirror the strip so markings read correctly when driven
the other way.  The two-way and one-way strips are authored mirrored, so
they are flipped once more before the direction mirror applies.

Shoulders use a separate strip layout: the flat shoulder occupies U
0.0-0.8 and the gutter 0.8-1.0, measured outward from the lane edge on
either side.
"""

from typing import Dict, Tuple

from .lanes import LaneDirection, LaneKind, MatchedLane

ATLAS_SLOTS = 8
SLOT_WIDTH = 1.0 / ATLAS_SLOTS

_SLOTS: Dict[LaneKind, int] = {
    LaneKind.SHOULDER: 0,
    LaneKind.SLOW: 1,
    LaneKind.MIDDLE: 2,
    LaneKind.FAST: 3,
    LaneKind.TWO_WAY: 4,
    LaneKind.ONE_WAY: 5,
    LaneKind.SINGLE_LINE: 6,
    LaneKind.NO_MARKING: 7,
    LaneKind.TRANSITION_ADD: 7,
    LaneKind.TRANSITION_REM: 7,
}

_MIRRORED_KINDS = (LaneKind.TWO_WAY, LaneKind.ONE_WAY)

SHOULDER_U = (0.0, 0.8)
GUTTER_U = (0.8, 1.0)


def atlas_slot(kind: LaneKind) -> int:
    """Index of the atlas strip used by `kind`."""
    return _SLOTS[kind]


def lane_u_range(lane: MatchedLane) -> Tuple[float, float]:
    """U coordinates of a lane quad's (left, right) edges."""
    slot = atlas_slot(lane.kind)
    left, right = slot * SLOT_WIDTH, (slot + 1) * SLOT_WIDTH
    flip = lane.kind in _MIRRORED_KINDS
    if lane.direction == LaneDirection.REVERSE:
        flip = not flip
    if flip:
        left, right = right, left
    return left, right


def shoulder_u_ranges(side: str) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """U coordinates of the (shoulder, gutter) quads on `side`, left to right.

    Parameters
    ----------
    side : str
        ``"left"`` or ``"right"``.

    Returns
    -------
    tuple
        ``((shoulder_left_u, shoulder_right_u), (gutter_left_u, gutter_right_u))``.
    """
    if side == "right":
        return SHOULDER_U, GUTTER_U
    if side == "left":
        return (SHOULDER_U[1], SHOULDER_U[0]), (GUTTER_U[1], GUTTER_U[0])
    raise ValueError(f"side must be 'left' or 'right', got {side!r}")
