"""Cubic Bezier spline with arc-length baking.

A `SplineCurve` is a sequence of control points, each with an incoming
and an outgoing handle (relative to the point) and a tilt angle.  Consecutive points are joined
by cubic Bezier spans.  Before sampling, the curve is *baked*: it is
densely evaluated, measured, and resampled every `bake_interval` metres
so that positions and up vectors can be looked up by distance along the
curve rather than by Bezier parameter.

Up vectors start from world up projected onto the plane normal to the
first tangent and are carried along by parallel transport (minimal
rotation between consecutive tangents).  The interpolated tilt is then
applied as a rotation around the tangent.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .transform import rotate_about_axis

WORLD_UP = np.array([0.0, 1.0, 0.0])

# Dense evaluation steps per bake interval, and bounds per span.
_OVERSAMPLING = 10
_MIN_SPAN_STEPS = 32
_MAX_SPAN_STEPS = 20000


@dataclass
class ControlPoint:
    """A curve control point with handles relative to its position."""
    position: np.ndarray
    handle_in: np.ndarray
    handle_out: np.ndarray
    tilt: float = 0.0


@dataclass
class _BakedCurve:
    distances: np.ndarray
    positions: np.ndarray
    tangents: np.ndarray
    up_vectors: np.ndarray
    tilts: np.ndarray
    length: float


def _as_vector(value) -> np.ndarray:
    if value is None:
        return np.zeros(3)
    return np.asarray(value, dtype=float).reshape(3)


def _normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=-1, keepdims=True)
    return vectors / np.where(norms == 0, 1, norms)


def _interp_rows(x: float, xp: np.ndarray, fp: np.ndarray) -> np.ndarray:
    return np.array([np.interp(x, xp, fp[:, k]) for k in range(fp.shape[1])])


def _bezier(c0, c1, c2, c3, t: np.ndarray) -> np.ndarray:
    t = t[:, None]
    mt = 1.0 - t
    return mt ** 3 * c0 + 3 * mt ** 2 * t * c1 + 3 * mt * t ** 2 * c2 + t ** 3 * c3


def _bezier_derivative(c0, c1, c2, c3, t: np.ndarray) -> np.ndarray:
    t = t[:, None]
    mt = 1.0 - t
    return 3 * mt ** 2 * (c1 - c0) + 6 * mt * t * (c2 - c1) + 3 * t ** 2 * (c3 - c2)


class SplineCurve:
    """Piecewise cubic Bezier curve sampled by arc length."""

    def __init__(self, bake_interval: float = 0.2):
        if bake_interval <= 0:
            raise ValueError(f"bake_interval must be positive, got {bake_interval}")
        self.points: List[ControlPoint] = []
        self._bake_interval = float(bake_interval)
        self._baked: Optional[_BakedCurve] = None

    @property
    def bake_interval(self) -> float:
        return self._bake_interval

    @bake_interval.setter
    def bake_interval(self, value: float) -> None:
        if value <= 0:
            raise ValueError(f"bake_interval must be positive, got {value}")
        self._bake_interval = float(value)
        self._baked = None

    @property
    def point_count(self) -> int:
        return len(self.points)

    def add_point(self, position, handle_in=None, handle_out=None, tilt: float = 0.0) -> None:
        """Append a control point; handles are relative to `position`."""
        self.points.append(ControlPoint(
            position=_as_vector(position),
            handle_in=_as_vector(handle_in),
            handle_out=_as_vector(handle_out),
            tilt=float(tilt),
        ))
        self._baked = None

    def clear_points(self) -> None:
        """Remove all control points and drop the baked cache."""
        self.points = []
        self._baked = None

    def get_point_position(self, idx: int) -> np.ndarray:
        """Position of control point `idx` (a copy)."""
        return self.points[idx].position.copy()

    def get_point_in(self, idx: int) -> np.ndarray:
        """Incoming handle of point `idx`, relative to its position."""
        return self.points[idx].handle_in.copy()

    def get_point_out(self, idx: int) -> np.ndarray:
        """Outgoing handle of point `idx`, relative to its position."""
        return self.points[idx].handle_out.copy()

    def get_point_tilt(self, idx: int) -> float:
        """Tilt of point `idx` in radians."""
        return self.points[idx].tilt

    # ------------------------------------------------------------------
    # Baking
    # ------------------------------------------------------------------
    def _dense_samples(self):
        positions = [self.points[0].position[None, :]]
        derivatives = []
        tilts = [np.array([self.points[0].tilt])]
        for a, b in zip(self.points[:-1], self.points[1:]):
            c0 = a.position
            c1 = a.position + a.handle_out
            c2 = b.position + b.handle_in
            c3 = b.position
            # The control polygon length bounds the arc length from above.
            hull = (np.linalg.norm(c1 - c0) + np.linalg.norm(c2 - c1)
                    + np.linalg.norm(c3 - c2))
            steps = int(np.clip(hull / self._bake_interval * _OVERSAMPLING,
                                _MIN_SPAN_STEPS, _MAX_SPAN_STEPS))
            t = np.linspace(0.0, 1.0, steps + 1)
            if not derivatives:
                derivatives.append(_bezier_derivative(c0, c1, c2, c3, t[:1]))
            positions.append(_bezier(c0, c1, c2, c3, t[1:]))
            derivatives.append(_bezier_derivative(c0, c1, c2, c3, t[1:]))
            tilts.append(a.tilt + (b.tilt - a.tilt) * t[1:])
        return np.vstack(positions), np.vstack(derivatives), np.concatenate(tilts)

    def _bake(self) -> _BakedCurve:
        if self._baked is not None:
            return self._baked
        if not self.points:
            raise ValueError("Cannot bake a curve without control points")

        if len(self.points) == 1:
            p = self.points[0]
            tangent = _normalize(p.handle_out) if np.any(p.handle_out) else np.array([0.0, 0.0, 1.0])
            dense_pos = p.position[None, :]
            dense_der = tangent[None, :]
            dense_tilt = np.array([p.tilt])
        else:
            dense_pos, dense_der, dense_tilt = self._dense_samples()

        seg = np.linalg.norm(np.diff(dense_pos, axis=0), axis=1)
        cumulative = np.concatenate(([0.0], np.cumsum(seg)))
        length = float(cumulative[-1])

        if length > 0:
            distances = np.arange(0.0, length, self._bake_interval)
            if length - distances[-1] > 1e-9:
                distances = np.append(distances, length)
        else:
            distances = np.array([0.0])

        positions = np.array([_interp_rows(d, cumulative, dense_pos) for d in distances])
        tilts = np.interp(distances, cumulative, dense_tilt)
        tangents = self._baked_tangents(distances, cumulative, dense_pos, dense_der)
        up_vectors = self._transport_up_vectors(tangents)

        self._baked = _BakedCurve(distances, positions, tangents, up_vectors, tilts, length)
        return self._baked

    @staticmethod
    def _baked_tangents(distances, cumulative, dense_pos, dense_der) -> np.ndarray:
        # Zero-length handles give zero derivatives at the span ends; fall
        # back to the chord direction there.
        if len(dense_pos) > 1:
            chords = np.gradient(dense_pos, axis=0)
        else:
            chords = dense_der
        der_norm = np.linalg.norm(dense_der, axis=1, keepdims=True)
        dense_tangents = np.where(der_norm > 1e-9, dense_der, chords)
        dense_tangents = _normalize(dense_tangents)
        tangents = np.array([_interp_rows(d, cumulative, dense_tangents) for d in distances])
        tangents = _normalize(tangents)
        degenerate = np.linalg.norm(tangents, axis=1) < 0.5
        tangents[degenerate] = np.array([0.0, 0.0, 1.0])
        return tangents

    @staticmethod
    def _transport_up_vectors(tangents: np.ndarray) -> np.ndarray:
        up_vectors = np.empty_like(tangents)
        first = tangents[0]
        up = WORLD_UP - first * np.dot(first, WORLD_UP)
        if np.linalg.norm(up) < 1e-6:
            # Vertical tangent: any perpendicular will do.
            up = np.array([0.0, 0.0, 1.0]) - first * first[2]
        up = up / np.linalg.norm(up)
        up_vectors[0] = up
        for i in range(1, len(tangents)):
            prev, cur = tangents[i - 1], tangents[i]
            axis = np.cross(prev, cur)
            sin_angle = np.linalg.norm(axis)
            if sin_angle > 1e-9:
                angle = np.arctan2(sin_angle, np.dot(prev, cur))
                up = rotate_about_axis(up, axis / sin_angle, angle)
            up = up - cur * np.dot(cur, up)
            up = up / np.linalg.norm(up)
            up_vectors[i] = up
        return up_vectors

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------
    def get_baked_length(self) -> float:
        return self._bake().length

    def get_baked_points(self) -> np.ndarray:
        return self._bake().positions.copy()

    def sample_baked(self, offset: float) -> np.ndarray:
        """Position at `offset` metres along the curve (clamped)."""
        baked = self._bake()
        offset = float(np.clip(offset, 0.0, baked.length))
        return _interp_rows(offset, baked.distances, baked.positions)

    def sample_baked_tangent(self, offset: float) -> np.ndarray:
        """Unit tangent at `offset` metres along the curve."""
        baked = self._bake()
        offset = float(np.clip(offset, 0.0, baked.length))
        tangent = _normalize(_interp_rows(offset, baked.distances, baked.tangents))
        if np.linalg.norm(tangent) < 0.5:
            return baked.tangents[0].copy()
        return tangent

    def sample_baked_up_vector(self, offset: float, apply_tilt: bool = True) -> np.ndarray:
        """Unit up vector at `offset` metres along the curve.

        With `apply_tilt`, the interpolated control point tilt is applied
        as a rotation around the local tangent.
        """
        baked = self._bake()
        offset = float(np.clip(offset, 0.0, baked.length))
        tangent = self.sample_baked_tangent(offset)
        up = _interp_rows(offset, baked.distances, baked.up_vectors)
        up = up - tangent * np.dot(tangent, up)
        norm = np.linalg.norm(up)
        up = up / norm if norm > 1e-9 else baked.up_vectors[0].copy()
        if apply_tilt:
            tilt = float(np.interp(offset, baked.distances, baked.tilts))
            if tilt != 0.0:
                up = rotate_about_axis(up, tangent, tilt)
        return up
