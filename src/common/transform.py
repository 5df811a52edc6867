"""Rigid transforms for road endpoints and segments.

A `Transform` is an origin plus an orthonormal basis whose columns are
the local axes: x is lateral, y is up and z is forward (the direction
the road leaves an endpoint in).  Rotations are composed in YXZ order
(yaw, then pitch, then roll), so the roll angle is the bank of the road
around its own forward axis.
"""

import math
from dataclasses import dataclass, field

import numpy as np


def _rotation_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def _rotation_y(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def _rotation_z(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def rotate_about_axis(vector: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotate `vector` around the unit `axis` by `angle` (Rodrigues)."""
    c, s = math.cos(angle), math.sin(angle)
    return vector * c + np.cross(axis, vector) * s + axis * np.dot(axis, vector) * (1.0 - c)


@dataclass
class Transform:
    """Origin and basis of a road endpoint or segment."""

    origin: np.ndarray = field(default_factory=lambda: np.zeros(3))
    basis: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self):
        self.origin = np.asarray(self.origin, dtype=float).reshape(3)
        self.basis = np.asarray(self.basis, dtype=float).reshape(3, 3)

    @classmethod
    def from_rotation(cls, origin, yaw: float = 0.0, pitch: float = 0.0, roll: float = 0.0) -> "Transform":
        """Build a transform from Euler angles in radians (YXZ order)."""
        basis = _rotation_y(yaw) @ _rotation_x(pitch) @ _rotation_z(roll)
        return cls(origin=origin, basis=basis)

    @property
    def x(self) -> np.ndarray:
        """Lateral axis."""
        return self.basis[:, 0]

    @property
    def y(self) -> np.ndarray:
        """Up axis."""
        return self.basis[:, 1]

    @property
    def z(self) -> np.ndarray:
        """Forward axis, the tangent direction of the road."""
        return self.basis[:, 2]

    @property
    def tilt(self) -> float:
        """Roll angle around the forward axis (Euler z in YXZ order)."""
        return math.atan2(self.basis[1, 0], self.basis[1, 1])

    def translated(self, offset) -> "Transform":
        """Return a copy whose origin is moved by `offset`."""
        return Transform(self.origin + np.asarray(offset, dtype=float), self.basis.copy())
