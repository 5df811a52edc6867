"""Shared geometric primitives: transforms and spline curves."""

from .transform import Transform, rotate_about_axis
from .spline import ControlPoint, SplineCurve

__all__ = ["Transform", "rotate_about_axis", "ControlPoint", "SplineCurve"]
