"""Utility functions shared by the road geometry packages."""

from .logging import get_logger
from .config import load_config, RoadConfig
from .tiling import whole_count, loop_count, loop_fractions

__all__ = ["get_logger", "load_config", "RoadConfig", "whole_count", "loop_count", "loop_fractions"]
