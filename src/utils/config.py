"""Configuration loader.

Reads configuration files in YAML format and turns them into a
`RoadConfig` with the defaults used when building road segments
(sampling density, low-poly mode, material, cross-section widths and
curve handle lengths).  Configuration files reside in the `configs/`
directory at the project root.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .logging import get_logger

logger = get_logger(__name__)


def load_config(path: str) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary.

    Parameters
    ----------
    path : str
        Path to the YAML configuration file.

    Returns
    -------
    dict
        Parsed configuration dictionary.  Returns an empty dict if the
        file does not exist or cannot be parsed.
    """
    cfg_path = Path(path)
    if not cfg_path.is_file():
        return {}
    try:
        with open(cfg_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read config %s: %s", cfg_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config %s does not contain a mapping, ignoring it", cfg_path)
        return {}
    return data


@dataclass
class RoadConfig:
    """Default parameters for building road segments."""

    density: float = 4.0
    """Sample spacing along the curve in metres."""

    low_poly: bool = False
    """Whether to build segments with reduced longitudinal resolution."""

    material: Optional[str] = None
    """Material reference handed to the renderer."""

    lane_width: float = 4.0
    """Default lane width in metres."""

    shoulder_width_left: float = 2.0
    """Default left shoulder width in metres."""

    shoulder_width_right: float = 2.0
    """Default right shoulder width in metres."""

    gutter_profile: Tuple[float, float] = (0.5, 0.5)
    """Default gutter (horizontal offset, vertical drop) in metres."""

    tangent_magnitude: float = 5.0
    """Default curve handle length in metres."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoadConfig":
        """Build a config from a (possibly partial) dictionary.

        Unknown keys are ignored with a warning so that a typo in a YAML
        file does not silently change behaviour.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown config key '%s'", key)
                continue
            kwargs[key] = value
        if "gutter_profile" in kwargs:
            kwargs["gutter_profile"] = tuple(float(v) for v in kwargs["gutter_profile"])
        return cls(**kwargs)

    @classmethod
    def load(cls, path: str) -> "RoadConfig":
        """Load a `RoadConfig` from a YAML file; missing keys keep their defaults."""
        return cls.from_dict(load_config(path))
