"""Configuration for the road view overlay."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
import json
import math
from pathlib import Path
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class FrustumConfig:
    """Shape and timing of the viewing cone drawn above a road point."""

    side_length_m: float = 4.0
    near_distance_m: float = 0.3
    camera_height_m: float = 2.0
    marker_radius_m: float = 0.7
    aspect_ratio: float = 4.0 / 3.0
    source_max_fov_deg: float = 140.0
    max_fov_deg: float = 120.0
    arming_delay_ms: float = 300.0
    side_color: str = "#3cb6c6"
    side_alpha: float = 0.8
    marker_color: str = "#ffff00"

    def __post_init__(self) -> None:
        for name in ("side_length_m", "near_distance_m", "marker_radius_m", "aspect_ratio"):
            _require_positive(name, getattr(self, name))
        for name in ("source_max_fov_deg", "max_fov_deg"):
            value = getattr(self, name)
            _require_positive(name, value)
            if value >= 180.0:
                raise ValueError(f"{name} must be below 180 degrees, got {value}")
        if not math.isfinite(self.camera_height_m):
            raise ValueError("camera_height_m must be finite")
        if not math.isfinite(self.arming_delay_ms) or self.arming_delay_ms < 0.0:
            raise ValueError(f"arming_delay_ms must be >= 0, got {self.arming_delay_ms}")
        if not 0.0 <= self.side_alpha <= 1.0:
            raise ValueError(f"side_alpha must be within [0, 1], got {self.side_alpha}")


@dataclass(slots=True, frozen=True)
class SearchConfig:
    """Radius used when browsing panoramas around a clicked map location."""

    click_radius_m: float = 20.0

    def __post_init__(self) -> None:
        _require_positive("click_radius_m", self.click_radius_m)


@dataclass(slots=True, frozen=True)
class WfsConfig:
    """GeoServer WFS layer publishing the captured panorama points."""

    base: str = "/geoserver/Tongyeong/ows"
    type_name: str = "Tongyeong:survey_point"
    srs: str = "EPSG:4326"
    geometry_field: str = "geom"
    name_field: str = "ph_nm"
    output_format: str = "application/json"

    def __post_init__(self) -> None:
        if not self.type_name:
            raise ValueError("type_name must not be empty")


@dataclass(slots=True, frozen=True)
class OverlayConfig:
    frustum: FrustumConfig = field(default_factory=FrustumConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    wfs: WfsConfig = field(default_factory=WfsConfig)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OverlayConfig":
        """Build a config from nested partial overrides.

        Example: ``{"frustum": {"arming_delay_ms": 200}}``. Unknown sections
        or keys raise ``ValueError``.
        """
        config = cls()
        for section, overrides in data.items():
            if section not in {"frustum", "search", "wfs"}:
                raise ValueError(f"Unknown config section: {section}")
            if not isinstance(overrides, Mapping):
                raise ValueError(f"Config section {section} must be a mapping")
            current = getattr(config, section)
            known = {f.name for f in fields(current)}
            unknown = sorted(set(overrides) - known)
            if unknown:
                raise ValueError(f"Unknown {section} option(s): {', '.join(unknown)}")
            config = replace(config, **{section: replace(current, **overrides)})
        return config


def load_config(path: Path) -> OverlayConfig:
    """Read an :class:`OverlayConfig` from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as stream:
        data = json.load(stream)
    if not isinstance(data, Mapping):
        raise ValueError(f"{path} must contain a JSON object")
    return OverlayConfig.from_mapping(data)


def _require_positive(name: str, value: float) -> None:
    if not math.isfinite(value) or value <= 0.0:
        raise ValueError(f"{name} must be a positive number, got {value}")
