"""Road point domain models."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional


@dataclass(slots=True, frozen=True)
class GeoPoint:
    """A WGS84 geodetic position."""

    lon: float  # degrees
    lat: float  # degrees
    height: float = 0.0  # meters, ellipsoidal

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.lon) and math.isfinite(self.lat) and math.isfinite(self.height)

    def raised(self, delta_m: float) -> "GeoPoint":
        """Return the same horizontal position moved up by ``delta_m``."""
        return GeoPoint(self.lon, self.lat, self.height + delta_m)


@dataclass(slots=True, frozen=True)
class RoadPoint:
    """A captured panorama location, keyed by its photo name (``ph_nm``)."""

    id: str
    position: Optional[GeoPoint] = None

    @property
    def resolved_position(self) -> Optional[GeoPoint]:
        """The position if it is present and finite, otherwise ``None``."""
        if self.position is None or not self.position.is_finite:
            return None
        return self.position

    def matches(self, photo_name: str) -> bool:
        """Case-insensitive, whitespace-tolerant name comparison."""
        return normalise_name(self.id) == normalise_name(photo_name)


def normalise_name(name: object) -> str:
    return str(name if name is not None else "").strip().upper()
