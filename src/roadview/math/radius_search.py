"""Radius queries over a snapshot of road points."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Iterable, List

from ..models.road_point import GeoPoint, RoadPoint
from .geodesy import surface_distance_m

METERS_PER_DEG_LAT = 110_574.0
METERS_PER_DEG_LON_EQUATOR = 111_320.0
# Smallest WGS84 radius of curvature (meridional, at the equator). Angular
# radii derived from it are never smaller than the true ones.
MIN_RADIUS_OF_CURVATURE_M = 6_335_439.0
BBOX_PADDING = 1.01
_MIN_COS_LAT = 1e-9


@dataclass(slots=True, frozen=True)
class BoundingBox:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @property
    def half_lon(self) -> float:
        return (self.max_lon - self.min_lon) * 0.5

    @property
    def half_lat(self) -> float:
        return (self.max_lat - self.min_lat) * 0.5


@dataclass(slots=True, frozen=True)
class NearbyPoint:
    """A search hit and its geodesic distance from the query centre."""

    point: RoadPoint
    distance_m: float

    @property
    def name(self) -> str:
        return self.point.id


def bbox_from_center(lon: float, lat: float, radius_m: float, padding: float = 1.0) -> BoundingBox:
    """Return an equirectangular lon/lat box around a centre for a radius in metres."""
    d_lat = radius_m / METERS_PER_DEG_LAT * padding
    cos_lat = math.cos(math.radians(lat))
    if cos_lat <= _MIN_COS_LAT:
        d_lon = 180.0
    else:
        d_lon = min(radius_m / (METERS_PER_DEG_LON_EQUATOR * cos_lat) * padding, 180.0)
    return BoundingBox(
        min_lon=lon - d_lon,
        min_lat=lat - d_lat,
        max_lon=lon + d_lon,
        max_lat=lat + d_lat,
    )


def search_box(lon: float, lat: float, radius_m: float) -> BoundingBox:
    """Lon/lat box guaranteed to contain every point within ``radius_m``.

    Widens :func:`bbox_from_center` with a spherical-cap bound, since
    great circles between points on one parallel bow towards the pole. A
    cap reaching the pole spans every longitude.
    """
    box = bbox_from_center(lon, lat, radius_m, padding=BBOX_PADDING)
    d_lat = box.half_lat
    angular = radius_m / MIN_RADIUS_OF_CURVATURE_M
    cos_lat = math.cos(math.radians(lat))

    if abs(lat) + d_lat >= 90.0 or cos_lat <= _MIN_COS_LAT or angular >= math.pi / 2.0:
        d_lon = 180.0
    else:
        ratio = math.sin(angular) / cos_lat
        if ratio >= 1.0:
            d_lon = 180.0
        else:
            cap = math.degrees(math.asin(ratio)) * BBOX_PADDING
            d_lon = min(max(box.half_lon, cap), 180.0)

    return BoundingBox(
        min_lon=lon - d_lon,
        min_lat=lat - d_lat,
        max_lon=lon + d_lon,
        max_lat=lat + d_lat,
    )


def _lon_delta(a: float, b: float) -> float:
    """Absolute longitude difference, wrapped across the antimeridian."""
    return abs(((a - b + 180.0) % 360.0) - 180.0)


def within_radius(
    points: Iterable[RoadPoint],
    center_lon: float,
    center_lat: float,
    radius_m: float,
) -> List[NearbyPoint]:
    """Return points within ``radius_m`` of the centre, nearest first.

    The boundary is inclusive. Points without a usable position are skipped.
    """
    if not (math.isfinite(radius_m) and math.isfinite(center_lon) and math.isfinite(center_lat)):
        return []
    if radius_m <= 0.0:
        return []

    box = search_box(center_lon, center_lat, radius_m)
    center = GeoPoint(center_lon, center_lat)

    hits: List[NearbyPoint] = []
    for point in points:
        position = point.resolved_position
        if position is None:
            continue
        if abs(position.lat - center_lat) > box.half_lat:
            continue
        if _lon_delta(position.lon, center_lon) > box.half_lon:
            continue
        distance = surface_distance_m(center, position)
        if distance <= radius_m:
            hits.append(NearbyPoint(point, distance))

    hits.sort(key=lambda hit: hit.distance_m)
    return hits


def unique_names(hits: Iterable[NearbyPoint]) -> List[str]:
    """Photo names of the hits in order, without duplicates or blanks."""
    seen: set[str] = set()
    names: List[str] = []
    for hit in hits:
        name = hit.name
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names
