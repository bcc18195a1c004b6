"""Geodesy utilities for WGS84 geodetic, ECEF and local ENU frames."""
from __future__ import annotations

import functools
import math
from typing import Tuple

import numpy as np
from pyproj import CRS, Geod, Transformer

from ..models.road_point import GeoPoint

WGS84_GEODETIC = CRS.from_epsg(4979)  # lon, lat, h
WGS84_ECEF = CRS.from_epsg(4978)
WGS84_GEOD = Geod(ellps="WGS84")


@functools.lru_cache(maxsize=2)
def _geodetic_to_ecef_transformer() -> Transformer:
    return Transformer.from_crs(WGS84_GEODETIC, WGS84_ECEF, always_xy=True)


@functools.lru_cache(maxsize=2)
def _ecef_to_geodetic_transformer() -> Transformer:
    return Transformer.from_crs(WGS84_ECEF, WGS84_GEODETIC, always_xy=True)


def geodetic_to_cartesian(lon_deg: float, lat_deg: float, height_m: float = 0.0) -> np.ndarray:
    """Convert lon/lat/height to an ECEF position vector in metres."""
    transformer = _geodetic_to_ecef_transformer()
    x, y, z = transformer.transform(lon_deg, lat_deg, height_m)
    return np.array([x, y, z], dtype=np.float64)


def cartesian_to_geodetic(x: float, y: float, z: float) -> Tuple[float, float, float]:
    """Convert ECEF coordinates to lat/lon/height."""
    transformer = _ecef_to_geodetic_transformer()
    lon, lat, alt = transformer.transform(x, y, z)
    return lat, lon, alt


def _enu_rotation(lat0: float, lon0: float) -> np.ndarray:
    lat = math.radians(lat0)
    lon = math.radians(lon0)

    slat = math.sin(lat)
    clat = math.cos(lat)
    slon = math.sin(lon)
    clon = math.cos(lon)

    # Columns are the East, North and Up unit vectors expressed in ECEF.
    return np.array(
        [
            [-slon, -slat * clon, clat * clon],
            [clon, -slat * slon, clat * slon],
            [0.0, clat, slat],
        ],
        dtype=np.float64,
    )


def local_frame_at(origin: np.ndarray) -> np.ndarray:
    """Return the 4x4 ENU->ECEF transform anchored at an ECEF origin.

    The upper-left 3x3 block holds the east, north and up axes (geodetic
    surface normal) as columns; the last column is the origin itself, so
    multiplying a homogeneous local offset yields a world position.
    """
    origin = np.asarray(origin, dtype=np.float64).reshape(3)
    lat0, lon0, _ = cartesian_to_geodetic(*origin)
    frame = np.eye(4, dtype=np.float64)
    frame[:3, :3] = _enu_rotation(lat0, lon0)
    frame[:3, 3] = origin
    return frame


def local_to_world(frame: np.ndarray, local: np.ndarray) -> np.ndarray:
    """Map local ENU offsets, shape ``(3,)`` or ``(n, 3)``, to ECEF positions."""
    local = np.asarray(local, dtype=np.float64)
    return local @ frame[:3, :3].T + frame[:3, 3]


def surface_distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Return the WGS84 geodesic surface distance between two points.

    Heights are ignored; the distance is measured along the ellipsoid.
    """
    _, _, distance_m = WGS84_GEOD.inv(a.lon, a.lat, b.lon, b.lat)
    return float(distance_m)
