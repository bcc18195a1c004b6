"""Camera frustum geometry for the panorama viewing cone."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional

import numpy as np

from ..models.orientation import OrientationState
from ..models.road_point import RoadPoint
from . import geodesy

DEFAULT_SIDE_LENGTH_M = 4.0
MIN_USABLE_FOV_DEG = 1.0
UP = np.array([0.0, 0.0, 1.0], dtype=np.float64)
_DEGENERATE_EPSILON = 1e-12


@dataclass(slots=True, frozen=True)
class Frustum:
    """A truncated four-sided pyramid in ECEF metres.

    Corners are ordered bottom-left, bottom-right, top-right, top-left as
    seen from the apex, so side face ``i`` is bounded by corners ``i`` and
    ``(i + 1) % 4`` of both planes.
    """

    apex: np.ndarray
    near_corners: np.ndarray  # (4, 3)
    far_corners: np.ndarray  # (4, 3)
    near_distance: float
    far_distance: float

    def side_face(self, index: int) -> np.ndarray:
        """Return the quad ``near[i], near[j], far[j], far[i]`` with ``j = i + 1``."""
        i = index % 4
        j = (i + 1) % 4
        return np.stack(
            [self.near_corners[i], self.near_corners[j], self.far_corners[j], self.far_corners[i]]
        )


def viewing_basis(heading_rad: float, pitch_rad: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return ``(forward, right, up)`` unit vectors in ENU components.

    Heading is clockwise from north and pitch is positive upwards. When the
    forward vector is parallel to the zenith, east is used as the right axis.
    """
    cos_pitch = math.cos(pitch_rad)
    forward = np.array(
        [
            cos_pitch * math.sin(heading_rad),  # east
            cos_pitch * math.cos(heading_rad),  # north
            math.sin(pitch_rad),  # up
        ],
        dtype=np.float64,
    )
    forward /= np.linalg.norm(forward)

    right = np.cross(forward, UP)
    norm = float(np.linalg.norm(right))
    if norm <= _DEGENERATE_EPSILON:
        right = np.array([1.0, 0.0, 0.0], dtype=np.float64)
    else:
        right /= norm

    true_up = np.cross(right, forward)
    true_up /= np.linalg.norm(true_up)
    return forward, right, true_up


def horizontal_fov_deg(fov_deg: float, max_fov_deg: float, source_max_fov_deg: float) -> float:
    """Translate the viewer's fov into the visualisation's fov scale."""
    if not math.isfinite(fov_deg) or fov_deg <= MIN_USABLE_FOV_DEG:
        return max_fov_deg
    # Clamped to the viewer's own maximum before rescaling, so an out-of-range
    # report never widens the cone past max_fov_deg. Unclamped scaling would
    # let a 179 degree report through as about 153 degrees.
    return min(fov_deg, source_max_fov_deg) * (max_fov_deg / source_max_fov_deg)


def shape_factor(tan_half_x: float, tan_half_y: float) -> float:
    """Ratio between a side edge's slant length and the axial depth it spans."""
    return math.sqrt(1.0 + tan_half_x * tan_half_x + tan_half_y * tan_half_y)


def _plane_corners(
    center: np.ndarray,
    right: np.ndarray,
    up: np.ndarray,
    half_x: float,
    half_y: float,
) -> np.ndarray:
    return np.stack(
        [
            center - right * half_x - up * half_y,
            center + right * half_x - up * half_y,
            center + right * half_x + up * half_y,
            center - right * half_x + up * half_y,
        ]
    )


def compute_frustum(
    target: Optional[RoadPoint],
    orientation: OrientationState,
    side_length_m: float,
    apex_height_m: float,
    near_distance_m: float,
    max_fov_deg: float,
    source_max_fov_deg: float,
    aspect_ratio: float,
) -> Optional[Frustum]:
    """Build the viewing frustum above ``target`` for the given orientation.

    Args:
        target: Road point the panorama was captured at.
        orientation: Current viewer orientation; nothing is computed unless ready.
        side_length_m: Desired slant length of each side edge, near to far.
        apex_height_m: Eye height above the road point.
        near_distance_m: Fixed axial distance from apex to the near plane.
        max_fov_deg: Largest horizontal fov drawn by the frustum.
        source_max_fov_deg: Largest fov the panorama viewer reports.
        aspect_ratio: Width over height of the viewer.

    Returns:
        The frustum in ECEF coordinates, or ``None`` if the orientation is not
        ready or the target has no usable position.
    """
    if not orientation.ready or target is None:
        return None
    position = target.resolved_position
    if position is None:
        return None

    apex_point = position.raised(apex_height_m)
    apex = geodesy.geodetic_to_cartesian(apex_point.lon, apex_point.lat, apex_point.height)
    frame = geodesy.local_frame_at(apex)

    heading_rad = math.radians(orientation.absolute_heading_deg)
    pitch_rad = -math.radians(orientation.v_look_at_deg)
    forward, right, up = viewing_basis(heading_rad, pitch_rad)

    if not math.isfinite(side_length_m) or side_length_m <= 0.0:
        side_length_m = DEFAULT_SIDE_LENGTH_M

    fov_x = horizontal_fov_deg(orientation.fov_deg, max_fov_deg, source_max_fov_deg)
    tan_half_x = math.tan(math.radians(fov_x) * 0.5)
    tan_half_y = tan_half_x / aspect_ratio

    near_distance = float(near_distance_m)
    far_distance = near_distance + side_length_m / shape_factor(tan_half_x, tan_half_y)

    near_local = _plane_corners(
        forward * near_distance, right, up, near_distance * tan_half_x, near_distance * tan_half_y
    )
    far_local = _plane_corners(
        forward * far_distance, right, up, far_distance * tan_half_x, far_distance * tan_half_y
    )

    return Frustum(
        apex=apex,
        near_corners=geodesy.local_to_world(frame, near_local),
        far_corners=geodesy.local_to_world(frame, far_local),
        near_distance=near_distance,
        far_distance=far_distance,
    )
