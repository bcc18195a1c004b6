"""Panorama viewer orientation state."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Callable, List

from loguru import logger

DEFAULT_FOV_DEG = 90.0


def normalise_heading(value_deg: float) -> float:
    """Wrap an angle into ``[0, 360)``."""
    return ((value_deg % 360.0) + 360.0) % 360.0


@dataclass(slots=True, frozen=True)
class OrientationState:
    """Snapshot of what the remote panorama viewer is looking at.

    ``scene_heading_deg`` is the compass heading of the panorama's scene-zero
    direction. The look angles are relative to it. ``absolute_heading_deg``
    is only meaningful while ``ready`` is true.
    """

    scene_heading_deg: float = 0.0
    h_look_at_deg: float = 0.0
    v_look_at_deg: float = 0.0
    fov_deg: float = DEFAULT_FOV_DEG
    ready: bool = False

    @property
    def absolute_heading_deg(self) -> float:
        return normalise_heading(self.scene_heading_deg + normalise_heading(self.h_look_at_deg))


class OrientationTracker:
    """Accumulates scene and view events into an :class:`OrientationState`."""

    def __init__(self) -> None:
        self._scene_heading_deg = 0.0
        self._h_look_at_deg = 0.0
        self._v_look_at_deg = 0.0
        self._fov_deg = DEFAULT_FOV_DEG
        self._ready = False
        self._listeners: List[Callable[[], None]] = []

    @property
    def ready(self) -> bool:
        return self._ready

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked after every view update."""
        self._listeners.append(callback)

    def set_scene(self, heading_deg: float) -> None:
        """Start a new scene; its heading is untrusted until the next view update."""
        heading = _as_float(heading_deg)
        if not math.isfinite(heading):
            logger.warning("Scene heading {!r} is not a number; using 0", heading_deg)
            heading = 0.0
        self._scene_heading_deg = heading
        self._ready = False
        logger.debug("Scene heading set to {:.2f} deg", heading)

    def update_view(self, h_look_at_deg: float, v_look_at_deg: float, fov_deg: float) -> None:
        """Apply a live view update. Non-finite values keep the previous field."""
        h = _as_float(h_look_at_deg)
        v = _as_float(v_look_at_deg)
        fov = _as_float(fov_deg)
        if math.isfinite(h):
            self._h_look_at_deg = h
        if math.isfinite(v):
            self._v_look_at_deg = v
        if math.isfinite(fov):
            self._fov_deg = fov
        self._ready = True

        for callback in list(self._listeners):
            callback()

    def invalidate(self) -> None:
        self._ready = False

    def snapshot(self) -> OrientationState:
        return OrientationState(
            scene_heading_deg=self._scene_heading_deg,
            h_look_at_deg=self._h_look_at_deg,
            v_look_at_deg=self._v_look_at_deg,
            fov_deg=self._fov_deg,
            ready=self._ready,
        )


def _as_float(value: object) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan
