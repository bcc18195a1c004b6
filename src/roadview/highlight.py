"""Selection highlight: sphere marker plus a live viewing frustum.

Selecting a road point hides its default symbol, places a sphere at the
camera eye height and, once the panorama viewer has reported a real view
*and* the arming delay has elapsed, adds the four side faces of the
frustum. The side faces are created once per selection; their vertices are
pulled from :meth:`HighlightLifecycleController.side_positions` every frame.

The arming delay keeps the viewer's default orientation from flashing on
screen before its first real view update. Each selection bumps a generation
counter, and delayed callbacks carrying an older generation do nothing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
from loguru import logger

from .config import FrustumConfig
from .math import geodesy
from .math.frustum import Frustum, compute_frustum
from .models.orientation import OrientationTracker
from .models.road_point import RoadPoint, normalise_name
from .viewer.render_target import PolygonShape, RenderTarget, SphereShape
from .workers.scheduler import Scheduler

SPHERE_NAME = "road-view-highlight-sphere"
SIDE_NAME = "road-view-frustum-side-{}"


class HighlightState(str, Enum):
    IDLE = "idle"
    SELECTED = "selected"
    ACTIVE = "active"


@dataclass(slots=True)
class HighlightSession:
    """Render handles and gating flags of the current selection."""

    target: RoadPoint
    generation: int
    sphere_handle: Any = None
    frustum_side_handles: List[Any] = field(default_factory=list)
    spawned: bool = False
    visibility_armed: bool = False


class HighlightLifecycleController:
    """Sole owner of the highlight render handles."""

    def __init__(
        self,
        renderer: RenderTarget,
        tracker: OrientationTracker,
        scheduler: Scheduler,
        config: Optional[FrustumConfig] = None,
        points: Iterable[RoadPoint] = (),
    ) -> None:
        self._renderer = renderer
        self._tracker = tracker
        self._scheduler = scheduler
        self._config = config or FrustumConfig()
        self._points: tuple[RoadPoint, ...] = tuple(points)
        self._session: Optional[HighlightSession] = None
        self._generation = 0
        tracker.add_listener(self.on_orientation_update)

    # ------------------------------------------------------------------
    @property
    def state(self) -> HighlightState:
        if self._session is None:
            return HighlightState.IDLE
        if self._session.spawned:
            return HighlightState.ACTIVE
        return HighlightState.SELECTED

    @property
    def session(self) -> Optional[HighlightSession]:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def points(self) -> Sequence[RoadPoint]:
        return self._points

    def set_points(self, points: Iterable[RoadPoint]) -> None:
        """Replace the point snapshot used by :meth:`select`."""
        self._points = tuple(points)
        logger.debug("Highlight point set replaced ({} points)", len(self._points))

    def find_point(self, photo_name: str) -> Optional[RoadPoint]:
        if not normalise_name(photo_name):
            return None
        for point in self._points:
            if point.matches(photo_name):
                return point
        return None

    # ------------------------------------------------------------------
    def select(self, photo_name: str) -> Optional[RoadPoint]:
        """Highlight the road point named ``photo_name`` (case-insensitive)."""
        target = self.find_point(photo_name)
        if target is None:
            logger.warning("No road point with ph_nm={!r}", photo_name)
            return None

        self._teardown()
        self._generation += 1
        session = HighlightSession(target=target, generation=self._generation)
        self._session = session

        self._set_point_visible(target.id, False)
        session.sphere_handle = self._add_marker(target)

        generation = session.generation
        if self._config.arming_delay_ms <= 0.0:
            session.visibility_armed = True
        else:
            self._scheduler.call_later(self._config.arming_delay_ms, lambda: self._arm(generation))

        logger.info("Highlighting road point {} (generation {})", target.id, generation)
        self.try_spawn()
        return target

    def try_spawn(self) -> bool:
        """Create the frustum side faces if the selection is ready for them."""
        session = self._session
        if session is None or session.spawned:
            return False
        if not self._tracker.ready or not session.visibility_armed:
            return False

        handles = []
        for index in range(4):
            shape = PolygonShape(
                name=SIDE_NAME.format(index),
                positions=self._side_provider(index),
                color=self._config.side_color,
                alpha=self._config.side_alpha,
                show=self.visible,
            )
            try:
                handles.append(self._renderer.add_shape(shape))
            except Exception:  # noqa: BLE001
                logger.exception("Failed to add frustum side {}", index)
                for added, handle in enumerate(handles):
                    self._remove(handle, f"frustum side {added}")
                return False
        session.frustum_side_handles = handles
        session.spawned = True
        logger.debug("Frustum spawned for {}", session.target.id)
        return True

    def clear(self) -> None:
        """Remove every highlight shape and require a fresh view update."""
        self._teardown()
        self._tracker.invalidate()

    def on_orientation_update(self) -> None:
        if self.state is HighlightState.SELECTED:
            self.try_spawn()

    # ------------------------------------------------------------------
    def visible(self) -> bool:
        """Whether the marker and frustum should currently be drawn."""
        session = self._session
        return session is not None and session.visibility_armed and self._tracker.ready

    def compute_frustum(self) -> Optional[Frustum]:
        """Frustum for the current selection and orientation, if any."""
        session = self._session
        if session is None:
            return None
        cfg = self._config
        return compute_frustum(
            session.target,
            self._tracker.snapshot(),
            side_length_m=cfg.side_length_m,
            apex_height_m=cfg.camera_height_m,
            near_distance_m=cfg.near_distance_m,
            max_fov_deg=cfg.max_fov_deg,
            source_max_fov_deg=cfg.source_max_fov_deg,
            aspect_ratio=cfg.aspect_ratio,
        )

    def side_positions(self, index: int) -> List[np.ndarray]:
        """Vertices of side face ``index`` for this frame; empty when not drawable."""
        frustum = self.compute_frustum()
        if frustum is None:
            return []
        return list(frustum.side_face(index))

    # ------------------------------------------------------------------
    def _side_provider(self, index: int):
        return lambda: self.side_positions(index)

    def _arm(self, generation: int) -> None:
        session = self._session
        if session is None or session.generation != generation:
            logger.debug("Ignoring stale arming callback (generation {})", generation)
            return
        session.visibility_armed = True
        self.try_spawn()

    def _add_marker(self, target: RoadPoint) -> Any:
        position = target.resolved_position
        if position is None:
            logger.warning("Road point {} has no usable position; no marker drawn", target.id)
            return None
        eye = position.raised(self._config.camera_height_m)
        shape = SphereShape(
            name=SPHERE_NAME,
            center=geodesy.geodetic_to_cartesian(eye.lon, eye.lat, eye.height),
            radius_m=self._config.marker_radius_m,
            color=self._config.marker_color,
            show=self.visible,
        )
        try:
            return self._renderer.add_shape(shape)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to add highlight sphere for {}", target.id)
            return None

    def _set_point_visible(self, point_id: str, visible: bool) -> None:
        try:
            self._renderer.set_point_visible(point_id, visible)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to toggle visibility of road point {}", point_id)

    def _remove(self, handle: Any, what: str) -> None:
        try:
            self._renderer.remove_shape(handle)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to remove {}", what)

    def _teardown(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None

        for index, handle in enumerate(session.frustum_side_handles):
            self._remove(handle, f"frustum side {index}")
        session.frustum_side_handles = []
        session.spawned = False

        if session.sphere_handle is not None:
            self._remove(session.sphere_handle, "highlight sphere")
            session.sphere_handle = None

        self._set_point_visible(session.target.id, False)
        logger.debug("Highlight for {} torn down", session.target.id)
