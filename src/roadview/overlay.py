"""Entry point tying the viewer messages, search and highlight together."""
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from .config import OverlayConfig
from .highlight import HighlightLifecycleController, HighlightState
from .io.features import road_points_from_feature_collection, wfs_get_feature_url
from .math.frustum import Frustum
from .math.radius_search import NearbyPoint, search_box, unique_names, within_radius
from .models.orientation import OrientationState, OrientationTracker
from .models.road_point import RoadPoint
from .viewer.messages import SceneChanged, ViewChanged, parse_viewer_message
from .viewer.render_target import RenderTarget
from .workers.scheduler import Scheduler


class RoadViewOverlay:
    """Camera cone overlay for one globe and one embedded panorama viewer."""

    def __init__(
        self,
        renderer: RenderTarget,
        scheduler: Scheduler,
        config: Optional[OverlayConfig] = None,
        points: Iterable[RoadPoint] = (),
    ) -> None:
        self.config = config or OverlayConfig()
        self.tracker = OrientationTracker()
        self.controller = HighlightLifecycleController(
            renderer,
            self.tracker,
            scheduler,
            config=self.config.frustum,
            points=points,
        )

    @property
    def points(self) -> Sequence[RoadPoint]:
        return self.controller.points

    @property
    def state(self) -> HighlightState:
        return self.controller.state

    def load_points(self, points: Iterable[RoadPoint]) -> None:
        self.controller.set_points(points)

    def load_feature_collection(self, collection: Mapping[str, Any]) -> int:
        """Replace the point snapshot from a WFS GeoJSON response; returns the point count."""
        points = road_points_from_feature_collection(collection, name_field=self.config.wfs.name_field)
        self.load_points(points)
        return len(points)

    def points_query_url(self, lon: float, lat: float, radius_m: Optional[float] = None) -> str:
        """WFS request for the points the host should fetch around a location."""
        radius = self.config.search.click_radius_m if radius_m is None else radius_m
        return wfs_get_feature_url(self.config.wfs, bbox=search_box(lon, lat, radius))

    # -- exposed operations ---------------------------------------------
    def highlight(self, photo_name: str) -> Optional[RoadPoint]:
        return self.controller.select(photo_name)

    def clear_highlight(self) -> None:
        self.controller.clear()

    def set_scene(self, heading_deg: float) -> None:
        self.tracker.set_scene(heading_deg)

    def update_view(self, h_look_at: float, v_look_at: float, fov: float) -> None:
        self.tracker.update_view(h_look_at, v_look_at, fov)

    def orientation(self) -> OrientationState:
        return self.tracker.snapshot()

    def compute_frustum(self) -> Optional[Frustum]:
        return self.controller.compute_frustum()

    @staticmethod
    def nearest_points(
        points: Iterable[RoadPoint],
        lon: float,
        lat: float,
        radius_m: float,
    ) -> List[NearbyPoint]:
        return within_radius(points, lon, lat, radius_m)

    def browse_at(self, lon: float, lat: float, radius_m: Optional[float] = None) -> List[NearbyPoint]:
        """Panoramas around a clicked map location, using the click radius by default."""
        radius = self.config.search.click_radius_m if radius_m is None else radius_m
        hits = within_radius(self.points, lon, lat, radius)
        if not hits:
            logger.debug("No road points within {} m of ({:.6f}, {:.6f})", radius, lon, lat)
        return hits

    def browse_names_at(self, lon: float, lat: float, radius_m: Optional[float] = None) -> List[str]:
        return unique_names(self.browse_at(lon, lat, radius_m))

    # -- viewer protocol ------------------------------------------------
    def handle_message(self, data: Any) -> bool:
        """Apply a message posted by the panorama viewer. Returns whether it was used."""
        message = parse_viewer_message(data)
        if isinstance(message, SceneChanged):
            target = self.highlight(message.name)
            if target is None:
                logger.info("Scene {} has no matching road point", message.name)
                return False
            self.set_scene(message.heading)
            return True
        if isinstance(message, ViewChanged):
            self.update_view(message.h_look_at, message.v_look_at, message.fov)
            return True
        return False
