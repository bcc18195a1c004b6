from __future__ import annotations

import itertools

import pytest
from loguru import logger

from roadview.config import FrustumConfig
from roadview.highlight import HighlightLifecycleController
from roadview.models.orientation import OrientationTracker
from roadview.models.road_point import GeoPoint, RoadPoint
from roadview.viewer.render_target import PolygonShape, SphereShape
from roadview.workers.scheduler import ManualScheduler


class FakeRenderer:
    """In-memory stand-in for the globe's shape primitives."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.shapes: dict[int, object] = {}
        self.removed: list[int] = []
        self.point_visibility: dict[str, bool] = {}
        self.fail_removal_of: set[int] = set()
        self.fail_add_of: set[str] = set()

    def add_shape(self, shape):
        if shape.name in self.fail_add_of:
            raise RuntimeError(f"cannot add {shape.name}")
        handle = next(self._ids)
        self.shapes[handle] = shape
        return handle

    def remove_shape(self, handle) -> None:
        if handle in self.fail_removal_of:
            self.shapes.pop(handle, None)
            raise RuntimeError(f"shape {handle} already gone")
        if handle not in self.shapes:
            raise KeyError(handle)
        del self.shapes[handle]
        self.removed.append(handle)

    def set_point_visible(self, point_id: str, visible: bool) -> None:
        self.point_visibility[point_id] = visible

    @property
    def spheres(self) -> list[SphereShape]:
        return [s for s in self.shapes.values() if isinstance(s, SphereShape)]

    @property
    def polygons(self) -> list[PolygonShape]:
        return [s for s in self.shapes.values() if isinstance(s, PolygonShape)]


@pytest.fixture
def road_points() -> list[RoadPoint]:
    return [
        RoadPoint("PIC_01", GeoPoint(128.4156, 34.9501, 12.0)),
        RoadPoint("PIC_02", GeoPoint(128.4157, 34.9502, 12.5)),
        RoadPoint("PIC_03", GeoPoint(128.4200, 34.9550, 10.0)),
        RoadPoint("PIC_NOPOS", None),
    ]


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def tracker() -> OrientationTracker:
    return OrientationTracker()


@pytest.fixture
def controller(renderer, tracker, scheduler, road_points) -> HighlightLifecycleController:
    return HighlightLifecycleController(
        renderer,
        tracker,
        scheduler,
        config=FrustumConfig(),
        points=road_points,
    )


@pytest.fixture
def log_messages():
    messages: list[str] = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{level}|{message}")
    yield messages
    logger.remove(handler_id)
