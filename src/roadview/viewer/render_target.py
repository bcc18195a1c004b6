"""Shape descriptions handed to the 3D globe renderer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

import numpy as np

PositionsProvider = Callable[[], Sequence[np.ndarray]]
VisibilityProvider = Callable[[], bool]


@dataclass(slots=True, frozen=True)
class SphereShape:
    """A sphere marker at a fixed ECEF position."""

    name: str
    center: np.ndarray
    radius_m: float
    color: str
    show: VisibilityProvider


@dataclass(slots=True, frozen=True)
class PolygonShape:
    """A polygon whose vertices are pulled from ``positions`` on every frame.

    ``positions`` returns an empty sequence when there is nothing to draw.
    Vertices carry their own heights.
    """

    name: str
    positions: PositionsProvider
    color: str
    alpha: float
    show: VisibilityProvider


class RenderTarget(Protocol):
    """Primitives the globe exposes for point entities and ad hoc shapes."""

    def add_shape(self, shape: SphereShape | PolygonShape) -> Any:
        """Add a shape and return an opaque handle for later removal."""

    def remove_shape(self, handle: Any) -> None:
        """Remove a shape. May raise if the handle is already gone."""

    def set_point_visible(self, point_id: str, visible: bool) -> None:
        """Toggle the default point symbol of a road point entity."""
