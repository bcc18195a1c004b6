"""Messages posted by the embedded panorama viewer."""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Any, Mapping, Optional, Union

from loguru import logger

SCENE_CHANGED = "scene-changed"
VIEW_CHANGED = "view-changed"

# Tags emitted by older tour builds.
_LEGACY_SCENE = "krpano-scene"
_LEGACY_VIEW = "view-info"


@dataclass(slots=True, frozen=True)
class SceneChanged:
    """The viewer switched to the panorama ``name`` captured facing ``heading``."""

    name: str
    heading: float


@dataclass(slots=True, frozen=True)
class ViewChanged:
    h_look_at: float
    v_look_at: float
    fov: float


ViewerMessage = Union[SceneChanged, ViewChanged]


def parse_viewer_message(data: Any) -> Optional[ViewerMessage]:
    """Decode a posted message; unknown or malformed payloads yield ``None``.

    Numeric fields that are missing or unparsable become NaN, which the
    orientation tracker treats as "keep the previous value".
    """
    if not isinstance(data, Mapping):
        logger.debug("Ignoring non-mapping viewer message: {!r}", data)
        return None

    kind = data.get("type")
    if kind in (SCENE_CHANGED, _LEGACY_SCENE):
        name = data.get("name")
        if name is None or not str(name).strip():
            logger.debug("Ignoring scene message without a name: {!r}", data)
            return None
        return SceneChanged(name=str(name).strip(), heading=_number(data.get("heading")))

    if kind == VIEW_CHANGED:
        return ViewChanged(
            h_look_at=_number(data.get("hLookAt")),
            v_look_at=_number(data.get("vLookAt")),
            fov=_number(data.get("fov")),
        )
    if kind == _LEGACY_VIEW:
        return ViewChanged(
            h_look_at=_number(data.get("hlookat")),
            v_look_at=_number(data.get("vlookat")),
            fov=_number(data.get("fov")),
        )

    logger.debug("Ignoring viewer message of type {!r}", kind)
    return None


def _number(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan
