"""Road point ingestion from GeoJSON and WFS query construction.

The fetch itself belongs to the host; this module only turns a WFS
``GetFeature`` response (a GeoJSON FeatureCollection) into
:class:`~roadview.models.road_point.RoadPoint` records and builds the
request parameters for a layer.
"""
from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlencode

from loguru import logger

from ..config import WfsConfig
from ..math.radius_search import BoundingBox
from ..models.road_point import GeoPoint, RoadPoint


def road_points_from_feature_collection(
    collection: Mapping[str, Any],
    name_field: str = "ph_nm",
) -> List[RoadPoint]:
    """Parse Point features into road points.

    Features without a name are skipped. Features whose geometry is missing
    or not a usable point are kept with ``position=None`` so they can still
    be looked up by name.

    Raises:
        ValueError: If ``collection`` is not a FeatureCollection.
    """
    if not isinstance(collection, Mapping) or collection.get("type") != "FeatureCollection":
        raise ValueError("Expected a GeoJSON FeatureCollection")

    features = collection.get("features")
    if not isinstance(features, list):
        return []

    points: List[RoadPoint] = []
    for index, feature in enumerate(features):
        if not isinstance(feature, Mapping):
            logger.debug("Skipping feature #{}: not an object", index)
            continue
        properties = feature.get("properties") or {}
        name = properties.get(name_field) if isinstance(properties, Mapping) else None
        if name is None or not str(name).strip():
            logger.debug("Skipping feature #{}: missing {}", index, name_field)
            continue
        points.append(RoadPoint(id=str(name).strip(), position=_point_position(feature.get("geometry"))))

    logger.info("Parsed {} road points from {} features", len(points), len(features))
    return points


def load_road_points(path: Path, name_field: str = "ph_nm") -> List[RoadPoint]:
    """Read road points from a GeoJSON file on disk."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as stream:
        collection = json.load(stream)
    logger.debug("Loaded feature collection {}", path)
    return road_points_from_feature_collection(collection, name_field=name_field)


def _point_position(geometry: Any) -> Optional[GeoPoint]:
    if not isinstance(geometry, Mapping):
        return None
    coordinates = geometry.get("coordinates")
    kind = geometry.get("type")
    if kind == "MultiPoint" and isinstance(coordinates, list) and coordinates:
        coordinates = coordinates[0]
    elif kind != "Point":
        return None
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None
    try:
        values = [float(v) for v in coordinates[:3]]
    except (TypeError, ValueError):
        return None
    height = values[2] if len(values) > 2 else 0.0
    position = GeoPoint(values[0], values[1], height)
    return position if position.is_finite else None


def cql_bbox(bbox: BoundingBox, geometry_field: str = "geom") -> str:
    """CQL ``BBOX`` filter for a lon/lat box."""
    return f"BBOX({geometry_field},{bbox.min_lon},{bbox.min_lat},{bbox.max_lon},{bbox.max_lat})"


def wfs_get_feature_params(
    config: WfsConfig,
    bbox: Optional[BoundingBox] = None,
    extra_cql: str = "",
) -> Dict[str, str]:
    """Query parameters of a WFS 2.0 ``GetFeature`` request for the point layer."""
    params = {
        "service": "WFS",
        "version": "2.0.0",
        "request": "GetFeature",
        "typeNames": config.type_name,
        "outputFormat": config.output_format,
        "srsName": config.srs,
    }
    filters = []
    if bbox is not None:
        filters.append(cql_bbox(bbox, config.geometry_field))
    if extra_cql:
        filters.append(f"({extra_cql})" if filters else extra_cql)
    if filters:
        params["CQL_FILTER"] = " AND ".join(filters)
    return params


def wfs_get_feature_url(
    config: WfsConfig,
    bbox: Optional[BoundingBox] = None,
    extra_cql: str = "",
) -> str:
    """``GetFeature`` URL against the configured service endpoint."""
    params = wfs_get_feature_params(config, bbox=bbox, extra_cql=extra_cql)
    separator = "&" if "?" in config.base else "?"
    return f"{config.base}{separator}{urlencode(params)}"
