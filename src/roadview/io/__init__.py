"""Input helpers for road point feature collections and WFS queries."""

from .features import (
    cql_bbox,
    load_road_points,
    road_points_from_feature_collection,
    wfs_get_feature_params,
    wfs_get_feature_url,
)

__all__ = [
    "cql_bbox",
    "load_road_points",
    "road_points_from_feature_collection",
    "wfs_get_feature_params",
    "wfs_get_feature_url",
]
