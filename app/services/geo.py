"""
Proximity search on a flat map.

distance_km = sqrt(dlat^2 + dlon^2) * 111

This is a planar approximation, not great-circle distance. It overstates
east-west distances away from the equator and is only meant for the radii the
UI uses (a few tens of km). Kept as-is so results match the map view.

Entities without coordinates are treated as always in range.
"""

import math
from typing import Iterable, List, Optional, Tuple

KM_PER_DEGREE = 111


def planar_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return math.sqrt((lat2 - lat1) ** 2 + (lon2 - lon1) ** 2) * KM_PER_DEGREE


def coordinates_of(entity: dict) -> Optional[Tuple[float, float]]:
    """(lat, lon) from a GeoJSON Point stored as {"coordinates": [lon, lat]}."""
    point = entity.get("coordinates")
    if isinstance(point, dict):
        point = point.get("coordinates")
    if not isinstance(point, (list, tuple)) or len(point) < 2:
        return None
    try:
        lon, lat = float(point[0]), float(point[1])
    except (TypeError, ValueError):
        return None
    return lat, lon


def distance_to(entity: dict, lat: float, lon: float) -> Optional[float]:
    coords = coordinates_of(entity)
    if coords is None:
        return None
    return planar_distance_km(lat, lon, coords[0], coords[1])


def within_radius(entity: dict, lat: float, lon: float, radius_m: float) -> bool:
    distance = distance_to(entity, lat, lon)
    if distance is None:
        return True
    return distance <= radius_m / 1000


def filter_nearby(
    entities: Iterable[dict],
    lat: float,
    lon: float,
    radius_m: float,
    limit: int = None,
) -> List[dict]:
    """
    Entities within `radius_m` of (lat, lon), nearest first, each annotated
    with `distance` in km rounded to one decimal (None without coordinates).
    Entities without coordinates sort last.
    """
    matched = []
    for entity in entities:
        distance = distance_to(entity, lat, lon)
        if distance is not None and distance > radius_m / 1000:
            continue
        annotated = dict(entity)
        annotated["distance"] = round(distance, 1) if distance is not None else None
        matched.append((distance is None, distance or 0.0, annotated))

    matched.sort(key=lambda item: (item[0], item[1]))
    results = [item[2] for item in matched]
    return results[:limit] if limit else results
