"""
Great-circle helpers for proximity search.

Firestore has no native point-in-radius query, so nearby search narrows the
candidate set with a latitude band in the store and finishes with an exact
haversine check here.
"""

import math
from typing import Any, Dict, Optional, Tuple

EARTH_RADIUS_METERS = 6371000
METERS_PER_DEGREE_LATITUDE = 111320.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def latitude_band(latitude: float, radius_meters: float) -> Tuple[float, float]:
    """Latitude range that contains every point within radius_meters of latitude."""
    delta = radius_meters / METERS_PER_DEGREE_LATITUDE
    return max(-90.0, latitude - delta), min(90.0, latitude + delta)


def geo_point(latitude: float, longitude: float) -> Dict[str, Any]:
    """GeoJSON point; coordinates are [longitude, latitude]."""
    return {"type": "Point", "coordinates": [longitude, latitude]}


def point_coordinates(location: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float]]:
    """(latitude, longitude) from a stored GeoJSON point, or None."""
    if not isinstance(location, dict):
        return None
    coordinates = location.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        return None
    longitude, latitude = coordinates
    return float(latitude), float(longitude)
