"""Geographic helpers for radius searches.

Radius searches are approximated with a bounding box. By default the
longitude delta is NOT corrected for latitude (same degree delta on both
axes), which is narrower than the true circle away from the equator.
Pass latitude_corrected=True to scale it by 1/cos(latitude).
"""

import math
from dataclasses import dataclass

MILES_PER_DEGREE_LAT = 69.0
EARTH_RADIUS_MILES = 3959.0

# cos(lat) floor so boxes near the poles stay finite
_MIN_COS_LAT = 0.01


@dataclass(frozen=True)
class BoundingBox:
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )


def bounding_box(
    latitude: float,
    longitude: float,
    radius_miles: float,
    latitude_corrected: bool = False,
) -> BoundingBox:
    """Approximate a radius around a point with a lat/lon box."""
    lat_delta = radius_miles / MILES_PER_DEGREE_LAT
    lon_delta = lat_delta
    if latitude_corrected:
        cos_lat = max(math.cos(math.radians(latitude)), _MIN_COS_LAT)
        lon_delta = lat_delta / cos_lat
    return BoundingBox(
        min_latitude=latitude - lat_delta,
        max_latitude=latitude + lat_delta,
        min_longitude=longitude - lon_delta,
        max_longitude=longitude + lon_delta,
    )


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.asin(math.sqrt(a))
