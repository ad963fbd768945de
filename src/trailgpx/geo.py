from __future__ import annotations

import math
from dataclasses import dataclass, replace


# One degree of latitude in meters.
ONE_DEGREE_M = 1000.0 * 10000.8 / 90.0
EARTH_RADIUS_M = 6371000.0

# Above this latitude/longitude delta the planar approximation is too coarse.
HAVERSINE_THRESHOLD_DEG = 0.2

_ELEVATION_EPSILON = 0.00001


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180.0


def to_degrees(radians: float) -> float:
    return radians * 180.0 / math.pi


def bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Computes the initial great-circle bearing in degrees from point 1 to point 2.
    The result is the signed atan2 angle (-180..180], not a 0-360 compass value.
    """
    lat1_r = to_radians(lat1)
    lat2_r = to_radians(lat2)
    dlon = to_radians(lon2 - lon1)

    y = math.sin(dlon) * math.cos(lat2_r)
    x = math.cos(lat1_r) * math.sin(lat2_r) - math.sin(lat1_r) * math.cos(
        lat2_r
    ) * math.cos(dlon)
    return to_degrees(math.atan2(y, x))


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculates the great-circle distance in meters between two points using the Haversine formula.
    Args:
        lat1, lon1: The first point in decimal degrees.
        lat2, lon2: The second point in decimal degrees.
    Returns:
        Distance in meters on a sphere of radius EARTH_RADIUS_M.
    """
    dlat = to_radians(lat1 - lat2)
    dlon = to_radians(lon1 - lon2)
    lat1_r = to_radians(lat1)
    lat2_r = to_radians(lat2)

    a = (
        math.sin(dlat / 2) ** 2
        + math.sin(dlon / 2) ** 2 * math.cos(lat1_r) * math.cos(lat2_r)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance(
    lat1: float,
    lon1: float,
    ele1: float | None,
    lat2: float,
    lon2: float,
    ele2: float | None,
    three_d: bool = False,
    haversine: bool = False,
) -> float:
    """
    Distance in meters between two points.

    Points further apart than HAVERSINE_THRESHOLD_DEG on either axis (or any
    points when ``haversine`` is set) use the great-circle formula. Closer
    points use an equirectangular approximation. With ``three_d`` the planar distance is
    combined with the elevation delta when both elevations are known.
    """
    if (
        haversine
        or abs(lat1 - lat2) > HAVERSINE_THRESHOLD_DEG
        or abs(lon1 - lon2) > HAVERSINE_THRESHOLD_DEG
    ):
        return haversine_distance(lat1, lon1, lat2, lon2)

    coef = math.cos(to_radians((lat1 + lat2) / 2.0))
    x = lat1 - lat2
    y = (lon1 - lon2) * coef
    distance_2d = math.sqrt(x * x + y * y) * ONE_DEGREE_M

    if not three_d or ele1 is None or ele2 is None or ele1 == ele2:
        return distance_2d

    return math.sqrt(distance_2d**2 + (ele1 - ele2) ** 2)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    elevation: float | None = None

    def distance_2d(self, other: Location) -> float:
        return distance(
            self.latitude, self.longitude, None, other.latitude, other.longitude, None
        )

    def distance_3d(self, other: Location) -> float:
        return distance(
            self.latitude,
            self.longitude,
            self.elevation,
            other.latitude,
            other.longitude,
            other.elevation,
            three_d=True,
        )


def elevation_angle(
    location1: Location, location2: Location, radians: bool = False
) -> float:
    """
    Angle of elevation from location1 to location2, using the 2D distance as
    the horizontal leg. Coincident points and flat pairs give 0.0.
    """
    if location1.elevation is None or location2.elevation is None:
        return 0.0

    rise = location2.elevation - location1.elevation
    if abs(rise) < _ELEVATION_EPSILON:
        return 0.0

    run = location1.distance_2d(location2)
    if run < _ELEVATION_EPSILON:
        return 0.0

    angle = math.atan(rise / run)
    return angle if radians else to_degrees(angle)


def _destination(
    latitude: float, longitude: float, distance_m: float, angle: float
) -> tuple[float, float]:
    # http://www.movable-type.co.uk/scripts/latlong.html
    angular = distance_m / EARTH_RADIUS_M
    lat_r = to_radians(latitude)
    lon_r = to_radians(longitude)
    bearing_r = to_radians(angle)

    lat = math.asin(
        math.sin(lat_r) * math.cos(angular)
        + math.cos(lat_r) * math.sin(angular) * math.cos(bearing_r)
    )
    lon = lon_r + math.atan2(
        math.sin(bearing_r) * math.sin(angular) * math.cos(lat_r),
        math.cos(angular) - math.sin(lat_r) * math.sin(lat),
    )
    return to_degrees(lat), to_degrees(lon)


@dataclass(frozen=True)
class LocationDelta:
    """Displacement toward another point: distance in meters, bearing in degrees."""

    distance: float
    angle: float

    def move(self, point) -> None:
        """Moves anything with latitude/longitude attributes along this delta, in place."""
        point.latitude, point.longitude = _destination(
            point.latitude, point.longitude, self.distance, self.angle
        )


def project(origin: Location, delta: LocationDelta) -> Location:
    latitude, longitude = _destination(
        origin.latitude, origin.longitude, delta.distance, delta.angle
    )
    return replace(origin, latitude=latitude, longitude=longitude)
