__version__ = "0.1.0"

from .bounds import Bounds
from .codec import (
    encode,
    new_document,
    parse,
    parse_bytes,
    parse_path,
    parse_stream,
    parse_string,
    to_xml,
)
from .errors import GPXDecodeError, GPXEncodeError, GPXError, GPXReadError
from .geo import (
    EARTH_RADIUS_M,
    ONE_DEGREE_M,
    Location,
    LocationDelta,
    bearing,
    distance,
    elevation_angle,
    haversine_distance,
    project,
    to_degrees,
    to_radians,
)
from .model import (
    Copyright,
    Document,
    Email,
    Extensions,
    Link,
    Metadata,
    Person,
    Route,
    Track,
    TrackSegment,
    Waypoint,
)

__all__ = [
    "__version__",
    "Bounds",
    "Copyright",
    "Document",
    "EARTH_RADIUS_M",
    "Email",
    "Extensions",
    "GPXDecodeError",
    "GPXEncodeError",
    "GPXError",
    "GPXReadError",
    "Link",
    "Location",
    "LocationDelta",
    "Metadata",
    "ONE_DEGREE_M",
    "Person",
    "Route",
    "Track",
    "TrackSegment",
    "Waypoint",
    "bearing",
    "distance",
    "elevation_angle",
    "encode",
    "haversine_distance",
    "new_document",
    "parse",
    "parse_bytes",
    "parse_path",
    "parse_stream",
    "parse_string",
    "project",
    "to_degrees",
    "to_radians",
    "to_xml",
]
