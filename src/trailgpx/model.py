from __future__ import annotations

import copy
from dataclasses import dataclass, field

from trailgpx import analysis
from trailgpx.bounds import Bounds
from trailgpx.geo import Location, LocationDelta, bearing, distance, haversine_distance

GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
GPX_SCHEMA_LOCATION = (
    "http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd"
)
GPX_VERSION = "1.1"
GPX_CREATOR = "trailgpx"


@dataclass
class Email:
    id: str
    domain: str


@dataclass
class Link:
    href: str
    text: str | None = None
    type: str | None = None


@dataclass
class Person:
    name: str | None = None
    email: Email | None = None
    link: Link | None = None


@dataclass
class Copyright:
    author: str
    year: str | None = None
    license: str | None = None


@dataclass
class Extensions:
    """Inner XML of an <extensions> element, kept as opaque text."""

    content: str = ""


@dataclass
class Metadata:
    name: str | None = None
    description: str | None = None
    author: Person | None = None
    copyright: Copyright | None = None
    links: list[Link] = field(default_factory=list)
    time: str | None = None
    keywords: str | None = None
    bounds: Bounds | None = None
    extensions: Extensions | None = None


@dataclass
class Waypoint:
    latitude: float
    longitude: float
    elevation: float | None = None
    time: str | None = None
    magnetic_variation: float | None = None
    geoid_height: float | None = None
    name: str | None = None
    comment: str | None = None
    description: str | None = None
    source: str | None = None
    links: list[Link] = field(default_factory=list)
    symbol: str | None = None
    type: str | None = None
    type_of_gps_fix: str | None = None
    satellites: int | None = None
    horizontal_dilution: float | None = None
    vertical_dilution: float | None = None
    position_dilution: float | None = None
    age_of_dgps_data: float | None = None
    dgps_id: int | None = None
    extensions: Extensions | None = None

    @property
    def location(self) -> Location:
        return Location(self.latitude, self.longitude, self.elevation)

    def length_2d(self, other: Waypoint) -> float:
        return distance(
            self.latitude, self.longitude, None, other.latitude, other.longitude, None
        )

    def length_3d(self, other: Waypoint) -> float:
        return distance(
            self.latitude,
            self.longitude,
            self.elevation,
            other.latitude,
            other.longitude,
            other.elevation,
            three_d=True,
        )

    def distance_angle(self, other: Waypoint) -> LocationDelta:
        """Delta that moves this point onto other (see move)."""
        return LocationDelta(
            distance=haversine_distance(
                self.latitude, self.longitude, other.latitude, other.longitude
            ),
            angle=bearing(self.latitude, self.longitude, other.latitude, other.longitude),
        )

    def move(self, delta: LocationDelta) -> None:
        delta.move(self)

    def remove_time(self) -> None:
        self.time = None

    def remove_elevation(self) -> None:
        self.elevation = 0.0

    def clone(self) -> Waypoint:
        return copy.deepcopy(self)

    def __str__(self) -> str:
        return f"Waypoint lat: {self.latitude} lon: {self.longitude} name: {self.name or ''}"


class _PointSequence:
    """Aggregates shared by the containers that hold points directly."""

    points: list[Waypoint]

    def bounds(self) -> Bounds:
        return analysis.points_bounds(self.points)

    def length_2d(self, haversine: bool = False) -> float:
        return analysis.path_length(self.points, haversine=haversine)

    def length_3d(self, haversine: bool = False) -> float:
        return analysis.path_length(self.points, three_d=True, haversine=haversine)

    def elevation_extremes(self) -> tuple[float, float] | None:
        return analysis.elevation_extremes(self.points)

    def uphill_downhill(self, smooth: bool = False) -> tuple[float, float]:
        return analysis.uphill_downhill(self.points, smooth=smooth)

    def remove_time(self) -> None:
        for point in self.points:
            point.remove_time()

    def remove_elevation(self) -> None:
        for point in self.points:
            point.remove_elevation()


@dataclass
class Route(_PointSequence):
    name: str | None = None
    comment: str | None = None
    description: str | None = None
    source: str | None = None
    links: list[Link] = field(default_factory=list)
    number: int | None = None
    type: str | None = None
    extensions: Extensions | None = None
    points: list[Waypoint] = field(default_factory=list)

    def __str__(self) -> str:
        return f"Name: {self.name or ''} Point Count: {len(self.points)}"


@dataclass
class TrackSegment(_PointSequence):
    points: list[Waypoint] = field(default_factory=list)
    extensions: Extensions | None = None

    def __str__(self) -> str:
        return f"Waypoints Count: {len(self.points)}"


@dataclass
class Track:
    name: str | None = None
    comment: str | None = None
    description: str | None = None
    source: str | None = None
    links: list[Link] = field(default_factory=list)
    number: int | None = None
    type: str | None = None
    extensions: Extensions | None = None
    segments: list[TrackSegment] = field(default_factory=list)

    def bounds(self) -> Bounds:
        return analysis.merge_bounds(segment.bounds() for segment in self.segments)

    def length_2d(self, haversine: bool = False) -> float:
        return analysis.total(self.segments, lambda s: s.length_2d(haversine))

    def length_3d(self, haversine: bool = False) -> float:
        return analysis.total(self.segments, lambda s: s.length_3d(haversine))

    def elevation_extremes(self) -> tuple[float, float] | None:
        return analysis.merge_extremes(
            segment.elevation_extremes() for segment in self.segments
        )

    def uphill_downhill(self, smooth: bool = False) -> tuple[float, float]:
        return analysis.merge_uphill_downhill(
            segment.uphill_downhill(smooth) for segment in self.segments
        )

    def remove_time(self) -> None:
        for segment in self.segments:
            segment.remove_time()

    def remove_elevation(self) -> None:
        for segment in self.segments:
            segment.remove_elevation()

    def __str__(self) -> str:
        return f"Name: {self.name or ''} Segment Count: {len(self.segments)}"


@dataclass
class Document:
    """
    Root of a GPX document.

    Aggregates (bounds, lengths, elevation, removal passes) walk tracks
    only; routes are measured through their own methods.
    """

    xmlns: str = GPX_NAMESPACE
    xmlns_xsi: str = XSI_NAMESPACE
    schema_location: str = GPX_SCHEMA_LOCATION
    version: str = GPX_VERSION
    creator: str = GPX_CREATOR
    # Extra prefixes declared on the root, e.g. for extension schemas.
    namespaces: dict[str, str] = field(default_factory=dict)
    metadata: Metadata | None = None
    waypoints: list[Waypoint] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    tracks: list[Track] = field(default_factory=list)
    extensions: Extensions | None = None

    def bounds(self) -> Bounds:
        return analysis.merge_bounds(track.bounds() for track in self.tracks)

    def length_2d(self, haversine: bool = False) -> float:
        return analysis.total(self.tracks, lambda t: t.length_2d(haversine))

    def length_3d(self, haversine: bool = False) -> float:
        return analysis.total(self.tracks, lambda t: t.length_3d(haversine))

    def elevation_extremes(self) -> tuple[float, float] | None:
        return analysis.merge_extremes(
            track.elevation_extremes() for track in self.tracks
        )

    def uphill_downhill(self, smooth: bool = False) -> tuple[float, float]:
        return analysis.merge_uphill_downhill(
            track.uphill_downhill(smooth) for track in self.tracks
        )

    def remove_time(self) -> None:
        for track in self.tracks:
            track.remove_time()

    def remove_elevation(self) -> None:
        for track in self.tracks:
            track.remove_elevation()

    def clone(self) -> Document:
        """Returns a copy sharing no mutable state with this document."""
        return copy.deepcopy(self)

    def to_xml(self) -> bytes:
        from trailgpx.codec import encode

        return encode(self)
