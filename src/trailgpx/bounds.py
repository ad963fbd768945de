from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class Bounds:
    """
    Latitude/longitude bounding box.

    An accumulator starts from Bounds.empty(), whose extremes are inverted
    (min=+inf, max=-inf). It only describes a real box once at least one
    point or non-empty box has been merged in; check is_empty before use.
    """

    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    @classmethod
    def empty(cls) -> Bounds:
        return cls(
            min_latitude=math.inf,
            max_latitude=-math.inf,
            min_longitude=math.inf,
            max_longitude=-math.inf,
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.min_latitude > self.max_latitude
            or self.min_longitude > self.max_longitude
        )

    def extend(self, latitude: float, longitude: float) -> None:
        self.min_latitude = min(self.min_latitude, latitude)
        self.max_latitude = max(self.max_latitude, latitude)
        self.min_longitude = min(self.min_longitude, longitude)
        self.max_longitude = max(self.max_longitude, longitude)

    def merge(self, other: Bounds) -> None:
        self.min_latitude = min(self.min_latitude, other.min_latitude)
        self.max_latitude = max(self.max_latitude, other.max_latitude)
        self.min_longitude = min(self.min_longitude, other.min_longitude)
        self.max_longitude = max(self.max_longitude, other.max_longitude)

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.min_latitude <= latitude <= self.max_latitude
            and self.min_longitude <= longitude <= self.max_longitude
        )

    def __str__(self) -> str:
        return (
            f"Min: {self.min_latitude}, {self.min_longitude} "
            f"Max: {self.max_latitude}, {self.max_longitude}"
        )
