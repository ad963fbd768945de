from __future__ import annotations

from functools import reduce
from typing import TYPE_CHECKING, Callable, Iterable, Sequence, TypeVar

from trailgpx.bounds import Bounds
from trailgpx.geo import distance

if TYPE_CHECKING:
    from trailgpx.model import Waypoint

T = TypeVar("T")

Extremes = tuple[float, float]

# Weights of the previous/current/next sample in the smoothed elevation series.
_SMOOTHING_WEIGHTS = (0.3, 0.4, 0.3)


def total(children: Iterable[T], measure: Callable[[T], float]) -> float:
    return sum((measure(child) for child in children), 0.0)


def pairwise_sum(
    points: Sequence[Waypoint], measure: Callable[[Waypoint, Waypoint], float]
) -> float:
    """
    Sums measure(points[i], points[i - 1]) for every consecutive pair.
    Fewer than two points yield 0.0.
    """
    return sum(
        (measure(points[idx], points[idx - 1]) for idx in range(1, len(points))),
        0.0,
    )


def path_length(
    points: Sequence[Waypoint], three_d: bool = False, haversine: bool = False
) -> float:
    def step(current: Waypoint, previous: Waypoint) -> float:
        return distance(
            current.latitude,
            current.longitude,
            current.elevation if three_d else None,
            previous.latitude,
            previous.longitude,
            previous.elevation if three_d else None,
            three_d=three_d,
            haversine=haversine,
        )

    return pairwise_sum(points, step)


def points_bounds(points: Iterable[Waypoint]) -> Bounds:
    def step(acc: Bounds, point: Waypoint) -> Bounds:
        acc.extend(point.latitude, point.longitude)
        return acc

    return reduce(step, points, Bounds.empty())


def merge_bounds(children: Iterable[Bounds]) -> Bounds:
    """Merges child boxes into a fresh accumulator. No children gives the empty sentinel."""

    def step(acc: Bounds, child: Bounds) -> Bounds:
        acc.merge(child)
        return acc

    return reduce(step, children, Bounds.empty())


def merge_extremes(pairs: Iterable[Extremes | None]) -> Extremes | None:
    """
    Folds (min, max) pairs into one, seeded from the first present pair.
    Returns None when no pair is present.
    """
    known = [pair for pair in pairs if pair is not None]
    if not known:
        return None

    def step(acc: Extremes, pair: Extremes) -> Extremes:
        return min(acc[0], pair[0]), max(acc[1], pair[1])

    return reduce(step, known[1:], known[0])


def elevation_extremes(points: Iterable[Waypoint]) -> Extremes | None:
    return merge_extremes(
        (point.elevation, point.elevation)
        for point in points
        if point.elevation is not None
    )


def smooth_elevations(elevations: Sequence[float | None]) -> list[float | None]:
    """Weighted moving average over each sample and its two neighbours."""
    size = len(elevations)
    smoothed: list[float | None] = []
    for idx, current in enumerate(elevations):
        if current is None or idx == 0 or idx == size - 1:
            smoothed.append(current)
            continue
        previous = elevations[idx - 1]
        following = elevations[idx + 1]
        if previous is None or following is None:
            smoothed.append(current)
            continue
        w_prev, w_curr, w_next = _SMOOTHING_WEIGHTS
        smoothed.append(previous * w_prev + current * w_curr + following * w_next)
    return smoothed


def uphill_downhill(
    points: Sequence[Waypoint], smooth: bool = False
) -> tuple[float, float]:
    """
    Total ascent and descent in meters over consecutive known elevations.
    Points without an elevation are skipped.
    """
    elevations: Sequence[float | None] = [point.elevation for point in points]
    if smooth:
        elevations = smooth_elevations(elevations)

    uphill = 0.0
    downhill = 0.0
    previous: float | None = None
    for elevation in elevations:
        if elevation is None:
            continue
        if previous is not None:
            delta = elevation - previous
            if delta > 0:
                uphill += delta
            else:
                downhill -= delta
        previous = elevation
    return uphill, downhill


def merge_uphill_downhill(pairs: Iterable[tuple[float, float]]) -> tuple[float, float]:
    uphill = 0.0
    downhill = 0.0
    for up, down in pairs:
        uphill += up
        downhill += down
    return uphill, downhill
