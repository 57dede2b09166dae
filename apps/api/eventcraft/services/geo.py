"""Great-circle distance helpers for provider proximity search."""

import math
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres between two points given in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Clamp rounding error so asin stays in its domain
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _is_coordinate(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def distance_or_none(
    lat1: float | None, lng1: float | None, lat2: float | None, lng2: float | None
) -> float | None:
    """Distance in km, or None when any coordinate is missing or not finite."""
    if not all(_is_coordinate(v) for v in (lat1, lng1, lat2, lng2)):
        return None
    distance = haversine_km(float(lat1), float(lng1), float(lat2), float(lng2))
    if math.isnan(distance):
        return None
    return distance


def filter_and_sort_by_distance(
    items: Iterable[T],
    lat: float,
    lng: float,
    radius_km: float,
    key: Callable[[T], tuple[float | None, float | None]],
) -> list[tuple[T, float | None]]:
    """
    Apply a radius filter and order by proximity.

    ``key`` returns an item's ``(lat, lng)``. Items farther than ``radius_km``
    are dropped. Items with a known distance come first, nearest first; items
    whose distance is unknown are kept and appended in their original order.
    """
    known: list[tuple[T, float]] = []
    unknown: list[tuple[T, float | None]] = []

    for item in items:
        item_lat, item_lng = key(item)
        distance = distance_or_none(lat, lng, item_lat, item_lng)
        if distance is None:
            unknown.append((item, None))
        elif distance <= radius_km:
            known.append((item, distance))

    # sorted() is stable, so equal distances keep input order
    known.sort(key=lambda pair: pair[1])
    return [*known, *unknown]
