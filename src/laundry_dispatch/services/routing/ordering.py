"""Priority/proximity ordering of hotel groups.

Groups holding at least one high-priority service are visited first. Within
each tier, hotels with usable coordinates are chained with a nearest-neighbour
walk that starts at the highest-scoring hotel; hotels without coordinates
follow, highest score first. Ties always resolve to the earlier inserted
group, so identical input yields identical output.
"""

from __future__ import annotations

from typing import Callable, Mapping, Sequence, TypeVar

from ..geospatial import haversine_km
from .models import HotelGroup

T = TypeVar("T")

HIGH_PRIORITY_WEIGHT = 100
NORMAL_DELIVERY_WEIGHT = 10
NORMAL_PICKUP_WEIGHT = 5
BAG_WEIGHT = 2


def score_group(group: HotelGroup) -> int:
    return (
        HIGH_PRIORITY_WEIGHT * group.high_priority_count
        + NORMAL_DELIVERY_WEIGHT * len(group.normal_deliveries)
        + NORMAL_PICKUP_WEIGHT * len(group.normal_pickups)
        + BAG_WEIGHT * group.bag_count
    )


def _position(group: HotelGroup) -> tuple[float, float]:
    return group.hotel.latitude, group.hotel.longitude


def walk_from(
    start: tuple[float, float],
    items: Sequence[T],
    position: Callable[[T], tuple[float, float]],
) -> list[T]:
    """Greedy nearest-neighbour walk over ``items`` beginning at ``start``.

    Every item must have usable coordinates. Equal distances resolve to the
    earlier item.
    """
    current = start
    unvisited = list(items)
    path: list[T] = []
    while unvisited:
        nearest = min(unvisited, key=lambda candidate: haversine_km(*current, *position(candidate)))
        unvisited = [item for item in unvisited if item is not nearest]
        path.append(nearest)
        current = position(nearest)
    return path


def nearest_neighbor_walk(groups: Sequence[HotelGroup]) -> list[HotelGroup]:
    """Order groups (all with coordinates) by a greedy nearest-neighbour walk."""

    if not groups:
        return []
    # max/min return the first extreme element, which gives the insertion-order tie-break.
    first = max(groups, key=score_group)
    rest = [group for group in groups if group is not first]
    return [first] + walk_from(_position(first), rest, _position)


def _order_tier(groups: Sequence[HotelGroup]) -> list[HotelGroup]:
    with_coords = [group for group in groups if group.has_coordinates]
    without_coords = sorted(
        (group for group in groups if not group.has_coordinates),
        key=score_group,
        reverse=True,
    )
    return nearest_neighbor_walk(with_coords) + without_coords


def order_hotel_groups(groups: Mapping[str, HotelGroup]) -> list[HotelGroup]:
    """Return hotel groups in visiting order: high-priority tier first, then the rest."""

    high = [group for group in groups.values() if group.has_high_priority]
    normal = [group for group in groups.values() if not group.has_high_priority]
    return _order_tier(high) + _order_tier(normal)
