"""Partition eligible services into per-hotel groups."""

from __future__ import annotations

from typing import Iterable

from ...models.domain import Hotel, Service, ServiceKind
from .models import HotelGroup

_BUCKETS = ("high_priority_deliveries", "high_priority_pickups", "normal_deliveries", "normal_pickups")


def _bucket_for(service: Service) -> str | None:
    kind = service.kind
    if kind is None:
        return None
    if service.is_high_priority:
        return "high_priority_deliveries" if kind == ServiceKind.DELIVERY else "high_priority_pickups"
    return "normal_deliveries" if kind == ServiceKind.DELIVERY else "normal_pickups"


def group_services_by_hotel(services: Iterable[Service]) -> dict[str, HotelGroup]:
    """Group services by hotel id, keeping first-appearance order of hotels and services.

    Services whose status does not imply a pickup or a delivery are skipped.
    """
    hotels: dict[str, Hotel] = {}
    buckets: dict[str, dict[str, list[Service]]] = {}
    for service in services:
        bucket = _bucket_for(service)
        if bucket is None:
            continue
        hotel_id = service.hotel.id
        if hotel_id not in hotels:
            hotels[hotel_id] = service.hotel
            buckets[hotel_id] = {name: [] for name in _BUCKETS}
        buckets[hotel_id][bucket].append(service)

    return {
        hotel_id: HotelGroup(
            hotel=hotels[hotel_id],
            **{name: tuple(items) for name, items in buckets[hotel_id].items()},
        )
        for hotel_id in hotels
    }
