"""Materialise the ordered stop sequence of a route."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

import pytz

from ...config import settings
from ...models.domain import RouteType, Service, ServiceKind
from ...timeutils import localize
from .models import HotelGroup, PlannedStop

KIND_LABELS = {
    ServiceKind.PICKUP: "Recogida",
    ServiceKind.DELIVERY: "Entrega",
}


def hotel_duration_minutes(services: Iterable[Service]) -> int:
    """Estimated minutes spent at one hotel: a base visit plus per-service and per-bag time."""

    total = settings.base_hotel_minutes
    for service in services:
        total += settings.base_service_minutes + (service.bag_count or 0) * settings.minutes_per_bag
    return total


def hotel_arrival_times(
    groups: Sequence[HotelGroup],
    route_date: date,
    tz: pytz.BaseTzInfo | None = None,
) -> list[datetime]:
    """Scheduled arrival at each hotel, in visiting order.

    The first hotel is reached at the route start hour. Every later hotel adds
    the visit time of all previous hotels plus a fixed travel leg for each
    previous hotel after the first.
    """
    start = localize(route_date, time(hour=settings.route_start_hour), tz)
    arrivals: list[datetime] = []
    elapsed = 0
    for index, group in enumerate(groups):
        arrivals.append(start + timedelta(minutes=elapsed))
        elapsed += hotel_duration_minutes(group.services)
        if index > 0:
            elapsed += settings.travel_minutes_between_hotels
    return arrivals


def route_duration_minutes(groups: Sequence[HotelGroup]) -> int:
    total = sum(hotel_duration_minutes(group.services) for group in groups)
    return total + settings.travel_minutes_between_hotels * max(0, len(groups) - 1)


def _individual_note(service: Service, kind: ServiceKind) -> str:
    return f"{KIND_LABELS[kind]} - {service.guest_name} - Hab. {service.room_number} | HIGH PRIORITY"


def _grouped_note(services: Sequence[Service], kind: ServiceKind) -> str:
    bags = sum(service.bag_count or 0 for service in services)
    return f"{KIND_LABELS[kind]} - {len(services)} servicio(s) | {bags} bolsa(s)"


def build_stops(
    groups: Sequence[HotelGroup],
    route_type: RouteType,
    route_date: date,
    tz: pytz.BaseTzInfo | None = None,
) -> list[PlannedStop]:
    """Build stops in two passes over the ordered groups.

    Pass one emits a stop per high-priority service (deliveries before pickups
    at each hotel). Pass two emits at most one grouped stop per kind per hotel
    for the normal-priority services, referencing the first of them.
    """
    arrivals = hotel_arrival_times(groups, route_date, tz)
    stops: list[PlannedStop] = []

    def emit(group_index: int, service_id: str, kind: ServiceKind, notes: str, high: bool, covered) -> None:
        group = groups[group_index]
        stops.append(
            PlannedStop(
                hotel=group.hotel,
                service_id=service_id,
                order=len(stops) + 1,
                kind=kind,
                scheduled_at=arrivals[group_index],
                notes=notes,
                high_priority=high,
                service_ids=tuple(service.id for service in covered),
            )
        )

    for index, group in enumerate(groups):
        if route_type.allows_deliveries:
            for service in group.high_priority_deliveries:
                emit(index, service.id, ServiceKind.DELIVERY, _individual_note(service, ServiceKind.DELIVERY), True, [service])
        if route_type.allows_pickups:
            for service in group.high_priority_pickups:
                emit(index, service.id, ServiceKind.PICKUP, _individual_note(service, ServiceKind.PICKUP), True, [service])

    for index, group in enumerate(groups):
        if route_type.allows_deliveries and group.normal_deliveries:
            services = group.normal_deliveries
            emit(index, services[0].id, ServiceKind.DELIVERY, _grouped_note(services, ServiceKind.DELIVERY), False, services)
        if route_type.allows_pickups and group.normal_pickups:
            services = group.normal_pickups
            emit(index, services[0].id, ServiceKind.PICKUP, _grouped_note(services, ServiceKind.PICKUP), False, services)

    return stops
