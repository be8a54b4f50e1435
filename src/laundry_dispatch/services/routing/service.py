"""Route planning and the assignment transaction that persists a route."""

from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

import pytz
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ...config import settings
from ...errors import HotelsWithoutCoordinates, RouteNotFound
from ...models.domain import (
    Route,
    RouteStatus,
    RouteStop,
    RouteType,
    Service,
    ServiceKind,
    ServiceStatus,
    Zone,
    can_transition,
)
from ...persistence.database import (
    DELIVERY_COURIER_FIELD,
    PICKUP_COURIER_FIELD,
    RouteStore,
    ServiceStore,
)
from ...persistence.tables import RouteRow, ServiceRow, new_id
from ...schemas.routing import RouteStatsModel, RouteStopModel, RouteSummary
from ...timeutils import day_window, local_timezone, normalize_route_date
from ..geospatial import has_usable_coordinates, haversine_km
from .grouping import group_services_by_hotel
from .models import GeneratedRoute, HotelGroup, PlannedStop, RoutePlan, RouteStats, ServiceClaim
from .ordering import order_hotel_groups, walk_from
from .stops import build_stops, hotel_duration_minutes, route_duration_minutes

logger = logging.getLogger(__name__)

ROUTE_TYPE_LABELS = {
    RouteType.PICKUP: "Recogida",
    RouteType.DELIVERY: "Entrega",
    RouteType.MIXED: "Mixta",
}

_CLAIMS = {
    ServiceKind.PICKUP: (ServiceStatus.PENDING_PICKUP, ServiceStatus.ASSIGNED_TO_ROUTE, PICKUP_COURIER_FIELD),
    ServiceKind.DELIVERY: (ServiceStatus.IN_PROCESS, ServiceStatus.READY_FOR_DELIVERY, DELIVERY_COURIER_FIELD),
}


def _allowed(service: Service, route_type: RouteType) -> bool:
    if service.kind == ServiceKind.PICKUP:
        return route_type.allows_pickups
    if service.kind == ServiceKind.DELIVERY:
        return route_type.allows_deliveries
    return False


def claim_for(service: Service) -> ServiceClaim:
    expected, new, courier_field = _CLAIMS[service.kind]
    if not can_transition(expected, new):
        raise ValueError(f"Status transition {expected.value} -> {new.value} is not allowed.")
    return ServiceClaim(
        service_id=service.id,
        expected_status=expected,
        new_status=new,
        courier_field=courier_field,
    )


def summary_type(pickups: int, deliveries: int) -> RouteType:
    if pickups and not deliveries:
        return RouteType.PICKUP
    if deliveries and not pickups:
        return RouteType.DELIVERY
    return RouteType.MIXED


def route_name(zone: Zone, route_type: RouteType, route_date: date) -> str:
    return f"Ruta {Zone(zone).value} - {ROUTE_TYPE_LABELS[route_type]} {route_date.strftime('%d/%m/%Y')}"


def route_notes(zone: Zone, stats: RouteStats) -> str:
    return (
        f"Zona: {Zone(zone).value} | {stats.total_hotels} hotel(es) | "
        f"{stats.total_services} servicio(s) | {stats.total_bags} bolsa(s)"
    )


def total_distance_km(stops: Sequence[PlannedStop | RouteStop]) -> float:
    """Sum the haversine legs between consecutive stops whose hotels both have coordinates."""

    total = 0.0
    for previous, current in zip(stops, stops[1:]):
        a, b = previous.hotel, current.hotel
        if has_usable_coordinates(a.latitude, a.longitude) and has_usable_coordinates(b.latitude, b.longitude):
            total += haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)
    return round(total, 3)


def _stats(groups: Sequence[HotelGroup]) -> RouteStats:
    services = [service for group in groups for service in group.services]
    return RouteStats(
        total_pickups=sum(1 for service in services if service.kind == ServiceKind.PICKUP),
        total_deliveries=sum(1 for service in services if service.kind == ServiceKind.DELIVERY),
        total_bags=sum(service.bag_count or 0 for service in services),
        total_hotels=len(groups),
        total_services=len(services),
        estimated_duration_min=route_duration_minutes(groups),
    )


def plan_route(
    courier_id: str,
    route_date: date,
    zone: Zone,
    services: Sequence[Service],
    route_type: RouteType = RouteType.MIXED,
    *,
    tz: pytz.BaseTzInfo | None = None,
) -> RoutePlan | None:
    """Group, order and materialise stops for ``services`` without touching storage.

    Returns ``None`` when none of the services can be served by ``route_type``.
    """
    eligible = [service for service in services if _allowed(service, route_type)]
    groups = order_hotel_groups(group_services_by_hotel(eligible))
    if not groups:
        return None

    stops = build_stops(groups, route_type, route_date, tz or local_timezone())
    by_id = {service.id: service for service in eligible}
    claims = tuple(claim_for(by_id[service_id]) for stop in stops for service_id in stop.service_ids)
    stats = _stats(groups)
    return RoutePlan(
        courier_id=courier_id,
        zone=Zone(zone),
        route_type=route_type,
        route_date=normalize_route_date(route_date),
        name=route_name(zone, route_type, route_date),
        notes=route_notes(zone, stats),
        stops=tuple(stops),
        claims=claims,
        stats=stats,
        total_distance_km=total_distance_km(stops),
    )


def generate_route(
    session_factory: sessionmaker[Session],
    courier_id: str,
    route_date: date,
    zone: Zone,
    services: Sequence[Service],
    route_type: RouteType = RouteType.MIXED,
    *,
    tz: pytz.BaseTzInfo | None = None,
) -> GeneratedRoute | None:
    """Plan a route and write it together with every service claim in one transaction.

    Each claim is a conditional update; if any of them no longer matches, a
    ``ConflictError`` propagates and the transaction rolls back, leaving no
    route, no stops and no service changes behind.
    """
    tz = tz or local_timezone()
    plan = plan_route(courier_id, route_date, zone, services, route_type, tz=tz)
    if plan is None:
        return None

    window = day_window(route_date, tz)
    route = Route(
        id=new_id(),
        name=plan.name,
        date=plan.route_date,
        courier_id=courier_id,
        status=RouteStatus.PLANNED,
        notes=plan.notes,
        total_distance_km=plan.total_distance_km,
        zone=plan.zone,
        route_type=route_type,
    )
    with session_factory.begin() as session:
        routes = RouteStore(session)
        service_store = ServiceStore(session)
        routes.create(route)
        for planned in plan.stops:
            stop = RouteStop(
                id=new_id(),
                route_id=route.id,
                hotel=planned.hotel,
                service_id=planned.service_id,
                order=planned.order,
                scheduled_at=planned.scheduled_at,
                notes=planned.notes,
                kind=planned.kind,
                service_ids=list(planned.service_ids),
            )
            routes.add_stop(stop)
            route.stops.append(stop)
        for claim in plan.claims:
            service_store.transition_and_assign(
                claim.service_id,
                claim.expected_status,
                claim.new_status,
                claim.courier_field,
                courier_id,
                window,
            )

    logger.info(
        f"Route {route.id} '{route.name}' committed for courier {courier_id}: "
        f"{len(route.stops)} stops, {plan.stats.total_services} services"
    )
    return GeneratedRoute(
        route=route,
        stats=plan.stats,
        claimed_service_ids=[claim.service_id for claim in plan.claims],
    )


def _stored_route(session: Session, row: RouteRow) -> GeneratedRoute:
    route = row.to_domain()
    service_ids = [service_id for stop in route.stops for service_id in stop.service_ids]
    services = {}
    if service_ids:
        rows = session.execute(select(ServiceRow).where(ServiceRow.id.in_(service_ids))).unique().scalars()
        services = {service.id: service.to_domain() for service in rows}

    by_hotel: dict[str, list[Service]] = {}
    for stop in route.stops:
        bucket = by_hotel.setdefault(stop.hotel.id, [])
        bucket.extend(services[service_id] for service_id in stop.service_ids if service_id in services)

    def count(kind: ServiceKind) -> int:
        return sum(len(stop.service_ids) for stop in route.stops if stop.kind == kind)

    duration = sum(hotel_duration_minutes(items) for items in by_hotel.values())
    duration += settings.travel_minutes_between_hotels * max(0, len(by_hotel) - 1)
    stats = RouteStats(
        total_pickups=count(ServiceKind.PICKUP),
        total_deliveries=count(ServiceKind.DELIVERY),
        total_bags=sum(service.bag_count or 0 for service in services.values()),
        total_hotels=len(by_hotel),
        total_services=len(set(service_ids)),
        estimated_duration_min=duration,
    )
    return GeneratedRoute(route=route, stats=stats, claimed_service_ids=service_ids)


def list_routes(
    session_factory: sessionmaker[Session],
    *,
    route_date: date | None = None,
    courier_id: str | None = None,
    zone: Zone | None = None,
    status: RouteStatus | None = None,
) -> list[GeneratedRoute]:
    with session_factory() as session:
        rows = RouteStore(session).list_rows(route_date=route_date, courier_id=courier_id, zone=zone, status=status)
        return [_stored_route(session, row) for row in rows]


def get_route(session_factory: sessionmaker[Session], route_id: str) -> GeneratedRoute:
    with session_factory() as session:
        row = RouteStore(session).get_row(route_id)
        if row is None:
            raise RouteNotFound(route_id)
        return _stored_route(session, row)


def delete_route(session_factory: sessionmaker[Session], route_id: str) -> int:
    """Delete a route with its stops and hand back the claims it still holds.

    Returns the number of services released.
    """
    with session_factory.begin() as session:
        routes = RouteStore(session)
        row = routes.get_row(route_id)
        if row is None:
            raise RouteNotFound(route_id)
        released = ServiceStore(session).release_claims(row)
        routes.delete(row)
    logger.info(f"Deleted route {route_id}, released {released} service(s)")
    return released


def delete_routes_by_date(session_factory: sessionmaker[Session], route_date: date) -> tuple[int, int]:
    """Delete every route of ``route_date``; returns (routes deleted, services released)."""

    with session_factory.begin() as session:
        routes = RouteStore(session)
        service_store = ServiceStore(session)
        rows = list(routes.list_rows(route_date=route_date))
        released = 0
        for row in rows:
            released += service_store.release_claims(row)
            routes.delete(row)
    logger.info(f"Deleted {len(rows)} route(s) for {route_date.isoformat()}, released {released} service(s)")
    return len(rows), released


def optimize_route(
    session_factory: sessionmaker[Session],
    route_id: str,
    start_lat: float,
    start_lon: float,
) -> GeneratedRoute:
    """Re-sequence a stored route's stops by proximity from a starting point.

    Stops are visited nearest-first from ``(start_lat, start_lon)``, orders are
    rewritten as 1..N and the route distance is recomputed. Scheduled times
    are left as generated.
    """
    if not has_usable_coordinates(start_lat, start_lon):
        raise ValueError("Start coordinates must be valid latitude and longitude values.")

    with session_factory.begin() as session:
        row = RouteStore(session).get_row(route_id)
        if row is None:
            raise RouteNotFound(route_id)
        missing = {
            stop.hotel.id: stop.hotel.name
            for stop in row.stops
            if not has_usable_coordinates(stop.hotel.latitude, stop.hotel.longitude)
        }
        if missing:
            raise HotelsWithoutCoordinates(list(missing.items()))

        current = sorted(row.stops, key=lambda stop: stop.stop_order)
        ordered = walk_from(
            (start_lat, start_lon),
            current,
            lambda stop: (stop.hotel.latitude, stop.hotel.longitude),
        )
        # uq_route_stop_order holds after each flush: park every stop on a negative slot first
        for index, stop in enumerate(ordered, start=1):
            stop.stop_order = -index
        session.flush()
        for index, stop in enumerate(ordered, start=1):
            stop.stop_order = index
        session.flush()

        row.total_distance_km = total_distance_km(row.to_domain().stops)
        optimized = _stored_route(session, row)

    logger.info(f"Optimized route {route_id}: {len(ordered)} stops, {row.total_distance_km} km")
    return optimized


def route_summary(generated: GeneratedRoute) -> RouteSummary:
    route, stats = generated.route, generated.stats
    return RouteSummary(
        id=route.id,
        name=route.name,
        date=route.date,
        courier_id=route.courier_id,
        zone=route.zone,
        status=route.status,
        type=summary_type(stats.total_pickups, stats.total_deliveries),
        notes=route.notes,
        total_distance_km=route.total_distance_km,
        stats=RouteStatsModel(
            total_pickups=stats.total_pickups,
            total_deliveries=stats.total_deliveries,
            total_bags=stats.total_bags,
            total_hotels=stats.total_hotels,
            total_services=stats.total_services,
            estimated_duration_min=stats.estimated_duration_min,
        ),
        stops=[
            RouteStopModel(
                id=stop.id,
                order=stop.order,
                hotel_id=stop.hotel.id,
                hotel_name=stop.hotel.name,
                hotel_address=stop.hotel.address,
                latitude=stop.hotel.latitude,
                longitude=stop.hotel.longitude,
                service_id=stop.service_id,
                service_ids=list(stop.service_ids),
                kind=stop.kind,
                scheduled_time=stop.scheduled_at,
                status=stop.status,
                notes=stop.notes,
            )
            for stop in route.stops
        ],
    )
