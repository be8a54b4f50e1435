"""Zone-by-zone dispatch of daily routes."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Sequence

import pytz
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...config import settings
from ...errors import CourierInactive, CourierNotFound, DispatchError, NoCourierAvailable
from ...models.domain import RouteType, Service, ServiceKind, Zone
from ...persistence.database import CourierStore, ServiceStore
from ...persistence.filesystem import FileStorage
from ...schemas.routing import (
    GenerateCourierRouteRequest,
    GenerateCourierRouteResponse,
    GenerateRoutesRequest,
    GenerateRoutesResponse,
    ZoneFailureModel,
    ZoneStatsModel,
)
from ...timeutils import local_timezone, normalize_route_date
from ..outputs.routing_formatter import dispatch_response_to_json, routes_to_csv
from ..routing.models import DispatchReport, GeneratedRoute, ZoneResult, ZoneStats
from ..routing.service import generate_route, route_summary

logger = logging.getLogger(__name__)

UNEXPECTED_FAILURE = "ROUTE_GENERATION_FAILED"


def default_zones() -> list[Zone]:
    return [Zone(zone) for zone in settings.default_zones]


def zone_stats(zone: Zone, services: Sequence[Service]) -> ZoneStats:
    return ZoneStats(
        zone=zone,
        services=len(services),
        pickups=sum(1 for service in services if service.kind == ServiceKind.PICKUP),
        deliveries=sum(1 for service in services if service.kind == ServiceKind.DELIVERY),
        bags=sum(service.bag_count or 0 for service in services),
    )


def dispatch_zone(
    session_factory: sessionmaker[Session],
    zone: Zone,
    route_date: date,
    route_type: RouteType,
    tz: pytz.BaseTzInfo,
) -> ZoneResult:
    """Generate the route of one zone and report the outcome instead of raising.

    Storage errors are not recovered here; they propagate to the caller.
    """
    with session_factory() as session:
        services = ServiceStore(session).find_eligible(route_date, zone, route_type, tz=tz)
        couriers = CourierStore(session).find_active_by_zone(zone) if services else []
    stats = zone_stats(zone, services)

    if not services:
        logger.info(f"Zone {zone.value}: no eligible services for {route_date.isoformat()}")
        return ZoneResult(zone=zone, stats=stats)

    try:
        if not couriers:
            raise NoCourierAvailable(zone.value)
        courier = couriers[0]
        generated = generate_route(session_factory, courier.id, route_date, zone, services, route_type, tz=tz)
    except DispatchError as exc:
        logger.warning(f"Zone {zone.value}: {exc.code} {exc.message}")
        return ZoneResult(zone=zone, stats=stats, error_code=exc.code, error_message=exc.message)
    except SQLAlchemyError:
        raise
    except Exception as exc:
        logger.exception(f"Zone {zone.value}: unexpected failure generating route")
        return ZoneResult(zone=zone, stats=stats, error_code=UNEXPECTED_FAILURE, error_message=str(exc))

    logger.info(f"Zone {zone.value}: route generated for courier {courier.id} with {stats.services} services")
    return ZoneResult(zone=zone, stats=stats, generated=generated)


def generate_routes(
    session_factory: sessionmaker[Session],
    route_date: date,
    zones: Iterable[Zone] | None = None,
    route_type: RouteType = RouteType.MIXED,
    *,
    tz: pytz.BaseTzInfo | None = None,
) -> DispatchReport:
    """Dispatch every requested zone independently; one zone's failure never undoes another's route."""

    tz = tz or local_timezone()
    report = DispatchReport(route_date=normalize_route_date(route_date), route_type=route_type)
    for zone in zones or default_zones():
        report.results.append(dispatch_zone(session_factory, Zone(zone), route_date, route_type, tz))
    logger.info(
        f"Dispatch for {route_date.isoformat()}: {len(report.created_routes)} route(s) created, "
        f"{len(report.unserved_zones)} zone(s) unserved, {len(report.failures)} failure(s)"
    )
    return report


def generate_route_for_courier(
    session_factory: sessionmaker[Session],
    courier_id: str,
    route_date: date,
    zone: Zone | None = None,
    route_type: RouteType = RouteType.MIXED,
    *,
    tz: pytz.BaseTzInfo | None = None,
) -> GeneratedRoute | None:
    tz = tz or local_timezone()
    with session_factory() as session:
        courier = CourierStore(session).get(courier_id)
        if courier is None:
            raise CourierNotFound(courier_id)
        if not courier.active:
            raise CourierInactive(courier_id)
        zone = Zone(zone) if zone else courier.zone
        services = ServiceStore(session).find_eligible(route_date, zone, route_type, tz=tz)
    if not services:
        logger.info(f"Courier {courier_id}: no eligible services in {zone.value} for {route_date.isoformat()}")
        return None
    return generate_route(session_factory, courier_id, route_date, zone, services, route_type, tz=tz)


def _report_message(report: DispatchReport, route_date: date) -> str:
    created = len(report.created_routes)
    if created:
        return f"{created} ruta(s) generada(s) para {route_date.strftime('%d/%m/%Y')}"
    if report.failures:
        return f"No se generaron rutas para {route_date.strftime('%d/%m/%Y')}; revise las zonas con errores"
    return f"No hay servicios pendientes para {route_date.strftime('%d/%m/%Y')}"


def dispatch_routes(session_factory: sessionmaker[Session], payload: GenerateRoutesRequest) -> GenerateRoutesResponse:
    report = generate_routes(session_factory, payload.date, payload.zones, payload.route_type)
    routes = [route_summary(generated) for generated in report.created_routes]
    response = GenerateRoutesResponse(
        date=payload.date,
        route_type=payload.route_type,
        created_routes=routes,
        unserved_zones=report.unserved_zones,
        zone_stats=[
            ZoneStatsModel(
                zone=stats.zone,
                services=stats.services,
                pickups=stats.pickups,
                deliveries=stats.deliveries,
                bags=stats.bags,
            )
            for stats in report.zone_stats
        ],
        failures=[
            ZoneFailureModel(zone=result.zone, code=result.error_code, message=result.error_message or "")
            for result in report.failures
        ],
        message=_report_message(report, payload.date),
    )

    if payload.persist:
        storage = FileStorage()
        run_dir = storage.make_run_directory(payload.date)
        summary = dispatch_response_to_json(response)
        if payload.requested_by:
            summary["requested_by"] = payload.requested_by
        storage.write_json(run_dir / "summary.json", summary)
        storage.write_csv(run_dir / "stops.csv", routes_to_csv(routes))
        response.output_path = str(run_dir)
        logger.info(f"Dispatch outputs written to {run_dir}")
    return response


def dispatch_courier_route(
    session_factory: sessionmaker[Session], payload: GenerateCourierRouteRequest
) -> GenerateCourierRouteResponse:
    generated = generate_route_for_courier(
        session_factory, payload.courier_id, payload.date, payload.zone, payload.route_type
    )
    if generated is None:
        return GenerateCourierRouteResponse(
            route=None,
            message=f"No hay servicios pendientes para {payload.date.strftime('%d/%m/%Y')}",
        )
    return GenerateCourierRouteResponse(
        route=route_summary(generated),
        message=f"Ruta generada con {generated.stats.total_services} servicio(s)",
    )
