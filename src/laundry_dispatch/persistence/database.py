"""Database persistence for services, couriers, hotels and routes.

Every store wraps a SQLAlchemy session owned by the caller; stores never
commit. Transaction boundaries belong to the routing services.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from ..errors import ConflictError
from ..models.domain import (
    Courier,
    Hotel,
    Route,
    RouteStatus,
    RouteStop,
    RouteType,
    Service,
    ServiceKind,
    ServiceStatus,
    Zone,
)
from ..timeutils import day_window, local_timezone, utc_naive
from .tables import CourierRow, HotelRow, RouteRow, RouteStopRow, ServiceRow

logger = logging.getLogger(__name__)

PICKUP_COURIER_FIELD = "pickup_courier_id"
DELIVERY_COURIER_FIELD = "delivery_courier_id"

_COURIER_COLUMNS = {
    PICKUP_COURIER_FIELD: ServiceRow.pickup_courier_id,
    DELIVERY_COURIER_FIELD: ServiceRow.delivery_courier_id,
}
_DATE_COLUMNS = {
    PICKUP_COURIER_FIELD: ServiceRow.estimated_pickup_at,
    DELIVERY_COURIER_FIELD: ServiceRow.estimated_delivery_at,
}


def _pickup_eligible(start: datetime, end: datetime):
    return and_(
        ServiceRow.status == ServiceStatus.PENDING_PICKUP.value,
        ServiceRow.pickup_courier_id.is_(None),
        ServiceRow.estimated_pickup_at >= start,
        ServiceRow.estimated_pickup_at < end,
    )


def _delivery_eligible(start: datetime, end: datetime):
    return and_(
        ServiceRow.status == ServiceStatus.IN_PROCESS.value,
        ServiceRow.delivery_courier_id.is_(None),
        ServiceRow.estimated_delivery_at >= start,
        ServiceRow.estimated_delivery_at < end,
    )


class ServiceStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, service_id: str) -> Optional[Service]:
        row = self.session.get(ServiceRow, service_id)
        return row.to_domain() if row else None

    def find_eligible(
        self,
        route_date: date,
        zone: Zone | None,
        route_type: RouteType,
        *,
        tz=None,
    ) -> list[Service]:
        """Services a route for ``route_date`` may claim, oldest first.

        Pickups are ``PENDING_PICKUP`` with no pickup courier and an estimated
        pickup inside the local day; deliveries are ``IN_PROCESS`` with no
        delivery courier and an estimated delivery inside the local day.
        """
        start, end = (utc_naive(bound) for bound in day_window(route_date, tz or local_timezone()))
        clauses = []
        if route_type.allows_pickups:
            clauses.append(_pickup_eligible(start, end))
        if route_type.allows_deliveries:
            clauses.append(_delivery_eligible(start, end))
        if not clauses:
            return []

        statement = select(ServiceRow).join(HotelRow, ServiceRow.hotel_id == HotelRow.id).where(or_(*clauses))
        if zone is not None:
            statement = statement.where(HotelRow.zone == Zone(zone).value)
        statement = statement.order_by(ServiceRow.created_at, ServiceRow.id)
        rows = self.session.execute(statement).unique().scalars().all()
        return [row.to_domain() for row in rows]

    def transition_and_assign(
        self,
        service_id: str,
        expected_status: ServiceStatus,
        new_status: ServiceStatus,
        courier_field: str,
        courier_id: str,
        window: tuple[datetime, datetime],
    ) -> Service:
        """Claim one service with a conditional update.

        The update only matches while the service is still in ``expected_status``
        with an empty courier slot and its estimated date inside ``window``;
        anything else means another transaction got there first.
        """
        courier_column = _COURIER_COLUMNS[courier_field]
        date_column = _DATE_COLUMNS[courier_field]
        start, end = (utc_naive(bound) for bound in window)
        result = self.session.execute(
            update(ServiceRow)
            .where(
                ServiceRow.id == service_id,
                ServiceRow.status == expected_status.value,
                courier_column.is_(None),
                date_column >= start,
                date_column < end,
            )
            .values({courier_field: courier_id, "status": new_status.value})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(f"Conditional claim of service {service_id} matched {result.rowcount} rows")
            raise ConflictError([service_id])
        row = self.session.get(ServiceRow, service_id, populate_existing=True)
        return row.to_domain()

    def release_claims(self, route: RouteRow) -> int:
        """Undo the claims a route still holds; services that moved on are untouched.

        Pickup stops only revert ``ASSIGNED_TO_ROUTE`` services and delivery stops
        only revert ``READY_FOR_DELIVERY`` ones, so a later claim on the same
        service by another route survives.
        """
        covered: dict[str, set[str]] = {ServiceKind.PICKUP.value: set(), ServiceKind.DELIVERY.value: set()}
        for stop in route.stops:
            if stop.kind not in covered:
                continue
            covered[stop.kind].update(stop.service_ids or [])
            if stop.service_id:
                covered[stop.kind].add(stop.service_id)

        released = 0
        if covered[ServiceKind.PICKUP.value]:
            released += self.session.execute(
                update(ServiceRow)
                .where(
                    ServiceRow.id.in_(covered[ServiceKind.PICKUP.value]),
                    ServiceRow.status == ServiceStatus.ASSIGNED_TO_ROUTE.value,
                    ServiceRow.pickup_courier_id == route.courier_id,
                )
                .values(status=ServiceStatus.PENDING_PICKUP.value, pickup_courier_id=None)
                .execution_options(synchronize_session=False)
            ).rowcount
        if covered[ServiceKind.DELIVERY.value]:
            released += self.session.execute(
                update(ServiceRow)
                .where(
                    ServiceRow.id.in_(covered[ServiceKind.DELIVERY.value]),
                    ServiceRow.status == ServiceStatus.READY_FOR_DELIVERY.value,
                    ServiceRow.delivery_courier_id == route.courier_id,
                )
                .values(status=ServiceStatus.IN_PROCESS.value, delivery_courier_id=None)
                .execution_options(synchronize_session=False)
            ).rowcount
        return released


class HotelStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, hotel_id: str) -> Optional[Hotel]:
        row = self.session.get(HotelRow, hotel_id)
        return row.to_domain() if row else None


class CourierStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, courier_id: str) -> Optional[Courier]:
        row = self.session.get(CourierRow, courier_id)
        return row.to_domain() if row else None

    def find_active_by_zone(self, zone: Zone) -> list[Courier]:
        rows = self.session.execute(
            select(CourierRow)
            .where(CourierRow.zone == Zone(zone).value, CourierRow.active.is_(True))
            .order_by(CourierRow.created_at, CourierRow.id)
        ).scalars().all()
        return [row.to_domain() for row in rows]


class RouteStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, route: Route) -> Route:
        row = RouteRow(
            id=route.id,
            name=route.name,
            date=utc_naive(route.date),
            courier_id=route.courier_id,
            zone=route.zone.value if route.zone else None,
            route_type=route.route_type.value,
            status=route.status.value,
            notes=route.notes,
            total_distance_km=route.total_distance_km,
        )
        self.session.add(row)
        self.session.flush()
        return route

    def add_stop(self, stop: RouteStop) -> RouteStop:
        self.session.add(
            RouteStopRow(
                id=stop.id,
                route_id=stop.route_id,
                hotel_id=stop.hotel.id,
                service_id=stop.service_id,
                stop_order=stop.order,
                kind=stop.kind.value if stop.kind else None,
                scheduled_time=utc_naive(stop.scheduled_at),
                status=stop.status,
                notes=stop.notes,
                service_ids=list(stop.service_ids),
            )
        )
        return stop

    def get_row(self, route_id: str) -> Optional[RouteRow]:
        return self.session.get(RouteRow, route_id)

    def get(self, route_id: str) -> Optional[Route]:
        row = self.get_row(route_id)
        return row.to_domain() if row else None

    def list_rows(
        self,
        *,
        route_date: date | None = None,
        courier_id: str | None = None,
        zone: Zone | None = None,
        status: RouteStatus | None = None,
    ) -> Sequence[RouteRow]:
        statement = select(RouteRow)
        if route_date is not None:
            day_start = datetime.combine(route_date, time.min)
            statement = statement.where(RouteRow.date >= day_start, RouteRow.date < day_start + timedelta(days=1))
        if courier_id:
            statement = statement.where(RouteRow.courier_id == courier_id)
        if zone is not None:
            statement = statement.where(RouteRow.zone == Zone(zone).value)
        if status is not None:
            statement = statement.where(RouteRow.status == RouteStatus(status).value)
        statement = statement.order_by(RouteRow.date, RouteRow.name, RouteRow.id)
        return self.session.execute(statement).scalars().all()

    def list(self, **filters) -> list[Route]:
        return [row.to_domain() for row in self.list_rows(**filters)]

    def delete(self, row: RouteRow) -> None:
        self.session.delete(row)
