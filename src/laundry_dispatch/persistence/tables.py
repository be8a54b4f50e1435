"""SQLAlchemy table definitions for hotels, couriers, services and routes.

Timestamps are stored as naive UTC.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from ..models.domain import (
    Courier,
    Hotel,
    Priority,
    Route,
    RouteStatus,
    RouteStop,
    RouteType,
    Service,
    ServiceKind,
    ServiceStatus,
    Zone,
)
from ..timeutils import as_utc

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class HotelRow(Base):
    __tablename__ = "hotels"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    zone = Column(String(32), nullable=False, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(String(500), nullable=True)

    def to_domain(self) -> Hotel:
        return Hotel(
            id=self.id,
            name=self.name,
            zone=Zone(self.zone),
            latitude=self.latitude,
            longitude=self.longitude,
            address=self.address,
        )


class CourierRow(Base):
    __tablename__ = "couriers"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    zone = Column(String(32), nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    def to_domain(self) -> Courier:
        return Courier(id=self.id, name=self.name, zone=Zone(self.zone), active=bool(self.active))


class ServiceRow(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=new_id)
    hotel_id = Column(String(36), ForeignKey("hotels.id"), nullable=False, index=True)
    guest_name = Column(String(200), nullable=False)
    room_number = Column(String(32), nullable=False)
    bag_count = Column(Integer, nullable=False, default=1)
    priority = Column(String(16), nullable=False, default=Priority.NORMAL.value)
    status = Column(String(32), nullable=False, default=ServiceStatus.PENDING_PICKUP.value)
    pickup_courier_id = Column(String(36), ForeignKey("couriers.id"), nullable=True)
    delivery_courier_id = Column(String(36), ForeignKey("couriers.id"), nullable=True)
    estimated_pickup_at = Column(DateTime, nullable=True)
    estimated_delivery_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    hotel = relationship("HotelRow", lazy="joined")

    __table_args__ = (
        Index("idx_services_status_pickup", "status", "estimated_pickup_at"),
        Index("idx_services_status_delivery", "status", "estimated_delivery_at"),
    )

    def to_domain(self) -> Service:
        return Service(
            id=self.id,
            hotel=self.hotel.to_domain(),
            guest_name=self.guest_name,
            room_number=self.room_number,
            bag_count=self.bag_count or 0,
            priority=Priority(self.priority),
            status=ServiceStatus(self.status),
            pickup_courier_id=self.pickup_courier_id,
            delivery_courier_id=self.delivery_courier_id,
            estimated_pickup_at=as_utc(self.estimated_pickup_at),
            estimated_delivery_at=as_utc(self.estimated_delivery_at),
            created_at=as_utc(self.created_at),
        )


class RouteRow(Base):
    __tablename__ = "routes"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    date = Column(DateTime, nullable=False)
    courier_id = Column(String(36), ForeignKey("couriers.id"), nullable=False)
    zone = Column(String(32), nullable=True)
    route_type = Column(String(16), nullable=False, default=RouteType.MIXED.value)
    status = Column(String(16), nullable=False, default=RouteStatus.PLANNED.value)
    notes = Column(Text, nullable=True)
    total_distance_km = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    stops = relationship(
        "RouteStopRow",
        back_populates="route",
        cascade="all, delete-orphan",
        order_by="RouteStopRow.stop_order",
    )

    __table_args__ = (
        Index("idx_routes_date", "date"),
        Index("idx_routes_courier", "courier_id"),
    )

    def to_domain(self) -> Route:
        return Route(
            id=self.id,
            name=self.name,
            date=as_utc(self.date),
            courier_id=self.courier_id,
            status=RouteStatus(self.status),
            notes=self.notes or "",
            total_distance_km=self.total_distance_km or 0.0,
            zone=Zone(self.zone) if self.zone else None,
            route_type=RouteType(self.route_type),
            stops=[stop.to_domain() for stop in sorted(self.stops, key=lambda stop: stop.stop_order)],
        )


class RouteStopRow(Base):
    __tablename__ = "route_stops"

    id = Column(String(36), primary_key=True, default=new_id)
    route_id = Column(String(36), ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True)
    hotel_id = Column(String(36), ForeignKey("hotels.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=True)
    stop_order = Column(Integer, nullable=False)
    kind = Column(String(16), nullable=True)
    scheduled_time = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False, default="PENDING")
    notes = Column(Text, nullable=True)
    service_ids = Column(JSON, nullable=False, default=list)

    route = relationship("RouteRow", back_populates="stops")
    hotel = relationship("HotelRow", lazy="joined")

    __table_args__ = (UniqueConstraint("route_id", "stop_order", name="uq_route_stop_order"),)

    def to_domain(self) -> RouteStop:
        return RouteStop(
            id=self.id,
            route_id=self.route_id,
            hotel=self.hotel.to_domain(),
            service_id=self.service_id,
            order=self.stop_order,
            scheduled_at=as_utc(self.scheduled_time),
            notes=self.notes or "",
            kind=ServiceKind(self.kind) if self.kind else None,
            service_ids=list(self.service_ids or []),
            status=self.status,
        )
