"""Domain models for hotels, couriers, services and routes."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Zone(str, Enum):
    NORTE = "NORTE"
    SUR = "SUR"
    CENTRO = "CENTRO"
    ESTE = "ESTE"
    OESTE = "OESTE"
    ADMINISTRACION = "ADMINISTRACION"


class Priority(str, Enum):
    HIGH = "ALTA"
    MEDIUM = "MEDIA"
    NORMAL = "NORMAL"


class ServiceStatus(str, Enum):
    PENDING_PICKUP = "PENDING_PICKUP"
    ASSIGNED_TO_ROUTE = "ASSIGNED_TO_ROUTE"
    PICKED_UP = "PICKED_UP"
    LABELED = "LABELED"
    IN_PROCESS = "IN_PROCESS"
    READY_FOR_DELIVERY = "READY_FOR_DELIVERY"
    PARTIAL_DELIVERY = "PARTIAL_DELIVERY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RouteStatus(str, Enum):
    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RouteType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    MIXED = "mixed"

    @property
    def allows_pickups(self) -> bool:
        return self in (RouteType.PICKUP, RouteType.MIXED)

    @property
    def allows_deliveries(self) -> bool:
        return self in (RouteType.DELIVERY, RouteType.MIXED)


class ServiceKind(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


VALID_STATUS_TRANSITIONS: dict[ServiceStatus, frozenset[ServiceStatus]] = {
    ServiceStatus.PENDING_PICKUP: frozenset({ServiceStatus.ASSIGNED_TO_ROUTE, ServiceStatus.CANCELLED}),
    ServiceStatus.ASSIGNED_TO_ROUTE: frozenset({ServiceStatus.PICKED_UP, ServiceStatus.CANCELLED}),
    ServiceStatus.PICKED_UP: frozenset({ServiceStatus.LABELED, ServiceStatus.IN_PROCESS, ServiceStatus.CANCELLED}),
    ServiceStatus.LABELED: frozenset(
        {ServiceStatus.IN_PROCESS, ServiceStatus.READY_FOR_DELIVERY, ServiceStatus.CANCELLED}
    ),
    ServiceStatus.IN_PROCESS: frozenset(
        {ServiceStatus.LABELED, ServiceStatus.READY_FOR_DELIVERY, ServiceStatus.CANCELLED}
    ),
    ServiceStatus.READY_FOR_DELIVERY: frozenset(
        {ServiceStatus.PARTIAL_DELIVERY, ServiceStatus.COMPLETED, ServiceStatus.CANCELLED}
    ),
    ServiceStatus.PARTIAL_DELIVERY: frozenset({ServiceStatus.COMPLETED, ServiceStatus.CANCELLED}),
    ServiceStatus.COMPLETED: frozenset(),
    ServiceStatus.CANCELLED: frozenset(),
}


def can_transition(current: ServiceStatus, target: ServiceStatus) -> bool:
    return target in VALID_STATUS_TRANSITIONS.get(current, frozenset())


@dataclass(slots=True)
class Hotel:
    """A pickup/delivery location. Coordinates may be missing."""

    id: str
    name: str
    zone: Zone
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


@dataclass(slots=True)
class Courier:
    id: str
    name: str
    zone: Zone
    active: bool = True


@dataclass(slots=True)
class Service:
    """One guest's laundry work unit at a hotel."""

    id: str
    hotel: Hotel
    guest_name: str
    room_number: str
    bag_count: int
    priority: Priority
    status: ServiceStatus
    pickup_courier_id: Optional[str] = None
    delivery_courier_id: Optional[str] = None
    estimated_pickup_at: Optional[datetime] = None
    estimated_delivery_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def kind(self) -> Optional[ServiceKind]:
        """Work kind implied by the current status, None when not routable."""
        if self.status == ServiceStatus.PENDING_PICKUP:
            return ServiceKind.PICKUP
        if self.status == ServiceStatus.IN_PROCESS:
            return ServiceKind.DELIVERY
        return None

    @property
    def is_high_priority(self) -> bool:
        return self.priority == Priority.HIGH


@dataclass(slots=True)
class RouteStop:
    id: str
    route_id: str
    hotel: Hotel
    service_id: Optional[str]
    order: int
    scheduled_at: Optional[datetime]
    notes: str
    kind: Optional[ServiceKind] = None
    service_ids: list[str] = field(default_factory=list)
    status: str = "PENDING"


@dataclass(slots=True)
class Route:
    id: str
    name: str
    date: datetime
    courier_id: str
    status: RouteStatus
    notes: str
    total_distance_km: float = 0.0
    zone: Optional[Zone] = None
    route_type: RouteType = RouteType.MIXED
    stops: list[RouteStop] = field(default_factory=list)
