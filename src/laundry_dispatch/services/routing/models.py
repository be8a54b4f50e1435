"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ...models.domain import Hotel, Route, RouteType, Service, ServiceKind, ServiceStatus, Zone
from ..geospatial import has_usable_coordinates


@dataclass(frozen=True, slots=True)
class HotelGroup:
    """Eligible services at one hotel, split by kind and priority tier."""

    hotel: Hotel
    high_priority_deliveries: tuple[Service, ...] = ()
    high_priority_pickups: tuple[Service, ...] = ()
    normal_deliveries: tuple[Service, ...] = ()
    normal_pickups: tuple[Service, ...] = ()

    @property
    def services(self) -> tuple[Service, ...]:
        return (
            self.high_priority_deliveries
            + self.high_priority_pickups
            + self.normal_deliveries
            + self.normal_pickups
        )

    @property
    def high_priority_count(self) -> int:
        return len(self.high_priority_deliveries) + len(self.high_priority_pickups)

    @property
    def has_high_priority(self) -> bool:
        return self.high_priority_count > 0

    @property
    def bag_count(self) -> int:
        return sum(service.bag_count or 0 for service in self.services)

    @property
    def has_coordinates(self) -> bool:
        return has_usable_coordinates(self.hotel.latitude, self.hotel.longitude)


@dataclass(frozen=True, slots=True)
class PlannedStop:
    hotel: Hotel
    service_id: str
    order: int
    kind: ServiceKind
    scheduled_at: datetime
    notes: str
    high_priority: bool
    service_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ServiceClaim:
    """A state transition the assignment transaction must apply to one service."""

    service_id: str
    expected_status: ServiceStatus
    new_status: ServiceStatus
    courier_field: str


@dataclass(frozen=True, slots=True)
class RouteStats:
    total_pickups: int = 0
    total_deliveries: int = 0
    total_bags: int = 0
    total_hotels: int = 0
    total_services: int = 0
    estimated_duration_min: int = 0


@dataclass(frozen=True, slots=True)
class RoutePlan:
    """Everything needed to write one route, computed without touching storage."""

    courier_id: str
    zone: Zone
    route_type: RouteType
    route_date: datetime
    name: str
    notes: str
    stops: tuple[PlannedStop, ...]
    claims: tuple[ServiceClaim, ...]
    stats: RouteStats
    total_distance_km: float


@dataclass(slots=True)
class GeneratedRoute:
    route: Route
    stats: RouteStats
    claimed_service_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ZoneStats:
    zone: Zone
    services: int = 0
    pickups: int = 0
    deliveries: int = 0
    bags: int = 0


@dataclass(slots=True)
class ZoneResult:
    """Outcome of dispatching one zone: a committed route or a typed failure."""

    zone: Zone
    stats: ZoneStats
    generated: Optional[GeneratedRoute] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.generated is not None


@dataclass(slots=True)
class DispatchReport:
    route_date: datetime
    route_type: RouteType
    results: list[ZoneResult] = field(default_factory=list)

    @property
    def created_routes(self) -> list[GeneratedRoute]:
        return [result.generated for result in self.results if result.ok]

    @property
    def unserved_zones(self) -> list[Zone]:
        return [result.zone for result in self.results if result.error_code == "NO_COURIER_AVAILABLE"]

    @property
    def failures(self) -> list[ZoneResult]:
        return [result for result in self.results if result.error_code is not None]

    @property
    def zone_stats(self) -> list[ZoneStats]:
        return [result.stats for result in self.results]
