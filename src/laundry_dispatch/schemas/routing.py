"""Route dispatch request/response schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import RouteStatus, RouteType, ServiceKind, Zone


class GenerateRoutesRequest(BaseModel):
    date: dt.date = Field(..., description="Calendar day (local timezone) the routes are generated for.")
    zones: Optional[List[Zone]] = Field(
        default=None,
        description="Zones to dispatch. Defaults to the configured dispatch zones.",
    )
    route_type: RouteType = RouteType.MIXED
    persist: bool = Field(default=False, description="Write summary.json and stops.csv for the run.")
    requested_by: Optional[str] = Field(default=None, description="Person or system requesting the run.")


class GenerateCourierRouteRequest(BaseModel):
    courier_id: str
    date: dt.date
    zone: Optional[Zone] = Field(default=None, description="Defaults to the courier's own zone.")
    route_type: RouteType = RouteType.MIXED


class RouteStopModel(BaseModel):
    id: str
    order: int
    hotel_id: str
    hotel_name: str
    hotel_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    service_id: Optional[str] = None
    service_ids: List[str] = Field(default_factory=list)
    kind: Optional[ServiceKind] = None
    scheduled_time: Optional[dt.datetime] = None
    status: str = "PENDING"
    notes: str = ""


class RouteStatsModel(BaseModel):
    total_pickups: int = 0
    total_deliveries: int = 0
    total_bags: int = 0
    total_hotels: int = 0
    total_services: int = 0
    estimated_duration_min: int = 0


class RouteSummary(BaseModel):
    id: str
    name: str
    date: dt.datetime
    courier_id: str
    zone: Optional[Zone] = None
    status: RouteStatus
    type: RouteType = Field(..., description="pickup, delivery or mixed, derived from the stop counts.")
    notes: str = ""
    total_distance_km: float = 0.0
    stats: RouteStatsModel
    stops: List[RouteStopModel]


class ZoneStatsModel(BaseModel):
    zone: Zone
    services: int
    pickups: int
    deliveries: int
    bags: int


class ZoneFailureModel(BaseModel):
    zone: Zone
    code: str
    message: str


class GenerateRoutesResponse(BaseModel):
    date: dt.date
    route_type: RouteType
    created_routes: List[RouteSummary]
    unserved_zones: List[Zone]
    zone_stats: List[ZoneStatsModel]
    failures: List[ZoneFailureModel]
    message: str
    output_path: Optional[str] = None


class GenerateCourierRouteResponse(BaseModel):
    route: Optional[RouteSummary] = None
    message: str


class DeleteRoutesResponse(BaseModel):
    deleted_routes: int
    released_services: int
    message: str


class OptimizeRouteRequest(BaseModel):
    start_latitude: float = Field(..., ge=-90, le=90, description="Latitude the courier starts from.")
    start_longitude: float = Field(..., ge=-180, le=180, description="Longitude the courier starts from.")
