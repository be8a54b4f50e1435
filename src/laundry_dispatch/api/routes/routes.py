"""Route dispatch endpoints."""

from __future__ import annotations

import logging
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...db import get_session_factory
from ...errors import ConflictError, CourierInactive, CourierNotFound, HotelsWithoutCoordinates, RouteNotFound
from ...models.domain import RouteStatus, Zone
from ...schemas.routing import (
    DeleteRoutesResponse,
    GenerateCourierRouteRequest,
    GenerateCourierRouteResponse,
    GenerateRoutesRequest,
    GenerateRoutesResponse,
    OptimizeRouteRequest,
    RouteSummary,
)
from ...services.dispatch.service import dispatch_courier_route, dispatch_routes
from ...services.routing.service import (
    delete_route,
    delete_routes_by_date,
    get_route,
    list_routes,
    optimize_route,
    route_summary,
)

router = APIRouter(prefix="/routes", tags=["routes"])


def _database_unavailable(exc: SQLAlchemyError) -> HTTPException:
    logging.exception(f"Database error while handling route request: {exc}")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"code": "DATABASE_CONNECTION_ERROR", "message": "Database unavailable, try again later."},
    )


@router.post("/generate", response_model=GenerateRoutesResponse, status_code=status.HTTP_200_OK)
def generate(
    payload: GenerateRoutesRequest,
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> GenerateRoutesResponse:
    try:
        return dispatch_routes(session_factory, payload)
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc


@router.post("/generate/courier", response_model=GenerateCourierRouteResponse, status_code=status.HTTP_200_OK)
def generate_for_courier(
    payload: GenerateCourierRouteRequest,
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> GenerateCourierRouteResponse:
    try:
        return dispatch_courier_route(session_factory, payload)
    except CourierNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except CourierInactive as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except ConflictError as exc:
        logging.warning(f"Courier route for {payload.courier_id} aborted: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": exc.code, "message": exc.message, "service_ids": list(exc.service_ids)},
        ) from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc


@router.get("", response_model=List[RouteSummary], status_code=status.HTTP_200_OK)
def list_all(
    route_date: date | None = Query(default=None, alias="date", description="Filter routes by day"),
    courier_id: str | None = Query(default=None),
    zone: Zone | None = Query(default=None),
    route_status: RouteStatus | None = Query(default=None, alias="status"),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> List[RouteSummary]:
    try:
        routes = list_routes(
            session_factory,
            route_date=route_date,
            courier_id=courier_id,
            zone=zone,
            status=route_status,
        )
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc
    return [route_summary(route) for route in routes]


@router.get("/{route_id}", response_model=RouteSummary, status_code=status.HTTP_200_OK)
def get_one(
    route_id: str,
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> RouteSummary:
    try:
        return route_summary(get_route(session_factory, route_id))
    except RouteNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc


@router.post("/{route_id}/optimize", response_model=RouteSummary, status_code=status.HTTP_200_OK)
def optimize_one(
    route_id: str,
    payload: OptimizeRouteRequest,
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> RouteSummary:
    try:
        optimized = optimize_route(session_factory, route_id, payload.start_latitude, payload.start_longitude)
    except RouteNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except HotelsWithoutCoordinates as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": exc.code,
                "message": exc.message,
                "hotels": [{"id": hotel_id, "name": name} for hotel_id, name in exc.hotels],
            },
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc
    return route_summary(optimized)


@router.delete("/{route_id}", response_model=DeleteRoutesResponse, status_code=status.HTTP_200_OK)
def delete_one(
    route_id: str,
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> DeleteRoutesResponse:
    try:
        released = delete_route(session_factory, route_id)
    except RouteNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc
    return DeleteRoutesResponse(
        deleted_routes=1,
        released_services=released,
        message=f"Ruta eliminada, {released} servicio(s) liberado(s)",
    )


@router.delete("", response_model=DeleteRoutesResponse, status_code=status.HTTP_200_OK)
def delete_by_date(
    route_date: date = Query(..., alias="date", description="Delete every route of this day"),
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> DeleteRoutesResponse:
    try:
        deleted, released = delete_routes_by_date(session_factory, route_date)
    except SQLAlchemyError as exc:
        raise _database_unavailable(exc) from exc
    return DeleteRoutesResponse(
        deleted_routes=deleted,
        released_services=released,
        message=f"{deleted} ruta(s) eliminada(s), {released} servicio(s) liberado(s)",
    )
