"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...db import get_session_factory
from ...persistence.tables import RouteRow, ServiceRow

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database(session_factory: sessionmaker[Session] = Depends(get_session_factory)) -> dict:
    """Check database connection and report table sizes."""
    try:
        with session_factory() as session:
            session.execute(text("SELECT 1"))
            services_count = session.execute(select(func.count()).select_from(ServiceRow)).scalar_one()
            routes_count = session.execute(select(func.count()).select_from(RouteRow)).scalar_one()
    except SQLAlchemyError as exc:
        return {
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {
        "connected": True,
        "services_count": services_count,
        "routes_count": routes_count,
        "message": f"Database connected. Found {routes_count} routes and {services_count} services.",
    }
