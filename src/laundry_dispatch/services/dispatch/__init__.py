"""Zone dispatch services."""

from .service import generate_route_for_courier, generate_routes

__all__ = ["generate_routes", "generate_route_for_courier"]
