"""Route planning: grouping, ordering, stop building and the assignment transaction."""

from .grouping import group_services_by_hotel
from .ordering import order_hotel_groups, score_group
from .service import generate_route, plan_route
from .stops import build_stops

__all__ = [
    "build_stops",
    "generate_route",
    "group_services_by_hotel",
    "order_hotel_groups",
    "plan_route",
    "score_group",
]
