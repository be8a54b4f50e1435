"""Serializers for dispatch run outputs."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from ...schemas.routing import GenerateRoutesResponse, RouteSummary


def dispatch_response_to_json(response: GenerateRoutesResponse) -> dict:
    return response.model_dump(mode="json", exclude={"output_path"})


def routes_to_csv(routes: Sequence[RouteSummary]) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "route_id",
        "route_name",
        "zone",
        "courier_id",
        "order",
        "hotel_id",
        "hotel_name",
        "kind",
        "service_id",
        "service_count",
        "scheduled_time",
        "notes",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for route in routes:
        for stop in route.stops:
            writer.writerow(
                {
                    "route_id": route.id,
                    "route_name": route.name,
                    "zone": route.zone.value if route.zone else "",
                    "courier_id": route.courier_id,
                    "order": stop.order,
                    "hotel_id": stop.hotel_id,
                    "hotel_name": stop.hotel_name,
                    "kind": stop.kind.value if stop.kind else "",
                    "service_id": stop.service_id or "",
                    "service_count": len(stop.service_ids),
                    "scheduled_time": stop.scheduled_time.isoformat() if stop.scheduled_time else "",
                    "notes": stop.notes,
                }
            )
    return buffer.getvalue()
