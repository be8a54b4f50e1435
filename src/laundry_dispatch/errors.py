"""Typed errors raised by the dispatch engine."""

from __future__ import annotations

from typing import Sequence


class DispatchError(Exception):
    """Base class for recoverable dispatch failures."""

    code = "DISPATCH_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConflictError(DispatchError):
    """A service was claimed by another transaction between read and write."""

    code = "SERVICE_CONFLICT"

    def __init__(self, service_ids: Sequence[str], message: str | None = None) -> None:
        self.service_ids = tuple(service_ids)
        super().__init__(
            message
            or f"Service(s) {', '.join(self.service_ids)} were claimed concurrently; route not generated, retry."
        )


class NoCourierAvailable(DispatchError):
    code = "NO_COURIER_AVAILABLE"

    def __init__(self, zone: str) -> None:
        self.zone = zone
        super().__init__(f"No active courier available for zone {zone}.")


class CourierNotFound(DispatchError):
    code = "COURIER_NOT_FOUND"

    def __init__(self, courier_id: str) -> None:
        self.courier_id = courier_id
        super().__init__(f"Courier '{courier_id}' does not exist.")


class CourierInactive(DispatchError):
    code = "COURIER_INACTIVE"

    def __init__(self, courier_id: str) -> None:
        self.courier_id = courier_id
        super().__init__(f"Courier '{courier_id}' is not active.")


class RouteNotFound(DispatchError):
    code = "ROUTE_NOT_FOUND"

    def __init__(self, route_id: str) -> None:
        self.route_id = route_id
        super().__init__(f"Route '{route_id}' not found.")


class HotelsWithoutCoordinates(DispatchError):
    """A route cannot be re-sequenced while some of its hotels lack coordinates."""

    code = "HOTEL_WITHOUT_COORDINATES"

    def __init__(self, hotels: Sequence[tuple[str, str]]) -> None:
        self.hotels = list(hotels)
        names = ", ".join(name for _, name in self.hotels)
        super().__init__(f"Route cannot be optimized, hotels without valid coordinates: {names}.")
