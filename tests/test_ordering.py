from laundry_dispatch.models.domain import Hotel, Priority, Service, ServiceStatus, Zone
from laundry_dispatch.services.routing.grouping import group_services_by_hotel
from laundry_dispatch.services.routing.models import HotelGroup
from laundry_dispatch.services.routing.ordering import order_hotel_groups, score_group


def _hotel(hid: str, lat: float | None = None, lon: float | None = None) -> Hotel:
    return Hotel(id=hid, name=f"Hotel {hid}", zone=Zone.NORTE, latitude=lat, longitude=lon)


def _pickup(sid: str, hotel: Hotel, bags: int = 1, priority: Priority = Priority.NORMAL) -> Service:
    return Service(
        id=sid,
        hotel=hotel,
        guest_name=f"Guest {sid}",
        room_number="201",
        bag_count=bags,
        priority=priority,
        status=ServiceStatus.PENDING_PICKUP,
    )


def _delivery(sid: str, hotel: Hotel, bags: int = 1, priority: Priority = Priority.NORMAL) -> Service:
    service = _pickup(sid, hotel, bags, priority)
    service.status = ServiceStatus.IN_PROCESS
    return service


def _ids(groups: list[HotelGroup]) -> list[str]:
    return [group.hotel.id for group in groups]


def test_score_group_weights() -> None:
    hotel = _hotel("H1", 0.0, 0.0)
    group = HotelGroup(
        hotel=hotel,
        high_priority_pickups=(_pickup("S1", hotel, bags=2, priority=Priority.HIGH),),
        normal_deliveries=(_delivery("S2", hotel), _delivery("S3", hotel)),
        normal_pickups=(_pickup("S4", hotel, bags=3),),
    )

    # 100*1 + 10*2 + 5*1 + 2*(2+1+1+3)
    assert score_group(group) == 139


def test_high_priority_hotels_come_first_even_when_far() -> None:
    near, far = _hotel("NEAR", 0.0, 0.0), _hotel("FAR", 10.0, 10.0)
    services = [_pickup("S1", near, bags=20), _pickup("S2", far, priority=Priority.HIGH)]

    assert _ids(order_hotel_groups(group_services_by_hotel(services))) == ["FAR", "NEAR"]


def test_nearest_neighbour_walk_starts_at_highest_score() -> None:
    a, b, c = _hotel("A", 0.0, 0.0), _hotel("B", 0.0, 2.0), _hotel("C", 0.0, 1.0)
    services = [_pickup("S1", b), _pickup("S2", a, bags=5), _pickup("S3", c)]

    assert _ids(order_hotel_groups(group_services_by_hotel(services))) == ["A", "C", "B"]


def test_hotel_without_coordinates_goes_last_in_its_tier() -> None:
    north, south, unknown = _hotel("N", -12.0, -77.0), _hotel("S", -12.2, -77.0), _hotel("X")
    services = [_pickup("S1", unknown, bags=30), _pickup("S2", south), _pickup("S3", north, bags=2)]

    assert _ids(order_hotel_groups(group_services_by_hotel(services))) == ["N", "S", "X"]


def test_coordinate_less_hotels_sorted_by_score() -> None:
    low, high = _hotel("LOW"), _hotel("HIGH", lat=None, lon=-77.0)
    services = [_pickup("S1", low), _pickup("S2", high, bags=3)]

    assert _ids(order_hotel_groups(group_services_by_hotel(services))) == ["HIGH", "LOW"]


def test_ties_resolve_to_insertion_order() -> None:
    first, second, third = _hotel("FIRST", 0.0, 0.0), _hotel("SECOND", 0.0, 1.0), _hotel("THIRD", 0.0, -1.0)
    services = [_pickup("S1", first), _pickup("S2", second), _pickup("S3", third)]

    # Equal scores start at FIRST; SECOND and THIRD are equidistant from it.
    assert _ids(order_hotel_groups(group_services_by_hotel(services))) == ["FIRST", "SECOND", "THIRD"]


def test_ordering_is_deterministic() -> None:
    hotels = [_hotel(f"H{i}", -12.0 - i * 0.01, -77.0 + (i % 3) * 0.02) for i in range(8)]
    hotels.append(_hotel("NOCOORD"))
    services = [_pickup(f"S{i}", hotel, bags=i % 4 + 1) for i, hotel in enumerate(hotels)]
    services.append(_delivery("SX", hotels[3], priority=Priority.HIGH))

    first = _ids(order_hotel_groups(group_services_by_hotel(services)))
    second = _ids(order_hotel_groups(group_services_by_hotel(list(services))))

    assert first == second
    assert first[0] == "H3"
    assert first[-1] == "NOCOORD"
