from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import Mock

import pytest

from booking_core.core.exceptions import (
    InvalidRangeError,
    InvalidStatusError,
    NotFoundError,
)
from booking_core.db.repositories.booking import BookingRepository
from booking_core.db.repositories.vehicle import VehicleRepository
from booking_core.schemas import BookingData, VehicleData
from booking_core.services.commission import (
    CommissionService,
    build_commission_line,
    generate_commission_report,
    report_period,
)

MARCH_START = datetime(2025, 3, 1, tzinfo=timezone.utc)
APRIL_START = datetime(2025, 4, 1, tzinfo=timezone.utc)


def march(d: int, hour: int = 10) -> datetime:
    return datetime(2025, 3, d, hour, tzinfo=timezone.utc)


def commission_vehicle(vehicle_id: str, **fields) -> VehicleData:
    defaults = {
        "ownership_type": "commission",
        "owner_user_id": "owner-1",
        "commission_percentage": Decimal("20"),
        "monthly_fixed_costs": Decimal("0"),
    }
    defaults.update(fields)
    return VehicleData(id=vehicle_id, **defaults)


def booking(vehicle_id: str, total: str, start: int = 2, end: int = 4, **fields):
    return BookingData(
        id=fields.pop("id", f"{vehicle_id}-{start}-{total}"),
        vehicle_id=vehicle_id,
        pickup_at=march(start),
        return_at=march(end),
        status=fields.pop("status", "confirmed"),
        total_price=Decimal(total),
    )


def fetcher(bookings_by_vehicle):
    def _fetch(vehicle_id, start, end):
        return bookings_by_vehicle.get(vehicle_id, [])

    return _fetch


# ---------- report_period ----------


def test_month_period_is_half_open():
    start, end = report_period(2025, 3)

    assert start == MARCH_START
    assert end == APRIL_START


def test_december_rolls_over_to_next_year():
    start, end = report_period(2024, 12)

    assert start == datetime(2024, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_no_month_covers_whole_year():
    start, end = report_period(2025)

    assert start == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("month", [0, 13])
def test_invalid_month_raises(month):
    with pytest.raises(InvalidRangeError):
        report_period(2025, month)


# ---------- build_commission_line ----------


def test_loss_propagates_unclamped():
    vehicle = commission_vehicle(
        "v1",
        commission_percentage=Decimal("30"),
        monthly_fixed_costs=Decimal("150"),
    )

    line = build_commission_line(vehicle, [booking("v1", "100")])

    assert line.total_income == Decimal("100.00")
    assert line.net_income == Decimal("-50.00")
    assert line.commission_amount == Decimal("-15.00")
    assert line.operator_share == Decimal("-35.00")


def test_missing_percentage_means_no_commission():
    vehicle = commission_vehicle("v1", commission_percentage=None)

    line = build_commission_line(vehicle, [booking("v1", "250")])

    assert line.commission_percentage == Decimal("0")
    assert line.commission_amount == Decimal("0.00")
    assert line.operator_share == Decimal("250.00")


def test_zero_percentage_is_distinct_from_missing():
    vehicle = commission_vehicle("v1", commission_percentage=Decimal("0"))

    line = build_commission_line(vehicle, [booking("v1", "250")])

    assert line.commission_percentage == Decimal("0")
    assert line.operator_share == Decimal("250.00")


def test_missing_fixed_costs_are_zero():
    vehicle = commission_vehicle("v1", monthly_fixed_costs=None)

    line = build_commission_line(vehicle, [booking("v1", "80")])

    assert line.fixed_costs == Decimal("0.00")
    assert line.net_income == Decimal("80.00")


def test_days_and_count_are_aggregated():
    vehicle = commission_vehicle("v1")
    bookings = [
        booking("v1", "40", start=2, end=4),
        booking("v1", "70", start=10, end=13),
    ]

    line = build_commission_line(vehicle, bookings)

    assert line.booking_count == 2
    assert line.total_days_rented == 5
    assert line.total_income == Decimal("110.00")


def test_rounding_happens_on_line_outputs():
    vehicle = commission_vehicle("v1", commission_percentage=Decimal("33.33"))

    line = build_commission_line(vehicle, [booking("v1", "100.05")])

    # 100.05 * 33.33 / 100 = 33.346665
    assert line.commission_amount == Decimal("33.35")
    assert line.operator_share == Decimal("66.70")


# ---------- generate_commission_report ----------


def test_end_to_end_march_report():
    vehicles = [
        commission_vehicle(
            "A",
            commission_percentage=Decimal("20"),
            monthly_fixed_costs=Decimal("100"),
        ),
        commission_vehicle(
            "B",
            commission_percentage=Decimal("10"),
            monthly_fixed_costs=Decimal("50"),
        ),
        # no owner or depositor: left out of the report
        commission_vehicle("C", owner_user_id=None, monthly_fixed_costs=Decimal("75")),
    ]
    bookings = {
        "A": [booking("A", "400", 2, 5), booking("A", "500", 12, 17)],
        "C": [booking("C", "300")],
    }

    report = generate_commission_report(
        vehicles, MARCH_START, APRIL_START, fetcher(bookings)
    )

    lines = {line.vehicle_id: line for line in report.lines}
    assert set(lines) == {"A", "B"}

    assert lines["A"].total_income == Decimal("900.00")
    assert lines["A"].net_income == Decimal("800.00")
    assert lines["A"].commission_amount == Decimal("160.00")
    assert lines["A"].operator_share == Decimal("640.00")

    assert lines["B"].total_income == Decimal("0.00")
    assert lines["B"].net_income == Decimal("-50.00")
    assert lines["B"].commission_amount == Decimal("-5.00")
    assert lines["B"].operator_share == Decimal("-45.00")

    totals = report.totals
    assert totals.total_income == Decimal("900.00")
    assert totals.fixed_costs == Decimal("150.00")
    assert totals.net_income == Decimal("750.00")
    assert totals.commission_amount == Decimal("155.00")
    assert totals.operator_share == Decimal("595.00")
    assert totals.booking_count == 2


def test_depositor_only_vehicle_is_included():
    vehicle = commission_vehicle("v1", owner_user_id=None, depositor_user_id="dep-1")

    report = generate_commission_report(
        [vehicle], MARCH_START, APRIL_START, fetcher({})
    )

    assert [line.vehicle_id for line in report.lines] == ["v1"]


def test_non_commission_vehicles_are_skipped():
    owned = commission_vehicle("v1", ownership_type="owned")
    fetch = Mock(return_value=[])

    report = generate_commission_report([owned], MARCH_START, APRIL_START, fetch)

    assert report.lines == []
    fetch.assert_not_called()


def test_report_is_idempotent():
    vehicles = [commission_vehicle("v1", monthly_fixed_costs=Decimal("12.5"))]
    fetch = fetcher({"v1": [booking("v1", "99.99")]})

    first = generate_commission_report(vehicles, MARCH_START, APRIL_START, fetch)
    second = generate_commission_report(vehicles, MARCH_START, APRIL_START, fetch)

    assert first == second


def test_failing_vehicle_does_not_abort_report():
    vehicles = [
        commission_vehicle("broken", monthly_fixed_costs=Decimal("40")),
        commission_vehicle("ok"),
    ]

    def fetch(vehicle_id, start, end):
        if vehicle_id == "broken":
            raise RuntimeError("database went away")
        return [booking("ok", "120")]

    report = generate_commission_report(vehicles, MARCH_START, APRIL_START, fetch)

    broken, ok = report.lines
    assert broken.error == "database went away"
    assert broken.total_income == Decimal("0.00")
    assert broken.net_income == Decimal("0.00")
    assert ok.error is None
    assert ok.total_income == Decimal("120.00")
    assert report.totals.total_income == Decimal("120.00")


def test_inverted_period_raises():
    with pytest.raises(InvalidRangeError):
        generate_commission_report([], APRIL_START, MARCH_START, fetcher({}))


# ---------- CommissionService ----------


@pytest.fixture
def commission_service(db_session):
    return CommissionService(VehicleRepository(db_session), BookingRepository(db_session))


def test_service_reads_bookings_by_pickup_in_period(
    commission_service, make_vehicle, make_booking
):
    make_vehicle(
        "v1",
        ownership_type="commission",
        owner_user_id="owner-1",
        commission_percentage=Decimal("25"),
        monthly_fixed_costs=Decimal("20"),
    )
    make_booking("v1", march(1, 0), march(3), total_price=Decimal("100"))
    make_booking("v1", march(31, 20), datetime(2025, 4, 2, tzinfo=timezone.utc),
                 total_price=Decimal("60"))
    # picked up before March: not counted even though it ends inside it
    make_booking("v1", datetime(2025, 2, 27, tzinfo=timezone.utc), march(2, 0),
                 total_price=Decimal("500"))
    # picked up exactly at the period end: belongs to April
    make_booking("v1", APRIL_START, datetime(2025, 4, 3, tzinfo=timezone.utc),
                 total_price=Decimal("700"))

    report = commission_service.build_report(2025, 3)

    (line,) = report.lines
    assert line.booking_count == 2
    assert line.total_income == Decimal("160.00")
    assert line.net_income == Decimal("140.00")
    assert line.commission_amount == Decimal("35.00")
    assert line.operator_share == Decimal("105.00")


def test_service_counts_every_status_by_default(
    commission_service, make_vehicle, make_booking
):
    make_vehicle("v1", ownership_type="commission", owner_user_id="o1")
    make_booking("v1", march(2), march(3), status="cancelled", total_price=Decimal("10"))
    make_booking("v1", march(5), march(6), status="completed", total_price=Decimal("20"))

    report = commission_service.build_report(2025, 3)

    assert report.totals.total_income == Decimal("30.00")


def test_service_status_filter(commission_service, make_vehicle, make_booking):
    make_vehicle("v1", ownership_type="commission", owner_user_id="o1")
    make_booking("v1", march(2), march(3), status="cancelled", total_price=Decimal("10"))
    make_booking("v1", march(5), march(6), status="completed", total_price=Decimal("20"))
    make_booking("v1", march(8), march(9), status="confirmed", total_price=Decimal("40"))

    report = commission_service.build_report(
        2025, 3, statuses=["confirmed", "completed"]
    )

    assert report.totals.total_income == Decimal("60.00")
    assert report.totals.booking_count == 2


def test_service_filters_by_counterparty(
    commission_service, make_vehicle, make_booking
):
    make_vehicle("mine", ownership_type="commission", owner_user_id="o1")
    make_vehicle("deposited", ownership_type="commission", depositor_user_id="o1")
    make_vehicle("theirs", ownership_type="commission", owner_user_id="o2")

    report = commission_service.build_report(2025, 3, counterparty_id="o1")

    assert sorted(line.vehicle_id for line in report.lines) == ["deposited", "mine"]


def test_service_skips_archived_and_unassigned(commission_service, make_vehicle):
    make_vehicle("archived", ownership_type="commission", owner_user_id="o1",
                 status="archived")
    make_vehicle("unassigned", ownership_type="commission")
    make_vehicle("owned", ownership_type="owned", owner_user_id="o1")

    report = commission_service.build_report(2025, 3)

    assert report.lines == []


def test_vehicle_bookings_drill_down(commission_service, make_vehicle, make_booking):
    make_vehicle("v1", ownership_type="commission", owner_user_id="o1")
    make_booking("v1", march(2), march(4), booking_id="early")
    make_booking("v1", march(20), march(21), booking_id="late")

    bookings = commission_service.vehicle_bookings("v1", 2025, 3)

    assert [b.id for b in bookings] == ["late", "early"]


def test_vehicle_bookings_unknown_vehicle(commission_service):
    with pytest.raises(NotFoundError):
        commission_service.vehicle_bookings("missing", 2025, 3)


def test_service_rejects_unknown_status(commission_service, make_vehicle):
    make_vehicle("v1", ownership_type="commission", owner_user_id="o1")

    with pytest.raises(InvalidStatusError):
        commission_service.build_report(2025, 3, statuses=["confirmd"])
    with pytest.raises(InvalidStatusError):
        commission_service.vehicle_bookings("v1", 2025, 3, statuses=["done"])


def test_service_rejects_unknown_default_status(db_session):
    service = CommissionService(
        VehicleRepository(db_session),
        BookingRepository(db_session),
        report_statuses=["confirmed", "closed"],
    )

    with pytest.raises(InvalidStatusError):
        service.build_report(2025, 3)
