"""Commission / revenue report for vehicles run on behalf of an owner.

For every commission vehicle the booking income of the period is reduced by
the vehicle's monthly fixed costs, and the resulting net income is split
between the owner (``commission_percentage``) and the operator.
"""
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence

from loguru import logger

from booking_core.core.exceptions import (
    InvalidRangeError,
    InvalidStatusError,
    NotFoundError,
)
from booking_core.core.utils import quantize_money, rental_days, to_decimal
from booking_core.db.models import BOOKING_STATUSES
from booking_core.db.repositories.booking import BookingRepository
from booking_core.db.repositories.vehicle import VehicleRepository
from booking_core.monitoring.metrics import MetricsCollector
from booking_core.schemas import (
    BookingData,
    CommissionReport,
    CommissionReportLine,
    CommissionReportTotals,
    VehicleData,
)
from booking_core.services.availability import validate_range

BookingFetcher = Callable[[str, datetime, datetime], Sequence[BookingData]]

ZERO = Decimal("0.00")


def report_period(year: int, month: Optional[int] = None):
    """Half-open ``[start, end)`` covering one calendar month, or the whole year."""
    if month is None:
        return (
            datetime(year, 1, 1, tzinfo=timezone.utc),
            datetime(year + 1, 1, 1, tzinfo=timezone.utc),
        )
    if not 1 <= month <= 12:
        raise InvalidRangeError(f"month must be between 1 and 12, got {month}")

    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


def validate_statuses(statuses: Iterable[str]) -> List[str]:
    statuses = list(statuses)
    unknown = sorted(set(statuses) - set(BOOKING_STATUSES))
    if unknown:
        raise InvalidStatusError(f"unknown booking status: {', '.join(unknown)}")
    return statuses


def is_commission_vehicle(vehicle: VehicleData) -> bool:
    return (
        vehicle.ownership_type == "commission"
        and vehicle.counterparty_id is not None
    )


def build_commission_line(
    vehicle: VehicleData, bookings: Sequence[BookingData]
) -> CommissionReportLine:
    total_income = sum((to_decimal(b.total_price) for b in bookings), Decimal("0"))
    # flat monthly figure, not scaled to the period length
    fixed_costs = to_decimal(vehicle.monthly_fixed_costs)
    percentage = to_decimal(vehicle.commission_percentage)

    net_income = total_income - fixed_costs
    # a loss is shared too: negative net gives a negative commission
    commission_amount = net_income * percentage / Decimal("100")
    operator_share = net_income - commission_amount

    return CommissionReportLine(
        vehicle_id=vehicle.id,
        registration_number=vehicle.registration_number,
        owner_name=vehicle.owner_name,
        total_income=quantize_money(total_income),
        fixed_costs=quantize_money(fixed_costs),
        net_income=quantize_money(net_income),
        commission_percentage=percentage,
        commission_amount=quantize_money(commission_amount),
        operator_share=quantize_money(operator_share),
        booking_count=len(bookings),
        total_days_rented=sum(
            rental_days(b.pickup_at, b.return_at) for b in bookings
        ),
    )


def empty_commission_line(vehicle: VehicleData, error: str) -> CommissionReportLine:
    return CommissionReportLine(
        vehicle_id=vehicle.id,
        registration_number=vehicle.registration_number,
        owner_name=vehicle.owner_name,
        total_income=ZERO,
        fixed_costs=ZERO,
        net_income=ZERO,
        commission_percentage=to_decimal(vehicle.commission_percentage),
        commission_amount=ZERO,
        operator_share=ZERO,
        booking_count=0,
        error=error,
    )


def sum_commission_lines(
    lines: Iterable[CommissionReportLine],
) -> CommissionReportTotals:
    totals = CommissionReportTotals()
    for line in lines:
        totals.total_income += line.total_income
        totals.fixed_costs += line.fixed_costs
        totals.net_income += line.net_income
        totals.commission_amount += line.commission_amount
        totals.operator_share += line.operator_share
        totals.booking_count += line.booking_count
    return totals


def generate_commission_report(
    vehicles: Iterable[VehicleData],
    period_start: datetime,
    period_end: datetime,
    fetch_bookings: BookingFetcher,
) -> CommissionReport:
    """Compute one report line per commission vehicle plus period totals.

    Vehicles that are not on commission or have no owner/depositor are
    skipped. A vehicle whose bookings cannot be fetched gets an empty line
    carrying the error, so one bad vehicle never aborts the whole report.
    """
    validate_range(period_start, period_end)

    lines: List[CommissionReportLine] = []
    for vehicle in vehicles:
        if not is_commission_vehicle(vehicle):
            logger.debug(f"Skipping vehicle {vehicle.id}: no commission owner")
            continue

        try:
            bookings = fetch_bookings(vehicle.id, period_start, period_end)
        except Exception as e:
            MetricsCollector.record_report_vehicle_failure()
            logger.error(f"Failed to load bookings for vehicle {vehicle.id}: {e}")
            lines.append(empty_commission_line(vehicle, str(e)))
            continue

        lines.append(build_commission_line(vehicle, bookings))

    return CommissionReport(
        period_start=period_start,
        period_end=period_end,
        lines=lines,
        totals=sum_commission_lines(lines),
    )


class CommissionService:
    def __init__(
        self,
        vehicle_repo: VehicleRepository,
        booking_repo: BookingRepository,
        report_statuses: Optional[Iterable[str]] = None,
    ):
        self.vehicle_repo = vehicle_repo
        self.booking_repo = booking_repo
        self.report_statuses = list(report_statuses or [])

    def build_report(
        self,
        year: int,
        month: Optional[int] = None,
        counterparty_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> CommissionReport:
        period_start, period_end = report_period(year, month)
        statuses = validate_statuses(statuses or self.report_statuses)

        logger.info(
            f"Building commission report for {year}-{month or 'all'}, "
            f"counterparty={counterparty_id}, statuses={statuses or 'all'}"
        )

        started = time.time()
        vehicles = self.vehicle_repo.list_commission_vehicles(counterparty_id)

        def fetch(vehicle_id: str, start: datetime, end: datetime):
            return self.booking_repo.list_in_period(vehicle_id, start, end, statuses)

        report = generate_commission_report(vehicles, period_start, period_end, fetch)
        MetricsCollector.record_report(time.time() - started, len(report.lines))

        logger.info(
            f"Commission report ready: vehicles={len(report.lines)}, "
            f"income={report.totals.total_income}, "
            f"commission={report.totals.commission_amount}"
        )
        return report

    def vehicle_bookings(
        self,
        vehicle_id: str,
        year: int,
        month: Optional[int] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[BookingData]:
        if not self.vehicle_repo.get_by_id(vehicle_id):
            logger.warning(f"Vehicle {vehicle_id} not found")
            raise NotFoundError("Vehicle", vehicle_id)

        period_start, period_end = report_period(year, month)
        statuses = validate_statuses(statuses or self.report_statuses)
        return self.booking_repo.list_in_period(
            vehicle_id, period_start, period_end, statuses
        )
