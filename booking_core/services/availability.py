from datetime import date, datetime
from typing import Iterable, Optional

from loguru import logger

from booking_core.core.exceptions import InvalidRangeError, NotFoundError
from booking_core.core.utils import as_utc
from booking_core.db.models import BLOCKING_STATUSES
from booking_core.db.repositories.booking import BookingRepository
from booking_core.db.repositories.vehicle import VehicleRepository
from booking_core.monitoring.metrics import MetricsCollector
from booking_core.schemas import AvailabilityResult, BookingData


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open ranges overlap; a shared boundary instant does not count."""
    return as_utc(a_start) < as_utc(b_end) and as_utc(a_end) > as_utc(b_start)


def validate_range(start: datetime, end: datetime) -> None:
    if not isinstance(start, date) or not isinstance(end, date):
        raise InvalidRangeError("start and end must be dates or datetimes")
    if as_utc(end) <= as_utc(start):
        raise InvalidRangeError(f"end {end} must be after start {start}")


def find_conflict(
    bookings: Iterable[BookingData],
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[str] = None,
) -> Optional[BookingData]:
    for booking in bookings:
        if booking.id == exclude_booking_id:
            continue
        if booking.status not in BLOCKING_STATUSES:
            continue
        if intervals_overlap(start, end, booking.pickup_at, booking.return_at):
            return booking
    return None


class AvailabilityService:
    def __init__(
        self, vehicle_repo: VehicleRepository, booking_repo: BookingRepository
    ):
        self.vehicle_repo = vehicle_repo
        self.booking_repo = booking_repo

    def check_availability(
        self,
        vehicle_id: str,
        requested_start: datetime,
        requested_end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> AvailabilityResult:
        if not self.vehicle_repo.get_by_id(vehicle_id):
            logger.warning(f"Vehicle {vehicle_id} not found")
            raise NotFoundError("Vehicle", vehicle_id)

        validate_range(requested_start, requested_end)

        bookings = self.booking_repo.list_blocking(vehicle_id, exclude_booking_id)
        conflict = find_conflict(
            bookings, requested_start, requested_end, exclude_booking_id
        )

        if conflict:
            logger.info(
                f"Vehicle {vehicle_id} unavailable for "
                f"[{requested_start}, {requested_end}): conflicts with {conflict.id}"
            )
            MetricsCollector.record_availability_check(False)
            return AvailabilityResult(
                available=False, conflicting_booking_id=conflict.id
            )

        MetricsCollector.record_availability_check(True)
        return AvailabilityResult(available=True)
