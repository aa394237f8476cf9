from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from loguru import logger

from booking_core.core.exceptions import (
    BookingConflictError,
    InvalidTransitionError,
    NotFoundError,
    VehicleUnavailableError,
)
from booking_core.core.utils import (
    as_utc,
    booking_number,
    quantize_money,
    to_decimal,
    uuid4,
)
from booking_core.db.models import Booking, Vehicle
from booking_core.db.repositories.booking import BookingRepository
from booking_core.db.repositories.vehicle import VehicleRepository
from booking_core.monitoring.metrics import MetricsCollector
from booking_core.schemas import (
    AvailableVehicleResponse,
    CreateBookingRequest,
    PriceQuote,
    RescheduleBookingRequest,
)
from booking_core.services.availability import AvailabilityService, validate_range
from booking_core.services.pricing import DEFAULT_DEPOSIT_RATIO, calculate_price

ALLOWED_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("in_progress", "cancelled"),
    "in_progress": ("completed",),
    "completed": (),
    "cancelled": (),
}


class BookingService:
    def __init__(
        self,
        vehicle_repo: VehicleRepository,
        booking_repo: BookingRepository,
        availability_service: AvailabilityService,
        deposit_ratio: Optional[Decimal] = None,
    ):
        self.vehicle_repo = vehicle_repo
        self.booking_repo = booking_repo
        self.availability_service = availability_service
        self.deposit_ratio = deposit_ratio

    def _ratio(self) -> Decimal:
        if self.deposit_ratio is None:
            return DEFAULT_DEPOSIT_RATIO
        return to_decimal(self.deposit_ratio)

    def _lock_bookable_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self.vehicle_repo.get_for_update(vehicle_id)
        if not vehicle:
            logger.warning(f"Vehicle {vehicle_id} not found")
            raise NotFoundError("Vehicle", vehicle_id)
        if vehicle.status != "available":
            logger.warning(f"Vehicle {vehicle_id} is {vehicle.status}, cannot book")
            raise VehicleUnavailableError(vehicle_id, vehicle.status)
        return vehicle

    def _ensure_free(
        self,
        vehicle_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        result = self.availability_service.check_availability(
            vehicle_id, start, end, exclude_booking_id
        )
        if not result.available:
            raise BookingConflictError(vehicle_id, result.conflicting_booking_id)

    def quote(
        self,
        vehicle_id: str,
        start: datetime,
        end: datetime,
        deposit_ratio: Optional[Decimal] = None,
    ) -> PriceQuote:
        vehicle = self.vehicle_repo.get_by_id(vehicle_id)
        if not vehicle:
            logger.warning(f"Vehicle {vehicle_id} not found")
            raise NotFoundError("Vehicle", vehicle_id)
        ratio = self.deposit_ratio if deposit_ratio is None else deposit_ratio
        return calculate_price(vehicle.daily_rate, start, end, ratio)

    def create_booking(self, request: CreateBookingRequest) -> Booking:
        """Check availability and insert the booking under a vehicle row lock.

        Must run inside the caller's transaction; the lock is released on
        commit or rollback.
        """
        logger.info(
            f"Creating booking for vehicle {request.vehicle_id}: "
            f"[{request.pickup_at}, {request.return_at})"
        )

        vehicle = self._lock_bookable_vehicle(request.vehicle_id)
        self._ensure_free(vehicle.id, request.pickup_at, request.return_at)

        quote = calculate_price(
            vehicle.daily_rate, request.pickup_at, request.return_at, self.deposit_ratio
        )
        total_price, deposit = quote.total_price, quote.suggested_deposit
        if request.total_price is not None:
            # the deposit follows the agreed price, not the rate-based one
            total_price = quantize_money(request.total_price)
            deposit = quantize_money(total_price * self._ratio())

        now = datetime.now(timezone.utc)
        booking = Booking(
            id=uuid4(),
            vehicle_id=vehicle.id,
            booking_number=booking_number(now),
            pickup_at=as_utc(request.pickup_at),
            return_at=as_utc(request.return_at),
            status=request.status,
            total_price=total_price,
            deposit=deposit,
            created_at=now,
        )
        self.booking_repo.create_booking(booking)

        MetricsCollector.record_booking(booking.status)
        logger.info(
            f"Booking {booking.booking_number} ({booking.id}) created: "
            f"days={quote.days}, total={total_price}"
        )
        return booking

    def reschedule_booking(
        self, booking_id: str, request: RescheduleBookingRequest
    ) -> Booking:
        booking = self.booking_repo.get_by_id(booking_id)
        if not booking:
            logger.warning(f"Booking {booking_id} not found")
            raise NotFoundError("Booking", booking_id)
        if booking.status not in ("pending", "confirmed"):
            raise InvalidTransitionError(booking_id, booking.status, "rescheduled")

        vehicle = self._lock_bookable_vehicle(booking.vehicle_id)
        self._ensure_free(
            vehicle.id, request.pickup_at, request.return_at, booking.id
        )

        quote = calculate_price(
            vehicle.daily_rate, request.pickup_at, request.return_at, self.deposit_ratio
        )
        booking.pickup_at = as_utc(request.pickup_at)
        booking.return_at = as_utc(request.return_at)
        booking.total_price = quote.total_price
        booking.deposit = quote.suggested_deposit
        self.booking_repo.update_booking(booking)

        logger.info(
            f"Booking {booking_id} rescheduled to "
            f"[{booking.pickup_at}, {booking.return_at}), total={quote.total_price}"
        )
        return booking

    def change_status(self, booking_id: str, status: str) -> Booking:
        booking = self.booking_repo.get_by_id(booking_id)
        if not booking:
            logger.warning(f"Booking {booking_id} not found")
            raise NotFoundError("Booking", booking_id)

        if status not in ALLOWED_TRANSITIONS.get(booking.status, ()):
            logger.warning(
                f"Rejected status change for booking {booking_id}: "
                f"{booking.status} -> {status}"
            )
            raise InvalidTransitionError(booking_id, booking.status, status)

        old_status = booking.status
        booking.status = status
        self.booking_repo.update_booking(booking)
        logger.info(f"Booking {booking_id} status: {old_status} -> {status}")
        return booking

    def search_available(
        self, start: datetime, end: datetime
    ) -> List[AvailableVehicleResponse]:
        validate_range(start, end)
        blocked = self.booking_repo.blocked_vehicle_ids(start, end)
        vehicles = self.vehicle_repo.list_available()

        result = []
        for vehicle in vehicles:
            if vehicle.id in blocked:
                continue
            quote = calculate_price(vehicle.daily_rate, start, end, self.deposit_ratio)
            result.append(
                AvailableVehicleResponse(
                    id=vehicle.id,
                    registration_number=vehicle.registration_number,
                    make=vehicle.make,
                    model=vehicle.model,
                    daily_rate=vehicle.daily_rate,
                    days=quote.days,
                    total_price=quote.total_price,
                    suggested_deposit=quote.suggested_deposit,
                )
            )

        logger.info(
            f"Vehicle search [{start}, {end}): {len(result)} of {len(vehicles)} free"
        )
        return result
