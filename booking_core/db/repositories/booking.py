from datetime import datetime
from typing import Iterable, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from booking_core.core.utils import as_utc
from booking_core.db.models import BLOCKING_STATUSES, Booking
from booking_core.schemas import BookingData


class BookingRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, booking_id: str) -> Optional[Booking]:
        return self.session.get(Booking, booking_id)

    def create_booking(self, booking: Booking) -> None:
        self.session.add(booking)
        self.session.flush()

    def update_booking(self, booking: Booking) -> None:
        self.session.merge(booking)
        self.session.flush()

    def list_blocking(
        self, vehicle_id: str, exclude_booking_id: Optional[str] = None
    ) -> List[BookingData]:
        query = select(Booking).where(
            Booking.vehicle_id == vehicle_id,
            Booking.status.in_(BLOCKING_STATUSES),
        )
        if exclude_booking_id:
            query = query.where(Booking.id != exclude_booking_id)

        bookings = (
            self.session.execute(query.order_by(Booking.pickup_at, Booking.id))
            .scalars()
            .all()
        )
        return [BookingData.model_validate(b) for b in bookings]

    def blocked_vehicle_ids(self, start: datetime, end: datetime) -> set:
        """Vehicles holding a blocking booking that overlaps ``[start, end)``."""
        result = self.session.execute(
            select(Booking.vehicle_id)
            .where(
                Booking.status.in_(BLOCKING_STATUSES),
                Booking.pickup_at < as_utc(end),
                Booking.return_at > as_utc(start),
            )
            .distinct()
        )
        return set(result.scalars().all())

    def list_in_period(
        self,
        vehicle_id: str,
        period_start: datetime,
        period_end: datetime,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[BookingData]:
        """Bookings whose pickup falls inside ``[period_start, period_end)``."""
        query = select(Booking).where(
            Booking.vehicle_id == vehicle_id,
            Booking.pickup_at >= as_utc(period_start),
            Booking.pickup_at < as_utc(period_end),
        )
        statuses = list(statuses or [])
        if statuses:
            query = query.where(Booking.status.in_(statuses))

        bookings = (
            self.session.execute(
                query.order_by(Booking.pickup_at.desc(), Booking.id)
            )
            .scalars()
            .all()
        )
        logger.debug(
            f"Vehicle {vehicle_id}: {len(bookings)} bookings "
            f"in [{period_start}, {period_end})"
        )
        return [BookingData.model_validate(b) for b in bookings]


__all__ = ["BookingRepository"]
