from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

VEHICLE_STATUSES = ("available", "unavailable", "archived")
OWNERSHIP_TYPES = ("owned", "renting", "commission")
BOOKING_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled")

# Bookings in these states hold the vehicle; completed/cancelled never block
BLOCKING_STATUSES = ("pending", "confirmed", "in_progress")


def _one_of(column: str, values, nullable: bool = False) -> str:
    allowed = ", ".join(f"'{v}'" for v in values)
    check = f"{column} IN ({allowed})"
    return f"{column} IS NULL OR {check}" if nullable else check


class Base(DeclarativeBase):
    pass


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    registration_number: Mapped[Optional[str]] = mapped_column(
        String(32), nullable=True
    )
    make: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    status: Mapped[str] = mapped_column(String(16), default="available")
    ownership_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    commission_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )
    monthly_fixed_costs: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    owner_user_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    depositor_user_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    owner_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="vehicle")

    __table_args__ = (
        CheckConstraint(
            _one_of("status", VEHICLE_STATUSES), name="ck_vehicles_status"
        ),
        CheckConstraint(
            _one_of("ownership_type", OWNERSHIP_TYPES, nullable=True),
            name="ck_vehicles_ownership_type",
        ),
        CheckConstraint(
            "commission_percentage IS NULL OR "
            "(commission_percentage >= 0 AND commission_percentage <= 100)",
            name="ck_vehicles_commission_percentage",
        ),
        CheckConstraint(
            "monthly_fixed_costs IS NULL OR monthly_fixed_costs >= 0",
            name="ck_vehicles_fixed_costs",
        ),
    )


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    vehicle_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("vehicles.id"), index=True
    )
    booking_number: Mapped[str] = mapped_column(String(32), unique=True)
    pickup_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    return_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(16), default="pending")
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    deposit: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    vehicle: Mapped[Vehicle] = relationship(back_populates="bookings")

    __table_args__ = (
        CheckConstraint("return_at > pickup_at", name="ck_bookings_range"),
        CheckConstraint("total_price >= 0", name="ck_bookings_total_price"),
        CheckConstraint(
            _one_of("status", BOOKING_STATUSES), name="ck_bookings_status"
        ),
    )


# Availability scans filter on vehicle + status and order by pickup
Index(
    "ix_bookings_vehicle_status_pickup",
    Booking.vehicle_id,
    Booking.status,
    Booking.pickup_at,
)
