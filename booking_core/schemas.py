from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from booking_core.db.models import BOOKING_STATUSES

BOOKING_STATUS_PATTERN = "^(" + "|".join(BOOKING_STATUSES) + ")$"


class AvailabilityRequest(BaseModel):
    vehicle_id: str
    start: datetime
    end: datetime
    exclude_booking_id: Optional[str] = None


class AvailabilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    available: bool
    conflicting_booking_id: Optional[str] = None


class PriceQuoteRequest(BaseModel):
    vehicle_id: str
    start: datetime
    end: datetime
    deposit_ratio: Optional[Decimal] = Field(None, ge=0, le=1)


class PriceQuoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days: int
    total_price: Decimal
    suggested_deposit: Decimal


class CreateBookingRequest(BaseModel):
    vehicle_id: str
    pickup_at: datetime
    return_at: datetime
    status: str = Field("pending", pattern="^(pending|confirmed)$")
    total_price: Optional[Decimal] = Field(None, ge=0)


class RescheduleBookingRequest(BaseModel):
    pickup_at: datetime
    return_at: datetime


class ChangeStatusRequest(BaseModel):
    status: str = Field(..., pattern=BOOKING_STATUS_PATTERN)


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_number: str
    vehicle_id: str
    pickup_at: datetime
    return_at: datetime
    status: str
    total_price: Decimal
    deposit: Decimal


class AvailableVehicleResponse(BaseModel):
    id: str
    registration_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    daily_rate: Decimal
    days: int
    total_price: Decimal
    suggested_deposit: Decimal


class CommissionLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vehicle_id: str
    registration_number: Optional[str] = None
    owner_name: Optional[str] = None
    total_income: Decimal
    fixed_costs: Decimal
    net_income: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    operator_share: Decimal
    booking_count: int
    total_days_rented: int
    error: Optional[str] = None


class CommissionTotalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_income: Decimal
    fixed_costs: Decimal
    net_income: Decimal
    commission_amount: Decimal
    operator_share: Decimal
    booking_count: int


class CommissionReportResponse(BaseModel):
    period_start: datetime
    period_end: datetime
    lines: List[CommissionLineResponse]
    totals: CommissionTotalsResponse


class VehicleBookingResponse(BaseModel):
    id: str
    booking_number: str
    pickup_at: datetime
    return_at: datetime
    total_price: Decimal
    status: str
    days: int


class VehicleBookingsResponse(BaseModel):
    vehicle_id: str
    bookings: List[VehicleBookingResponse]


class HealthResponse(BaseModel):
    ok: bool = True


# Internal schemas for services
class VehicleData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    registration_number: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    daily_rate: Decimal = Decimal("0")
    status: str = "available"
    ownership_type: Optional[str] = None
    commission_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    monthly_fixed_costs: Optional[Decimal] = Field(None, ge=0)
    owner_user_id: Optional[str] = None
    depositor_user_id: Optional[str] = None
    owner_name: Optional[str] = None

    @property
    def counterparty_id(self) -> Optional[str]:
        return self.owner_user_id or self.depositor_user_id


class BookingData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    vehicle_id: str
    booking_number: Optional[str] = None
    pickup_at: datetime
    return_at: datetime
    status: str
    total_price: Decimal = Decimal("0")

    @model_validator(mode="after")
    def check_range(self):
        if self.return_at <= self.pickup_at:
            raise ValueError("return_at must be after pickup_at")
        return self


@dataclass
class AvailabilityResult:
    available: bool
    conflicting_booking_id: Optional[str] = None


@dataclass
class PriceQuote:
    days: int
    total_price: Decimal
    suggested_deposit: Decimal


@dataclass
class CommissionReportLine:
    vehicle_id: str
    total_income: Decimal
    fixed_costs: Decimal
    net_income: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    operator_share: Decimal
    booking_count: int
    total_days_rented: int = 0
    registration_number: Optional[str] = None
    owner_name: Optional[str] = None
    error: Optional[str] = None


@dataclass
class CommissionReportTotals:
    total_income: Decimal = Decimal("0.00")
    fixed_costs: Decimal = Decimal("0.00")
    net_income: Decimal = Decimal("0.00")
    commission_amount: Decimal = Decimal("0.00")
    operator_share: Decimal = Decimal("0.00")
    booking_count: int = 0


@dataclass
class CommissionReport:
    period_start: datetime
    period_end: datetime
    lines: List[CommissionReportLine] = field(default_factory=list)
    totals: CommissionReportTotals = field(default_factory=CommissionReportTotals)
