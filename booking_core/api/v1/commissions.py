from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from booking_core.api.dependencies import get_commission_service
from booking_core.core.exceptions import (
    InvalidRangeError,
    InvalidStatusError,
    NotFoundError,
    invalid_request_exception,
    not_found_exception,
)
from booking_core.core.utils import rental_days
from booking_core.schemas import (
    CommissionLineResponse,
    CommissionReportResponse,
    CommissionTotalsResponse,
    VehicleBookingResponse,
    VehicleBookingsResponse,
)
from booking_core.services.commission import CommissionService

router = APIRouter()


def _current_year() -> int:
    return datetime.now(timezone.utc).year


@router.get("/commissions", response_model=CommissionReportResponse)
def get_commission_report(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, description="1-12, omit for the whole year"),
    owner_id: Optional[str] = Query(None, description="Owner or depositor user id"),
    status: Optional[List[str]] = Query(None, description="Booking statuses to count"),
    commission_service: CommissionService = Depends(get_commission_service),
):
    try:
        report = commission_service.build_report(
            year or _current_year(), month, owner_id, status
        )
    except (InvalidRangeError, InvalidStatusError) as e:
        raise invalid_request_exception(e)

    return CommissionReportResponse(
        period_start=report.period_start,
        period_end=report.period_end,
        lines=[CommissionLineResponse.model_validate(line) for line in report.lines],
        totals=CommissionTotalsResponse.model_validate(report.totals),
    )


@router.get(
    "/commissions/{vehicle_id}/bookings", response_model=VehicleBookingsResponse
)
def get_vehicle_commission_bookings(
    vehicle_id: str,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None),
    status: Optional[List[str]] = Query(None),
    commission_service: CommissionService = Depends(get_commission_service),
):
    try:
        bookings = commission_service.vehicle_bookings(
            vehicle_id, year or _current_year(), month, status
        )
    except NotFoundError as e:
        raise not_found_exception(e)
    except (InvalidRangeError, InvalidStatusError) as e:
        raise invalid_request_exception(e)

    return VehicleBookingsResponse(
        vehicle_id=vehicle_id,
        bookings=[
            VehicleBookingResponse(
                id=b.id,
                booking_number=b.booking_number or "",
                pickup_at=b.pickup_at,
                return_at=b.return_at,
                total_price=b.total_price,
                status=b.status,
                days=rental_days(b.pickup_at, b.return_at),
            )
            for b in bookings
        ],
    )
