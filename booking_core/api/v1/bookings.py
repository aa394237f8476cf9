from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_core.api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_session,
)
from booking_core.core.exceptions import (
    BookingConflictError,
    InvalidAmountError,
    InvalidRangeError,
    InvalidTransitionError,
    NotFoundError,
    VehicleUnavailableError,
    booking_conflict_exception,
    invalid_request_exception,
    not_found_exception,
    vehicle_unavailable_exception,
)
from booking_core.schemas import (
    AvailabilityRequest,
    AvailabilityResponse,
    BookingResponse,
    ChangeStatusRequest,
    CreateBookingRequest,
    PriceQuoteRequest,
    PriceQuoteResponse,
    RescheduleBookingRequest,
)
from booking_core.services.availability import AvailabilityService
from booking_core.services.booking import BookingService

router = APIRouter()


@router.post("/availability/check", response_model=AvailabilityResponse)
def check_availability(
    request: AvailabilityRequest,
    availability_service: AvailabilityService = Depends(get_availability_service),
):
    try:
        result = availability_service.check_availability(
            request.vehicle_id,
            request.start,
            request.end,
            request.exclude_booking_id,
        )
        return AvailabilityResponse.model_validate(result)
    except NotFoundError as e:
        raise not_found_exception(e)
    except InvalidRangeError as e:
        raise invalid_request_exception(e)


@router.post("/pricing/quote", response_model=PriceQuoteResponse)
def quote_price(
    request: PriceQuoteRequest,
    booking_service: BookingService = Depends(get_booking_service),
):
    try:
        quote = booking_service.quote(
            request.vehicle_id, request.start, request.end, request.deposit_ratio
        )
        return PriceQuoteResponse.model_validate(quote)
    except NotFoundError as e:
        raise not_found_exception(e)
    except (InvalidRangeError, InvalidAmountError) as e:
        raise invalid_request_exception(e)


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(
    request: CreateBookingRequest,
    booking_service: BookingService = Depends(get_booking_service),
    session: Session = Depends(get_session),
):
    try:
        booking = booking_service.create_booking(request)
        session.commit()
        return BookingResponse.model_validate(booking)
    except NotFoundError as e:
        session.rollback()
        raise not_found_exception(e)
    except (InvalidRangeError, InvalidAmountError) as e:
        session.rollback()
        raise invalid_request_exception(e)
    except BookingConflictError as e:
        session.rollback()
        raise booking_conflict_exception(e)
    except VehicleUnavailableError as e:
        session.rollback()
        raise vehicle_unavailable_exception(e)
    except IntegrityError as e:
        # exclusion constraint caught a concurrent overlapping insert
        session.rollback()
        logger.warning(f"Booking insert rejected by database: {e.orig}")
        raise booking_conflict_exception()
    except Exception as e:
        session.rollback()
        logger.exception(f"Error creating booking: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/bookings/{booking_id}/dates", response_model=BookingResponse)
def reschedule_booking(
    booking_id: str,
    request: RescheduleBookingRequest,
    booking_service: BookingService = Depends(get_booking_service),
    session: Session = Depends(get_session),
):
    try:
        booking = booking_service.reschedule_booking(booking_id, request)
        session.commit()
        return BookingResponse.model_validate(booking)
    except NotFoundError as e:
        session.rollback()
        raise not_found_exception(e)
    except (InvalidRangeError, InvalidTransitionError) as e:
        session.rollback()
        raise invalid_request_exception(e)
    except BookingConflictError as e:
        session.rollback()
        raise booking_conflict_exception(e)
    except VehicleUnavailableError as e:
        session.rollback()
        raise vehicle_unavailable_exception(e)
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Booking update rejected by database: {e.orig}")
        raise booking_conflict_exception()
    except Exception as e:
        session.rollback()
        logger.exception(f"Error rescheduling booking {booking_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/bookings/{booking_id}/status", response_model=BookingResponse)
def change_booking_status(
    booking_id: str,
    request: ChangeStatusRequest,
    booking_service: BookingService = Depends(get_booking_service),
    session: Session = Depends(get_session),
):
    try:
        booking = booking_service.change_status(booking_id, request.status)
        session.commit()
        return BookingResponse.model_validate(booking)
    except NotFoundError as e:
        session.rollback()
        raise not_found_exception(e)
    except InvalidTransitionError as e:
        session.rollback()
        raise invalid_request_exception(e)
    except Exception as e:
        session.rollback()
        logger.exception(f"Error changing status of booking {booking_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))
