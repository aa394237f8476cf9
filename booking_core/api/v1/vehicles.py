from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query

from booking_core.api.dependencies import get_booking_service
from booking_core.core.exceptions import InvalidRangeError, invalid_request_exception
from booking_core.schemas import AvailableVehicleResponse
from booking_core.services.booking import BookingService

router = APIRouter()


@router.get("/vehicles/available", response_model=List[AvailableVehicleResponse])
def search_available_vehicles(
    start: datetime = Query(..., description="Pickup instant"),
    end: datetime = Query(..., description="Return instant"),
    booking_service: BookingService = Depends(get_booking_service),
):
    try:
        return booking_service.search_available(start, end)
    except InvalidRangeError as e:
        raise invalid_request_exception(e)
