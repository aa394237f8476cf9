from typing import Optional

from fastapi import HTTPException


class BookingCoreException(Exception):
    pass


class NotFoundError(BookingCoreException):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidRangeError(BookingCoreException, ValueError):
    pass


class InvalidAmountError(BookingCoreException, ValueError):
    pass


class InvalidStatusError(BookingCoreException, ValueError):
    pass


class InvalidTransitionError(BookingCoreException):
    def __init__(self, booking_id: str, current: str, target: str):
        self.booking_id = booking_id
        self.current = current
        self.target = target
        super().__init__(
            f"Booking {booking_id} cannot move from {current} to {target}"
        )


class BookingConflictError(BookingCoreException):
    def __init__(self, vehicle_id: str, conflicting_booking_id: Optional[str] = None):
        self.vehicle_id = vehicle_id
        self.conflicting_booking_id = conflicting_booking_id
        super().__init__(
            f"Vehicle {vehicle_id} is already booked"
            + (f" by {conflicting_booking_id}" if conflicting_booking_id else "")
        )


class VehicleUnavailableError(BookingCoreException):
    def __init__(self, vehicle_id: str, status: str):
        self.vehicle_id = vehicle_id
        self.status = status
        super().__init__(f"Vehicle {vehicle_id} is {status}")


def not_found_exception(exc: NotFoundError):
    return HTTPException(status_code=404, detail=f"{exc.entity} not found")


def invalid_request_exception(exc: Exception):
    return HTTPException(status_code=400, detail=str(exc))


def booking_conflict_exception(exc: Optional[BookingConflictError] = None):
    detail = {"message": "Vehicle is not available for the requested dates"}
    if exc is not None and exc.conflicting_booking_id:
        detail["conflicting_booking_id"] = exc.conflicting_booking_id
    return HTTPException(status_code=409, detail=detail)


def vehicle_unavailable_exception(exc: VehicleUnavailableError):
    return HTTPException(status_code=409, detail=f"Vehicle is {exc.status}")
