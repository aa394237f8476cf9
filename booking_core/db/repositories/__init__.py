from .booking import BookingRepository
from .vehicle import VehicleRepository

__all__ = [
    "BookingRepository",
    "VehicleRepository",
]
