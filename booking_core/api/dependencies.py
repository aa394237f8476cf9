from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session, sessionmaker

from booking_core.config.settings import Settings
from booking_core.db.database import get_sessionmaker
from booking_core.db.repositories.booking import BookingRepository
from booking_core.db.repositories.vehicle import VehicleRepository
from booking_core.services.availability import AvailabilityService
from booking_core.services.booking import BookingService
from booking_core.services.commission import CommissionService


@lru_cache()
def get_settings() -> Settings:
    return Settings()


@lru_cache()
def get_session_factory() -> sessionmaker:
    return get_sessionmaker(get_settings())


def get_session(factory: sessionmaker = Depends(get_session_factory)) -> Session:
    session = factory()
    try:
        yield session
    finally:
        session.close()


def get_vehicle_repository(
    session: Session = Depends(get_session),
) -> VehicleRepository:
    return VehicleRepository(session)


def get_booking_repository(
    session: Session = Depends(get_session),
) -> BookingRepository:
    return BookingRepository(session)


def get_availability_service(
    vehicle_repo: VehicleRepository = Depends(get_vehicle_repository),
    booking_repo: BookingRepository = Depends(get_booking_repository),
) -> AvailabilityService:
    return AvailabilityService(vehicle_repo, booking_repo)


def get_booking_service(
    vehicle_repo: VehicleRepository = Depends(get_vehicle_repository),
    booking_repo: BookingRepository = Depends(get_booking_repository),
    availability_service: AvailabilityService = Depends(get_availability_service),
    settings: Settings = Depends(get_settings),
) -> BookingService:
    return BookingService(
        vehicle_repo,
        booking_repo,
        availability_service,
        settings.default_deposit_ratio,
    )


def get_commission_service(
    vehicle_repo: VehicleRepository = Depends(get_vehicle_repository),
    booking_repo: BookingRepository = Depends(get_booking_repository),
    settings: Settings = Depends(get_settings),
) -> CommissionService:
    return CommissionService(vehicle_repo, booking_repo, settings.report_statuses)
