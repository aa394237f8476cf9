from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from booking_core.db.models import Vehicle
from booking_core.schemas import VehicleData


class VehicleRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, vehicle_id: str) -> Optional[Vehicle]:
        return self.session.get(Vehicle, vehicle_id)

    def get_for_update(self, vehicle_id: str) -> Optional[Vehicle]:
        # Row lock serialises booking writers on the same vehicle (no-op on sqlite)
        return self.session.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id).with_for_update()
        ).scalar_one_or_none()

    def list_available(self) -> List[VehicleData]:
        vehicles = (
            self.session.execute(
                select(Vehicle)
                .where(Vehicle.status == "available")
                .order_by(Vehicle.id)
            )
            .scalars()
            .all()
        )
        return [VehicleData.model_validate(v) for v in vehicles]

    def list_commission_vehicles(
        self, counterparty_id: Optional[str] = None
    ) -> List[VehicleData]:
        """Commission vehicles that have an owner or depositor assigned.

        ``counterparty_id`` narrows the list to vehicles where that user is
        either the owner or the depositor.
        """
        query = select(Vehicle).where(
            Vehicle.ownership_type == "commission",
            Vehicle.status != "archived",
            or_(
                Vehicle.owner_user_id.is_not(None),
                Vehicle.depositor_user_id.is_not(None),
            ),
        )
        if counterparty_id:
            query = query.where(
                or_(
                    Vehicle.owner_user_id == counterparty_id,
                    Vehicle.depositor_user_id == counterparty_id,
                )
            )

        vehicles = self.session.execute(query.order_by(Vehicle.id)).scalars().all()
        return [VehicleData.model_validate(v) for v in vehicles]


__all__ = ["VehicleRepository"]
