from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from booking_core.api.dependencies import get_session
from booking_core.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(ok=True)


@router.get("/health/db")
def database_health(session: Session = Depends(get_session)):
    session.execute(text("SELECT 1"))
    return {"database": "ok", "status": "ok"}
