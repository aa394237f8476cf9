from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from booking_core.config.settings import Settings


def get_engine(settings: Settings):
    return create_engine(settings.database_url, pool_pre_ping=True, future=True)


def get_sessionmaker(settings: Settings) -> sessionmaker:
    return sessionmaker(
        bind=get_engine(settings),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
