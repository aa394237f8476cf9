from decimal import Decimal
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def find_env_file() -> str:
    env_file = ".env" if Path("/.dockerenv").exists() else ".env.local"

    current_path = Path.cwd()

    for path in [current_path] + list(current_path.parents):
        env_path = path / env_file
        if env_path.exists():
            return str(env_path)

    return env_file


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql+psycopg2://app:app@db:5432/fleet"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Pricing
    default_deposit_ratio: Decimal = Decimal("0.20")

    # Commission report: comma separated booking statuses counted as income,
    # empty means every status counts
    report_booking_statuses: str = ""

    @property
    def report_statuses(self) -> List[str]:
        return [
            s.strip() for s in self.report_booking_statuses.split(",") if s.strip()
        ]
