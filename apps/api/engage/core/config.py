from typing import Literal

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    database_url: str
    log_level: str = "INFO"

    # Comma-separated, e.g. "http://localhost:8081,https://engage-web.onrender.com"
    cors_origins: str = ""

    # Where the employee timeline (NFC/QR landing page) is served
    timeline_base_url: str = "http://localhost:8081"

    # Hard ceiling for one combined automation run
    automation_timeout_seconds: float = 300.0

    # Where Feb 29 birthdays/events land in non-leap years
    leap_day_policy: Literal["feb28", "mar1"] = "feb28"

    # "rolling": true N-day window across month boundaries
    # "same_month": only later days of the current month
    upcoming_window_mode: Literal["rolling", "same_month"] = "rolling"

    class Config:
        env_file = ".env"

settings = Settings()
