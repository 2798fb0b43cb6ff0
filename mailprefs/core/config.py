"""Application configuration from environment variables."""

import os
from typing import List, Optional

from pydantic_settings import BaseSettings


DEFAULT_BRAND_ATTRIBUTES = [
    "sub_bbau",
    "sub_bbus",
    "sub_csau",
    "sub_csus",
    "sub_ffau",
    "sub_ffus",
    "sub_sbau",
    "sub_ppau",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    APP_NAME: str = "Email Preference Centre"
    DEBUG: bool = False
    PORT: int = 3000
    FLY_APP_NAME: Optional[str] = None

    # Customer.io Track API
    CUSTOMERIO_SITE_ID: str
    CUSTOMERIO_API_KEY: str
    CUSTOMERIO_TRACK_URL: str = "https://track.customer.io/api/v1"
    CUSTOMERIO_TIMEOUT_SECONDS: float = 10.0

    # Relationship lists and brand attributes
    RELATIONSHIP_OBJECT_TYPE_ID: str = "1"
    DOMESTIC_LIST_ID: str = "BBUS"
    INTERNATIONAL_LIST_ID: str = "BBAU"
    BRAND_ATTRIBUTES: List[str] = DEFAULT_BRAND_ATTRIBUTES
    EXTRA_ACTION_TAGS: List[str] = []

    # Admin
    ADMIN_USERNAME: str
    ADMIN_PASSWORD: str

    # Storage
    DATABASE_URL: str = "sqlite:///./email_processing.db"
    DISPLAY_TIMEZONE: str = "Australia/Sydney"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_FILE: str = "app.log"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def is_production(self) -> bool:
        return bool(self.FLY_APP_NAME)


def get_settings() -> Settings:
    """Build settings once at startup.

    The .env file is only consulted outside production; on Fly.io the
    platform injects secrets straight into the environment.
    """
    if os.getenv("FLY_APP_NAME"):
        return Settings(_env_file=None)
    return Settings()
