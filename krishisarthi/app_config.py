# krishisarthi/app_config.py

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = (
    "https://aayushagnihotri35.github.io,"
    "http://localhost:3000,"
    "http://127.0.0.1:3000"
)


@dataclass(frozen=True)
class Settings:
    """
    Values the marketplace services need at runtime.
    Built once by load_config() and handed to every service explicitly.
    """
    environment: str = "development"
    default_page_size: int = 10
    max_page_size: int = 100
    sequence_retries: int = 5
    transition_attempts: int = 3
    recent_limit: int = 5


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer, using %s", name, raw, default)
        return default


def load_config(app, overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """
    Load all Flask configuration in a clean centralized way.
    Environment first, then `overrides` (used by tests).
    """
    load_dotenv()

    # ------------------------------
    # Mongo
    # ------------------------------
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI",
        "mongodb://localhost:27017/krishisarthi"
    )

    # ------------------------------
    # Security Keys / JWT
    # ------------------------------
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", os.urandom(24))
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "krishi_sarthi_secret")
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(days=_env_int("JWT_ACCESS_TOKEN_EXPIRES_DAYS", 7))
    app.config["JWT_REFRESH_TOKEN_EXPIRES"] = timedelta(days=_env_int("JWT_REFRESH_TOKEN_EXPIRES_DAYS", 30))
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    app.config["BCRYPT_LOG_ROUNDS"] = _env_int("BCRYPT_LOG_ROUNDS", 12)

    # ------------------------------
    # CORS / logging
    # ------------------------------
    origins = os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    app.config["CORS_ORIGINS"] = [o.strip() for o in origins.split(",") if o.strip()]
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()
    app.config["ENVIRONMENT"] = os.getenv("APP_ENV", "development")

    # ------------------------------
    # Marketplace tunables
    # ------------------------------
    app.config["DEFAULT_PAGE_SIZE"] = _env_int("DEFAULT_PAGE_SIZE", 10)
    app.config["MAX_PAGE_SIZE"] = _env_int("MAX_PAGE_SIZE", 100)
    app.config["SEQUENCE_RETRIES"] = _env_int("SEQUENCE_RETRIES", 5)
    app.config["TRANSITION_ATTEMPTS"] = _env_int("TRANSITION_ATTEMPTS", 3)
    app.config["RECENT_LIMIT"] = _env_int("RECENT_LIMIT", 5)

    if overrides:
        app.config.update(overrides)

    settings = Settings(
        environment=app.config["ENVIRONMENT"],
        default_page_size=int(app.config["DEFAULT_PAGE_SIZE"]),
        max_page_size=int(app.config["MAX_PAGE_SIZE"]),
        sequence_retries=int(app.config["SEQUENCE_RETRIES"]),
        transition_attempts=int(app.config["TRANSITION_ATTEMPTS"]),
        recent_limit=int(app.config["RECENT_LIMIT"]),
    )

    logger.info("✓ Config Loaded Successfully (env=%s)", settings.environment)
    return settings
