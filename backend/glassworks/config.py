# backend/glassworks/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the process unless DATABASE_URL points elsewhere
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///glassworks.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Billed dimensions round up to this increment (inches) unless the
    # organization overrides it. 3 inches = quarter foot.
    DIMENSION_STEP_INCHES = int(os.environ.get("DIMENSION_STEP_INCHES", "3"))

    # Collision retries before a document number allocation gives up
    SEQUENCE_MAX_ATTEMPTS = int(os.environ.get("SEQUENCE_MAX_ATTEMPTS", "10"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
