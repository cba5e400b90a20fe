"""
FORST Reporting Service
Environment configuration for the app factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name]())

The FORST_* keys are the report taxonomy; ReportSettings.from_config()
turns them into the settings object every report builder receives.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))


def _database_url(default=None):
    """DATABASE_URL with the legacy ``postgres://`` scheme rewritten for SQLAlchemy 2."""
    url = os.getenv("DATABASE_URL")
    if not url:
        return default
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


class Config:
    """Settings shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # ── Report taxonomy ──────────────────────────────────────────────────
    FORST_ZONE_ORDER = ["WEST", "SOUTH", "NORTH", "EAST"]
    FORST_PRODUCT_TYPES = [
        ("CONTRACT", "Contract"),
        ("BD_SPARE", "BD Spare"),
        ("SPP", "SPP"),
        ("RELOCATION", "Relocation"),
        ("SOFTWARE", "Software"),
        ("BD_CHARGES", "BD Charges"),
        ("RETROFIT_KIT", "Retrofit Kit"),
        ("UPGRADE_KIT", "Upgrade Kit"),
        ("MIDLIFE_UPGRADE", "Midlife Upgrade"),
        ("OTHERS", "Others"),
    ]
    FORST_EXCLUDED_STATUSES = ["CANCELLED", "LOST"]
    FORST_ORDER_STAGES = ["WON", "PO_RECEIVED"]
    FORST_LAKH_DIVISOR = 100000
    FORST_EXPORT_RATE_LIMIT = os.getenv("FORST_EXPORT_RATE_LIMIT", "20/minute")


class DevelopmentConfig(Config):
    """Local development: SQLite file under instance/ unless DATABASE_URL is set."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(
        f"sqlite:///{os.path.join(basedir, 'instance', 'forst_dev.db')}"
    )


class TestingConfig(Config):
    """pytest: in-memory SQLite, no rate limits."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production: DATABASE_URL and SECRET_KEY are mandatory."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
