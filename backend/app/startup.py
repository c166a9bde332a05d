"""
Application startup validation and initialization.

Checks the database and the restaurant clock settings before the floor plan
is served, and creates missing tables in development.
"""

import logging
import sys
from typing import List, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import text
import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.database import engine, Base

# Register every model on Base.metadata
from modules.tables.models import table_models  # noqa: F401
from modules.reservations.models import reservation_models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_TABLES = [
    "restaurant_tables",
    "table_combinations",
    "bookings",
    "booking_tables",
    "booking_status_history",
    "waitlist",
]


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        """Check database connectivity"""
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection successful")
            return True
        except SQLAlchemyError as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_timezone(self) -> bool:
        """The restaurant clock needs a known IANA zone"""
        try:
            ZoneInfo(settings.restaurant_timezone)
            return True
        except (ZoneInfoNotFoundError, ValueError):
            self.errors.append(f"Unknown restaurant timezone '{settings.restaurant_timezone}'")
            return False

    def check_required_tables(self) -> bool:
        """Check if required database tables exist"""
        try:
            existing_tables = sa.inspect(engine).get_table_names()
        except SQLAlchemyError as e:
            self.warnings.append(f"Could not check database tables: {str(e)}")
            return True

        missing_tables = [t for t in REQUIRED_TABLES if t not in existing_tables]
        if missing_tables and settings.is_development:
            Base.metadata.create_all(bind=engine)
            self.warnings.append(f"Created missing tables: {', '.join(missing_tables)}")
        elif missing_tables:
            self.errors.append(f"Missing database tables: {', '.join(missing_tables)}")
            return False
        return True

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """Run all validation checks"""
        checks = [
            ("Restaurant Timezone", self.check_timezone),
            ("Database Connection", self.check_database_connection),
            ("Database Tables", self.check_required_tables),
        ]

        all_passed = True
        for check_name, check_func in checks:
            logger.info(f"Running check: {check_name}")
            if not check_func():
                all_passed = False

        return all_passed, self.errors, self.warnings


def run_startup_checks():
    """Run all startup validation checks"""
    logger.info(f"Starting floor plan backend ({settings.environment})")

    validator = StartupValidator()
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings


def configure_logging():
    """Configure root logging from settings"""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
