"""
Database configuration and session management.
"""

from sqlmodel import SQLModel, create_engine, Session
from typing import Generator
import os
import json
import logging

# Import all models to ensure they are registered with SQLModel
from brokerage.models import Profile, InsuranceProduct, Policy, RejectionDetail, PolicyDocument, IdempotencyKey
from brokerage.cache import config_cache

logger = logging.getLogger("brokerage")

# Database URL - defaults to SQLite for development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/brokerage.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Create engine
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def _ensure_sqlite_directory():
    """Create the parent directory of a file-backed SQLite database."""
    if not DATABASE_URL.startswith("sqlite:///"):
        return
    path = DATABASE_URL[len("sqlite:///"):]
    directory = os.path.dirname(path)
    if path and path != ":memory:" and directory:
        os.makedirs(directory, exist_ok=True)


def create_db_and_tables():
    """Create database tables."""
    _ensure_sqlite_directory()
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Get database session."""
    with Session(engine) as session:
        yield session


def load_seed_data():
    """Load seed profiles and products from config/seed.json into the database."""
    with Session(engine) as session:
        # Load profiles
        for profile_data in config_cache.get_seed_profiles():
            # Check if profile already exists
            existing_profile = session.query(Profile).filter(Profile.user_id == profile_data["user_id"]).first()
            if not existing_profile:
                session.add(Profile(**profile_data))

        # Load products
        for product_data in config_cache.get_seed_products():
            existing_product = session.query(InsuranceProduct).filter(
                InsuranceProduct.code == product_data["code"]
            ).first()
            if not existing_product:
                product = InsuranceProduct(
                    id=product_data["id"],
                    code=product_data["code"],
                    name=product_data["name"],
                    type=product_data["type"],
                    description=product_data.get("description"),
                    base_premium=product_data.get("base_premium", 0),
                    default_term_months=product_data.get("default_term_months"),
                    fixed_payment_frequency=product_data.get("fixed_payment_frequency"),
                    coverage_details_json=json.dumps(product_data.get("coverage_details", {}))
                )
                session.add(product)

        session.commit()
        logger.info("Seed data loaded successfully")


def initialize_database():
    """Initialize database with tables and seed data."""
    logger.info("Creating database tables...")
    create_db_and_tables()
    logger.info("Loading seed data...")
    load_seed_data()
    logger.info("Database initialization complete")
