from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Generator
import logging

from .config import settings

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()

# (id, name, description); id 5 is the registration default
SYSTEM_ROLES = [
    (1, "Admin", "Full administrative access"),
    (2, "Manager", "Manages staff and operations"),
    (3, "Staff", "Internal staff member"),
    (4, "Support", "Customer support agent"),
    (5, "Customer", "Self-registered customer account"),
]


def seed_roles(db: Session) -> int:
    """
    Insert the system roles that are not present yet.

    Returns:
        Number of roles inserted
    """
    from .models import Role  # Import here to avoid circular dependency

    inserted = 0
    for role_id, name, description in SYSTEM_ROLES:
        if db.get(Role, role_id) is None:
            db.add(Role(id=role_id, name=name, description=description, is_system=True))
            inserted += 1
    if inserted:
        db.commit()
    return inserted


def init_db():
    from . import models  # noqa: F401  register tables with Base

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        inserted = seed_roles(db)
        logger.info("Database initialized successfully (seeded %s roles)", inserted)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to seed system roles")
        raise
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful, False otherwise
    """
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
