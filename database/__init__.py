"""Database module (SQLAlchemy; SQLite by default, PostgreSQL via DATABASE_URL)."""

from database.db_manager import (
    ActivityLog,
    BankInfo,
    Base,
    Candidate,
    CandidateDocument,
    CandidateEducation,
    OfferNotification,
    SessionLocal,
    get_db,
    init_db,
    make_engine,
)

__all__ = [
    "ActivityLog",
    "BankInfo",
    "Base",
    "Candidate",
    "CandidateDocument",
    "CandidateEducation",
    "OfferNotification",
    "SessionLocal",
    "get_db",
    "init_db",
    "make_engine",
]
