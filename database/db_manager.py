"""
Database Manager using SQLAlchemy.

Manages connections and provides ORM models for:
- candidates
- candidate_documents
- offer_notifications
- candidate_bank_info / candidate_education
- activity_logs
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

# Database connection string - loaded from environment variables via config
import config

DATABASE_URL = config.DATABASE_URL

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Candidate(Base):
    """Candidates table - personal info plus workflow state."""

    __tablename__ = "candidates"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Personal info
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone_no = Column(String(30), nullable=True)

    # Workflow state (enum names)
    status = Column(String(30), default="APPLIED", nullable=False, index=True)
    onboarding_status = Column(String(30), default="NOT_STARTED", nullable=False)

    # Optimistic concurrency stamp, bumped on every engine write
    version = Column(Integer, default=1, nullable=False)
    # Number of times the candidate entered OFFER_EXTENDED
    offer_episode = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    documents = relationship("CandidateDocument", back_populates="candidate", cascade="all, delete-orphan")
    bank_info = relationship("BankInfo", back_populates="candidate", uselist=False, cascade="all, delete-orphan")
    education = relationship("CandidateEducation", back_populates="candidate", uselist=False, cascade="all, delete-orphan")
    notifications = relationship("OfferNotification", back_populates="candidate", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Candidate(id={self.id}, status={self.status}, onboarding_status={self.onboarding_status}, version={self.version})>"


class CandidateDocument(Base):
    """Uploaded candidate documents and their verification flag."""

    __tablename__ = "candidate_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(String(255), nullable=False)  # original file name
    file_url = Column(String(1000), nullable=False)  # locator returned by the blob store
    file_verified = Column(Boolean, default=False, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationship
    candidate = relationship("Candidate", back_populates="documents")


class OfferNotification(Base):
    """Delivery state of the offer notification, one row per offer episode."""

    __tablename__ = "offer_notifications"
    __table_args__ = (UniqueConstraint("candidate_id", "episode", name="uq_offer_notification_episode"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False)
    episode = Column(Integer, nullable=False)
    state = Column(String(20), default="NOT_SENT", nullable=False)  # NOT_SENT, SENDING, SENT
    attempts = Column(Integer, default=0, nullable=False)
    recipient = Column(String(255), nullable=True)
    last_error = Column(Text, nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)  # set when a sender takes the SENDING claim
    sent_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationship
    candidate = relationship("Candidate", back_populates="notifications")


class BankInfo(Base):
    """Candidate bank account details for payroll onboarding."""

    __tablename__ = "candidate_bank_info"

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), unique=True, nullable=False)
    bank_name = Column(String(200), nullable=False)
    account_number = Column(String(50), nullable=False)
    ifsc_code = Column(String(20), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    candidate = relationship("Candidate", back_populates="bank_info")


class CandidateEducation(Base):
    """Highest education record of a candidate."""

    __tablename__ = "candidate_education"

    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(Integer, ForeignKey("candidates.id", ondelete="CASCADE"), unique=True, nullable=False)
    degree = Column(String(200), nullable=False)
    institution = Column(String(300), nullable=False)
    passing_year = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    candidate = relationship("Candidate", back_populates="education")


class ActivityLog(Base):
    """Activity logs table - audit trail of workflow events."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    user_id = Column(String(100), nullable=True, index=True)  # candidate id
    event_type = Column(String(50), nullable=False, index=True)  # Transition, Verification, Notification, Error
    severity = Column(String(20), nullable=False, index=True)  # Info, Warning, Error
    event_metadata = Column(JSON, nullable=True)  # renamed from 'metadata' to avoid SQLAlchemy conflict
    message = Column(Text, nullable=True)

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, event_type={self.event_type}, severity={self.severity}, timestamp={self.timestamp})>"


def make_engine(url: str, echo: bool = False):
    """Create an engine; SQLite connections are shared across request threads."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


# Database session management
engine = make_engine(DATABASE_URL, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Initialize database - create all tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_db(bind=None):
    """Drop all tables (use with caution)."""
    Base.metadata.drop_all(bind=bind or engine)
